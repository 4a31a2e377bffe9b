"""Helpers shared by the pricing services."""

from contextlib import contextmanager

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from django_pricing.exceptions import ConflictError, NotFoundError, PricingValidationError


def get_owned(queryset, pk, entity: str):
    """Fetch one row from an already tenant-scoped queryset.

    Rows that do not exist, belong to another tenant, or are addressed by a
    malformed id all raise NotFoundError.
    """
    try:
        return queryset.get(pk=pk)
    except (queryset.model.DoesNotExist, ValidationError, ValueError, TypeError):
        raise NotFoundError(entity, pk)


@contextmanager
def atomic_write(conflict_message: str):
    """transaction.atomic() that surfaces integrity errors as ConflictError."""
    try:
        with transaction.atomic():
            yield
    except IntegrityError as e:
        raise ConflictError(conflict_message) from e


def claim_default(queryset, instance) -> int:
    """Clear is_default on every other row in scope. Call inside a transaction."""
    return queryset.filter(is_default=True).exclude(pk=instance.pk).update(is_default=False)


def apply_changes(instance, changes: dict, allowed) -> list[str]:
    """Set allowed attributes on instance, returning the names that were set."""
    unknown = sorted(set(changes) - set(allowed))
    if unknown:
        raise PricingValidationError(
            f"Unknown fields for {type(instance).__name__}: {', '.join(unknown)}"
        )
    for name, value in changes.items():
        setattr(instance, name, value)
    return list(changes)
