"""Input checks run by services before any write.

Each check appends human-readable problems to an error list; callers raise
one PricingValidationError carrying all of them.
"""

from decimal import Decimal, InvalidOperation

from django_pricing.exceptions import PricingValidationError


def _as_decimal(value):
    if value is None or isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def check_window(errors: list[str], valid_from, valid_to, label: str = 'valid') -> None:
    if valid_from is not None and valid_to is not None and valid_to <= valid_from:
        errors.append(f"{label}_to must be after {label}_from")


def check_non_negative(errors: list[str], **values) -> None:
    for name, value in values.items():
        if value is None:
            continue
        number = _as_decimal(value)
        if number is None:
            errors.append(f"{name} must be a number")
        elif number < 0:
            errors.append(f"{name} must not be negative")


def check_percent(errors: list[str], **values) -> None:
    """Percentages in [0, 100]."""
    for name, value in values.items():
        if value is None:
            continue
        number = _as_decimal(value)
        if number is None:
            errors.append(f"{name} must be a number")
        elif number < 0 or number > 100:
            errors.append(f"{name} must be between 0 and 100")


def check_range(errors: list[str], low_name: str, low, high_name: str, high) -> None:
    low, high = _as_decimal(low), _as_decimal(high)
    if low is not None and high is not None and low > high:
        errors.append(f"{low_name} must not exceed {high_name}")


def check_allow_list(errors: list[str], name: str, value) -> None:
    """None means "applies to all"; an empty list would match nothing and is rejected."""
    if value is None:
        return
    if not isinstance(value, (list, tuple)):
        errors.append(f"{name} must be a list")
        return
    if not value:
        errors.append(f"{name} must not be empty; omit it to apply to all")
        return
    if not all(isinstance(item, str) and item for item in value):
        errors.append(f"{name} must contain non-empty strings")


def check_required(errors: list[str], **values) -> None:
    for name, value in values.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"{name} is required")


def raise_if_errors(errors: list[str], message: str) -> None:
    if errors:
        raise PricingValidationError(message, errors=errors)
