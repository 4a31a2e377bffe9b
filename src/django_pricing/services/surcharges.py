"""Surcharge catalog and surcharge calculation services.

The calculator reports amounts only. Every CalculatedSurcharge carries the
surcharge's is_required / is_optional flags; deciding which optional
surcharges end up on an order total is the caller's job.
"""

import logging
from decimal import Decimal

from django.utils import timezone

from django_pricing import conf
from django_pricing.calculators import (
    CalculatedSurcharge,
    OrderContext,
    SurchargeFormula,
    clamp,
    round_money,
    to_decimal,
    validate_tiers,
)
from django_pricing.exceptions import ConflictError, NotFoundError, PricingValidationError
from django_pricing.models import Surcharge, SurchargeType
from django_pricing.services.base import apply_changes, atomic_write, get_owned
from django_pricing.validators import (
    check_allow_list,
    check_non_negative,
    check_range,
    check_required,
    check_window,
    raise_if_errors,
)

logger = logging.getLogger(__name__)


SURCHARGE_FIELDS = (
    'code', 'name', 'description', 'type', 'value', 'min_value', 'max_value',
    'tiers', 'applies_to_categories', 'applies_to_products', 'min_order_value',
    'max_order_value', 'is_required', 'is_optional', 'is_active', 'sort_order',
    'valid_from', 'valid_to',
)

DECIMAL_FIELDS = ('value', 'min_value', 'max_value', 'min_order_value', 'max_order_value')

DEFAULT_SURCHARGES = (
    {
        'code': 'TRANSPORT',
        'name': 'Transport',
        'description': 'Delivery to the customer',
        'type': SurchargeType.FIXED,
        'value': Decimal('50'),
        'sort_order': 1,
    },
    {
        'code': 'ASSEMBLY',
        'name': 'Assembly',
        'description': 'On-site assembly',
        'type': SurchargeType.PER_M2,
        'value': Decimal('25'),
        'sort_order': 2,
    },
    {
        'code': 'EXPRESS',
        'name': 'Express delivery',
        'description': 'Expedited order fulfilment',
        'type': SurchargeType.PERCENT,
        'value': Decimal('15'),
        'sort_order': 3,
    },
    {
        'code': 'PACKAGING',
        'name': 'Packaging',
        'description': 'Special protective packaging',
        'type': SurchargeType.FIXED,
        'value': Decimal('20'),
        'sort_order': 4,
    },
)


# =============================================================================
# Catalog
# =============================================================================

def list_surcharges(tenant, *, type=None, is_active=None, is_required=None, valid_at=None):
    queryset = Surcharge.objects.for_tenant(tenant)
    if type is not None:
        queryset = queryset.filter(type=type)
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active)
    if is_required is not None:
        queryset = queryset.filter(is_required=is_required)
    if valid_at is not None:
        queryset = queryset.as_of(valid_at)
    return queryset.order_by('sort_order', 'name')


def get_surcharge(tenant, surcharge_id) -> Surcharge:
    return get_owned(Surcharge.objects.for_tenant(tenant), surcharge_id, 'Surcharge')


def get_surcharge_by_code(tenant, code: str) -> Surcharge:
    surcharge = Surcharge.objects.for_tenant(tenant).filter(code=code).first()
    if surcharge is None:
        raise NotFoundError('Surcharge', message=f"Surcharge with code {code} not found")
    return surcharge


def _normalize_surcharge(surcharge: Surcharge) -> None:
    """Validate a surcharge before it is written.

    Raises:
        PricingValidationError: with every problem found
    """
    errors = []
    check_required(errors, code=surcharge.code, name=surcharge.name, value=surcharge.value)
    if surcharge.type not in SurchargeType.values:
        errors.append(f"Unknown surcharge type: {surcharge.type}")
    check_non_negative(errors, **{name: getattr(surcharge, name) for name in DECIMAL_FIELDS})
    check_allow_list(errors, 'applies_to_categories', surcharge.applies_to_categories)
    check_allow_list(errors, 'applies_to_products', surcharge.applies_to_products)
    check_window(errors, surcharge.valid_from, surcharge.valid_to)
    raise_if_errors(errors, "Invalid surcharge")

    for name in DECIMAL_FIELDS:
        value = getattr(surcharge, name)
        if value is not None:
            setattr(surcharge, name, to_decimal(value))
    check_range(errors, 'min_value', surcharge.min_value, 'max_value', surcharge.max_value)
    check_range(errors, 'min_order_value', surcharge.min_order_value, 'max_order_value', surcharge.max_order_value)

    if surcharge.tiers is not None:
        if surcharge.type != SurchargeType.TIERED:
            errors.append("tiers are only allowed for TIERED surcharges")
        else:
            try:
                surcharge.tiers = [tier.to_dict() for tier in validate_tiers(surcharge.tiers)]
            except PricingValidationError as e:
                errors.extend(e.errors)
    raise_if_errors(errors, "Invalid surcharge")


def _check_code(tenant, code, exclude_pk=None):
    queryset = Surcharge.objects.for_tenant(tenant).filter(code=code)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    if queryset.exists():
        raise ConflictError(f"Surcharge with code {code} already exists")


def create_surcharge(tenant, *, code: str, name: str, type: str, value, **options) -> Surcharge:
    """Create a surcharge definition.

    options are any other Surcharge fields (min_value, tiers,
    applies_to_categories, valid_from, ...). Allow-lists left as None
    apply to every category/product.
    """
    surcharge = Surcharge(tenant=tenant)
    apply_changes(surcharge, {'code': code, 'name': name, 'type': type, 'value': value, **options}, SURCHARGE_FIELDS)
    _normalize_surcharge(surcharge)
    _check_code(tenant, code)

    with atomic_write(f"Surcharge with code {code} already exists"):
        surcharge.save()

    logger.info(f"Created surcharge {surcharge.code} ({surcharge.type})")
    return surcharge


def update_surcharge(tenant, surcharge_id, **changes) -> Surcharge:
    surcharge = get_surcharge(tenant, surcharge_id)
    apply_changes(surcharge, changes, SURCHARGE_FIELDS)
    if changes.get('type') not in (None, SurchargeType.TIERED) and 'tiers' not in changes:
        surcharge.tiers = None
    _normalize_surcharge(surcharge)
    if 'code' in changes:
        _check_code(tenant, surcharge.code, exclude_pk=surcharge.pk)

    with atomic_write(f"Surcharge with code {surcharge.code} already exists"):
        surcharge.save()

    logger.info(f"Updated surcharge {surcharge.code}")
    return surcharge


def delete_surcharge(tenant, surcharge_id) -> None:
    surcharge = get_surcharge(tenant, surcharge_id)
    surcharge.delete()
    logger.info(f"Deleted surcharge {surcharge.code} ({surcharge_id})")


def seed_default_surcharges(tenant) -> list[Surcharge]:
    """Create the standard surcharges whose codes the tenant does not have yet."""
    existing = set(Surcharge.objects.for_tenant(tenant).values_list('code', flat=True))
    created = []
    for definition in DEFAULT_SURCHARGES:
        if definition['code'] in existing:
            continue
        created.append(create_surcharge(tenant, **definition))
    logger.info(f"Seeded {len(created)} default surcharges")
    return created


# =============================================================================
# Calculation
# =============================================================================

def _evaluate(surcharge: Surcharge, base_value, base_unit) -> CalculatedSurcharge:
    formula = SurchargeFormula.from_surcharge(surcharge)
    amount = clamp(formula.amount(base_value), surcharge.min_value, surcharge.max_value)
    return CalculatedSurcharge(
        surcharge_id=str(surcharge.pk),
        code=surcharge.code,
        name=surcharge.name,
        type=surcharge.type,
        rate=formula.rate,
        base_value=to_decimal(base_value),
        base_unit=base_unit,
        amount=round_money(amount),
        is_required=surcharge.is_required,
        is_optional=surcharge.is_optional,
    )


def calculate_single(tenant, surcharge_id, base_value, base_unit: str | None = None) -> CalculatedSurcharge:
    """Evaluate one surcharge against base_value, then clamp to its bounds.

    Raises:
        NotFoundError: surcharge not owned by the tenant
    """
    surcharge = get_surcharge(tenant, surcharge_id)
    return _evaluate(surcharge, base_value, base_unit)


def _matches_allow_list(allowed, requested) -> bool:
    if allowed is None:
        return True
    allowed = {str(value) for value in allowed}
    return any(str(value) in allowed for value in requested)


def applicable_surcharges(tenant, order: OrderContext) -> list[Surcharge]:
    """Surcharges that apply to the order, in sort_order then name order.

    A surcharge applies when it is active, valid at order.as_of (now by
    default), listed in order.surcharge_ids if given, order.order_value is
    within its inclusive order-value gate, and its category/product
    allow-lists intersect the order's categories/products. Allow-lists are
    only checked when the order supplies categories/products.
    """
    as_of = order.as_of or timezone.now()
    candidates = Surcharge.objects.for_tenant(tenant).active().as_of(as_of).order_by('sort_order', 'name')
    if order.surcharge_ids:
        wanted = {str(value) for value in order.surcharge_ids}
        candidates = [s for s in candidates if str(s.pk) in wanted]

    order_value = to_decimal(order.order_value)
    result = []
    for surcharge in candidates:
        if surcharge.min_order_value is not None and order_value < surcharge.min_order_value:
            continue
        if surcharge.max_order_value is not None and order_value > surcharge.max_order_value:
            continue
        if order.product_categories and not _matches_allow_list(
            surcharge.applies_to_categories, order.product_categories
        ):
            continue
        if order.product_ids and not _matches_allow_list(surcharge.applies_to_products, order.product_ids):
            continue
        result.append(surcharge)
    return result


def calculate_multiple(tenant, order: OrderContext) -> list[CalculatedSurcharge]:
    """Evaluate every applicable surcharge for an order.

    Each surcharge's base comes from its type: order value for PERCENT and
    TIERED, area/length/weight/quantity for the PER_* types, 1 for FIXED.
    """
    currency = conf.default_currency()
    results = []
    for surcharge in applicable_surcharges(tenant, order):
        base_value, base_unit = order.base_for(surcharge.type, currency)
        results.append(_evaluate(surcharge, base_value, base_unit))
    logger.debug(f"Calculated {len(results)} surcharges for order value {order.order_value}")
    return results
