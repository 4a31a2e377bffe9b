"""Cost catalog services: product costs and customer pricing overrides.

ProductCost.total_cost is recomputed from its five components on every
write (see ProductCost.save), so margin calculations always use exactly
what was stored.
"""

import logging

from django.utils import timezone

from django_pricing import conf
from django_pricing.calculators import to_decimal
from django_pricing.catalog import coerce_pk, get_customer_model, get_product_info, get_product_model
from django_pricing.exceptions import NotFoundError
from django_pricing.models import CustomerPricing, ProductCost
from django_pricing.services.base import apply_changes, atomic_write, claim_default, get_owned
from django_pricing.services.catalog import get_category, get_table
from django_pricing.validators import (
    check_non_negative,
    check_percent,
    check_required,
    check_window,
    raise_if_errors,
)

logger = logging.getLogger(__name__)


COST_FIELDS = (
    'category_id', 'purchase_price', 'purchase_currency', 'supplier_id',
    'supplier_name', 'supplier_sku', 'shipping_cost', 'handling_cost',
    'customs_cost', 'other_costs', 'target_margin_percent', 'target_margin_value',
    'min_sale_price', 'valid_from', 'valid_to', 'is_default', 'is_active',
)

COST_DECIMALS = (
    'purchase_price', 'shipping_cost', 'handling_cost', 'customs_cost', 'other_costs',
    'target_margin_percent', 'target_margin_value', 'min_sale_price',
)

CUSTOMER_PRICING_FIELDS = (
    'price_table_id', 'price_category_code', 'discount_percent', 'credit_limit',
    'credit_used', 'payment_terms', 'valid_from', 'valid_to', 'is_active',
)


# =============================================================================
# Product costs
# =============================================================================

def list_product_costs(tenant, *, product_id=None, category_id=None, supplier_id=None, is_active=None):
    """Costs ordered by product, newest valid_from first."""
    queryset = ProductCost.objects.for_tenant(tenant).select_related('category')
    if product_id is not None:
        pk = coerce_pk(get_product_model(), product_id)
        if pk is None:
            return queryset.none()
        queryset = queryset.filter(product_id=pk)
    if category_id is not None:
        queryset = queryset.filter(category_id=category_id)
    if supplier_id:
        queryset = queryset.filter(supplier_id=supplier_id)
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active)
    return queryset.order_by('product_id', '-valid_from')


def get_product_cost(tenant, cost_id) -> ProductCost:
    queryset = ProductCost.objects.for_tenant(tenant).select_related('category')
    return get_owned(queryset, cost_id, 'Product cost')


def find_product_cost_by_product(tenant, product_id, *, category_id=None, supplier_id=None, as_of=None):
    """Best cost row for a product, or None.

    Prefers the newest active row matching the category/supplier filters,
    then falls back to the product's active default row. With as_of, only
    rows valid at that moment are considered.
    """
    pk = coerce_pk(get_product_model(), product_id)
    if pk is None:
        return None

    base = ProductCost.objects.for_tenant(tenant).active().filter(product_id=pk)
    if as_of is not None:
        base = base.as_of(as_of)

    specific = base
    if category_id is not None:
        specific = specific.filter(category_id=category_id)
    if supplier_id:
        specific = specific.filter(supplier_id=supplier_id)
    cost = specific.order_by('-valid_from').first()
    if cost is None:
        cost = base.filter(is_default=True).order_by('-valid_from').first()
    return cost


def _normalize_cost(cost: ProductCost) -> None:
    errors = []
    check_required(errors, purchase_price=cost.purchase_price, valid_from=cost.valid_from)
    check_non_negative(errors, **{name: getattr(cost, name) for name in COST_DECIMALS})
    check_window(errors, cost.valid_from, cost.valid_to)
    raise_if_errors(errors, "Invalid product cost")
    for name in COST_DECIMALS:
        value = getattr(cost, name)
        if value is not None:
            setattr(cost, name, to_decimal(value))


def _save_cost(tenant, cost: ProductCost) -> None:
    with atomic_write(f"Product {cost.product_id} already has a default cost"):
        if cost.is_default:
            claim_default(ProductCost.objects.for_tenant(tenant).filter(product_id=cost.product_id), cost)
        cost.save()


def create_product_cost(tenant, *, product_id, purchase_price, **options) -> ProductCost:
    """Record a product's cost basis.

    total_cost is derived on save. Setting is_default clears the previous
    default cost for the same product.

    Raises:
        NotFoundError: product or category not owned by the tenant
        PricingValidationError: negative amounts or an inverted window
    """
    product = get_product_info(tenant, product_id)
    if product is None:
        raise NotFoundError('Product', product_id)

    cost = ProductCost(
        tenant=tenant,
        product_id=product.product_id,
        purchase_currency=conf.default_currency(),
        valid_from=timezone.now(),
    )
    values = {'purchase_price': purchase_price, **options}
    if values.get('valid_from') is None:
        values.pop('valid_from', None)
    apply_changes(cost, values, COST_FIELDS)
    _normalize_cost(cost)
    if cost.category_id is not None:
        cost.category = get_category(tenant, cost.category_id)

    _save_cost(tenant, cost)
    logger.info(f"Created cost for product {cost.product_id}: total {cost.total_cost}")
    return cost


def update_product_cost(tenant, cost_id, **changes) -> ProductCost:
    """Update a cost row; total_cost is recomputed from the merged components."""
    cost = get_product_cost(tenant, cost_id)
    apply_changes(cost, changes, COST_FIELDS)
    _normalize_cost(cost)
    if changes.get('category_id') is not None:
        cost.category = get_category(tenant, changes['category_id'])

    _save_cost(tenant, cost)
    logger.info(f"Updated cost {cost.pk} for product {cost.product_id}: total {cost.total_cost}")
    return cost


def delete_product_cost(tenant, cost_id) -> None:
    cost = get_product_cost(tenant, cost_id)
    cost.delete()
    logger.info(f"Deleted cost {cost_id}")


# =============================================================================
# Customer pricing
# =============================================================================

def get_customer_pricing(tenant, customer_id, as_of=None) -> CustomerPricing | None:
    """The customer's active pricing valid at as_of (now by default), or None."""
    pk = coerce_pk(get_customer_model(), customer_id)
    if pk is None:
        return None
    as_of = as_of or timezone.now()
    return (
        CustomerPricing.objects.for_tenant(tenant)
        .active()
        .as_of(as_of)
        .filter(customer_id=pk)
        .select_related('price_table')
        .first()
    )


def _normalize_customer_pricing(tenant, pricing: CustomerPricing) -> None:
    errors = []
    check_percent(errors, discount_percent=pricing.discount_percent)
    check_non_negative(
        errors,
        credit_limit=pricing.credit_limit,
        credit_used=pricing.credit_used,
        payment_terms=pricing.payment_terms,
    )
    check_required(errors, valid_from=pricing.valid_from)
    check_window(errors, pricing.valid_from, pricing.valid_to)
    raise_if_errors(errors, "Invalid customer pricing")
    for name in ('discount_percent', 'credit_limit', 'credit_used'):
        value = getattr(pricing, name)
        if value is not None:
            setattr(pricing, name, to_decimal(value))
    if pricing.price_table_id is not None:
        pricing.price_table = get_table(tenant, pricing.price_table_id)


def _get_customer(tenant, customer_id):
    Customer = get_customer_model()
    pk = coerce_pk(Customer, customer_id)
    customer = None
    if pk is not None:
        queryset = Customer._default_manager.filter(pk=pk)
        tenant_field = conf.customer_tenant_field()
        if tenant_field:
            queryset = queryset.filter(**{tenant_field: tenant})
        customer = queryset.first()
    if customer is None:
        raise NotFoundError('Customer', customer_id)
    return customer


def set_customer_pricing(tenant, customer_id, **values) -> CustomerPricing:
    """Replace the customer's pricing with a new active row.

    Existing rows for the customer are deleted in the same transaction.

    Raises:
        NotFoundError: customer or price table not owned by the tenant
        PricingValidationError: discount outside 0-100, negative credit, bad window
    """
    customer = _get_customer(tenant, customer_id)
    pricing = CustomerPricing(tenant=tenant, customer=customer, valid_from=timezone.now())
    if values.get('valid_from') is None:
        values.pop('valid_from', None)
    apply_changes(pricing, values, CUSTOMER_PRICING_FIELDS)
    _normalize_customer_pricing(tenant, pricing)

    with atomic_write(f"Customer {customer.pk} already has active pricing"):
        replaced, _ = CustomerPricing.objects.for_tenant(tenant).filter(customer=customer).delete()
        pricing.save()

    logger.info(f"Set pricing for customer {customer.pk} (replaced {replaced} rows)")
    return pricing


def update_customer_pricing(tenant, customer_id, **changes) -> CustomerPricing:
    """Update the customer's active pricing row.

    Raises:
        NotFoundError: the customer has no active pricing
    """
    pk = coerce_pk(get_customer_model(), customer_id)
    pricing = None
    if pk is not None:
        pricing = CustomerPricing.objects.for_tenant(tenant).active().filter(customer_id=pk).first()
    if pricing is None:
        raise NotFoundError('Customer pricing', message=f"Customer pricing for {customer_id} not found")

    apply_changes(pricing, changes, CUSTOMER_PRICING_FIELDS)
    _normalize_customer_pricing(tenant, pricing)
    with atomic_write(f"Customer {pricing.customer_id} already has active pricing"):
        pricing.save()

    logger.info(f"Updated pricing for customer {pricing.customer_id}")
    return pricing
