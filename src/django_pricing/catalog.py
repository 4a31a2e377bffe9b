"""Product catalog lookup.

The product model is owned by the host project (PRICING_PRODUCT_MODEL).
This module reads the handful of attributes pricing needs from it, using
the attribute names configured in conf.
"""

from dataclasses import dataclass
from decimal import Decimal

from django.apps import apps
from django.core.exceptions import ValidationError

from django_pricing import conf


@dataclass(frozen=True)
class ProductInfo:
    """What pricing needs to know about a product."""

    product_id: object
    base_price: Decimal | None
    category: str | None
    unit: str | None
    name: str = ''
    sku: str = ''


def get_product_model():
    return apps.get_model(conf.get_product_model(), require_ready=False)


def get_customer_model():
    return apps.get_model(conf.get_customer_model(), require_ready=False)


def coerce_pk(model, value):
    """Convert value to the model's pk type, or None if it cannot be one."""
    if value is None:
        return None
    try:
        return model._meta.pk.to_python(value)
    except (ValidationError, ValueError, TypeError):
        return None


def _category_code(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    code = getattr(value, 'code', None)
    return code if code is not None else str(value)


def _products(tenant, pks):
    Product = get_product_model()
    queryset = Product._default_manager.filter(pk__in=pks)
    tenant_field = conf.product_tenant_field()
    if tenant_field:
        queryset = queryset.filter(**{tenant_field: tenant})
    return queryset


def _to_info(product) -> ProductInfo:
    raw_price = getattr(product, conf.product_price_field(), None)
    category_field = conf.product_category_field()
    unit_field = conf.product_unit_field()

    return ProductInfo(
        product_id=product.pk,
        base_price=None if raw_price is None else Decimal(str(raw_price)),
        category=_category_code(getattr(product, category_field, None)) if category_field else None,
        unit=(getattr(product, unit_field, None) or None) if unit_field else None,
        name=str(getattr(product, 'name', '') or ''),
        sku=str(getattr(product, 'sku', '') or ''),
    )


def get_product_info(tenant, product_id) -> ProductInfo | None:
    """Return ProductInfo for a tenant's product, or None if unknown."""
    pk = coerce_pk(get_product_model(), product_id)
    if pk is None:
        return None
    product = _products(tenant, [pk]).first()
    return None if product is None else _to_info(product)


def get_products_info(tenant, product_ids) -> dict:
    """Batch version of get_product_info keyed by coerced product pk.

    Unknown and malformed ids are left out of the result.
    """
    Product = get_product_model()
    pks = {pk for pk in (coerce_pk(Product, value) for value in product_ids) if pk is not None}
    if not pks:
        return {}
    return {product.pk: _to_info(product) for product in _products(tenant, pks)}
