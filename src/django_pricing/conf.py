"""Django Pricing configuration.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    PRICING_TENANT_MODEL = 'accounts.Tenant'
    PRICING_PRODUCT_MODEL = 'products.Product'
    PRICING_CUSTOMER_MODEL = 'crm.Customer'
    PRICING_DEFAULT_VAT_RATE = Decimal('23')
"""

from decimal import Decimal, InvalidOperation

from django.conf import settings

from django_pricing.exceptions import PricingConfigError


# =============================================================================
# SWAPPABLE MODELS
# =============================================================================

def _model_setting(name: str) -> str:
    value = getattr(settings, name, None)
    if not value:
        raise PricingConfigError(
            f"{name} setting is required. "
            "Set it to a model path, e.g. 'myapp.ModelName'"
        )
    if value.count('.') != 1:
        raise PricingConfigError(f"{name} must be of the form 'app_label.ModelName', got {value!r}")
    return value


def get_tenant_model() -> str:
    """Tenant model every pricing row is scoped to (PRICING_TENANT_MODEL)."""
    return _model_setting('PRICING_TENANT_MODEL')


def get_product_model() -> str:
    """Product catalog model referenced by entries and costs (PRICING_PRODUCT_MODEL)."""
    return _model_setting('PRICING_PRODUCT_MODEL')


def get_customer_model() -> str:
    """Customer model referenced by customer pricing (PRICING_CUSTOMER_MODEL)."""
    return _model_setting('PRICING_CUSTOMER_MODEL')


# =============================================================================
# RUNTIME SETTINGS (read at call time)
# =============================================================================

def get_setting(name: str, default=None):
    """Get a setting with PRICING_ prefix."""
    return getattr(settings, f"PRICING_{name}", default)


def _decimal_setting(name: str, default: str) -> Decimal:
    raw = get_setting(name, default)
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise PricingConfigError(f"PRICING_{name} must be numeric, got {raw!r}")


def default_vat_rate() -> Decimal:
    """VAT percent assumed when falling back to the product base price."""
    rate = _decimal_setting('DEFAULT_VAT_RATE', '23')
    if rate < 0 or rate > 100:
        raise PricingConfigError(f"PRICING_DEFAULT_VAT_RATE out of range: {rate}")
    return rate


def default_currency() -> str:
    return get_setting('DEFAULT_CURRENCY', 'PLN')


def low_margin_threshold() -> Decimal:
    return _decimal_setting('LOW_MARGIN_THRESHOLD', '10')


def product_price_field() -> str:
    return get_setting('PRODUCT_PRICE_FIELD', 'price')


def product_category_field() -> str | None:
    return get_setting('PRODUCT_CATEGORY_FIELD', 'category')


def product_unit_field() -> str | None:
    return get_setting('PRODUCT_UNIT_FIELD', 'unit')


def product_tenant_field() -> str | None:
    """FK on the product model pointing at the tenant; None disables scoping."""
    return get_setting('PRODUCT_TENANT_FIELD', 'tenant')


def customer_tenant_field() -> str | None:
    """FK on the customer model pointing at the tenant; None disables scoping."""
    return get_setting('CUSTOMER_TENANT_FIELD', 'tenant')


# =============================================================================
# DEFAULT SETTINGS REFERENCE
# =============================================================================

# PRICING_TENANT_MODEL = 'accounts.Tenant'      # REQUIRED
# PRICING_PRODUCT_MODEL = 'products.Product'    # REQUIRED
# PRICING_CUSTOMER_MODEL = 'crm.Customer'       # REQUIRED
# PRICING_DEFAULT_VAT_RATE = Decimal('23')
# PRICING_DEFAULT_CURRENCY = 'PLN'
# PRICING_LOW_MARGIN_THRESHOLD = Decimal('10')
# PRICING_PRODUCT_PRICE_FIELD = 'price'         # gross base price attribute
# PRICING_PRODUCT_CATEGORY_FIELD = 'category'
# PRICING_PRODUCT_UNIT_FIELD = 'unit'
# PRICING_PRODUCT_TENANT_FIELD = 'tenant'       # None if products are global
# PRICING_CUSTOMER_TENANT_FIELD = 'tenant'      # None if customers are global
