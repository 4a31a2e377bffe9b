"""Django Pricing - Tenant-scoped pricing engine.

Provides:
- PriceCategory / PriceTable / PriceTableEntry: time-bounded, prioritized price lists
- Surcharge: conditional order-level charges (fixed, percent, per unit, tiered)
- ProductCost / CustomerPricing: cost basis and per-customer overrides
- Price resolution, surcharge calculation and margin calculation services

Usage:
    INSTALLED_APPS = [
        ...
        'django_pricing',
    ]

    PRICING_TENANT_MODEL = 'accounts.Tenant'
    PRICING_PRODUCT_MODEL = 'products.Product'
    PRICING_CUSTOMER_MODEL = 'crm.Customer'

    from django_pricing.services.resolver import resolve_price
    price = resolve_price(tenant, product.pk, customer_id=customer.pk, quantity=10)

See conf.py for all configuration options.
"""

__version__ = "0.1.0"
