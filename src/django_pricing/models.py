"""Django Pricing models.

Provides tenant-scoped pricing data:
- PriceCategory: Hierarchical grouping of price tables (RETAIL, WHOLESALE, VIP)
- PriceTable: Named, time-bounded, prioritized price list
- PriceTableEntry: One product's (optionally tiered, optionally promo) price in a table
- Surcharge: Conditional order-level charge definition
- ProductCost: Cost basis of a product used for margin calculations
- CustomerPricing: Per-customer table override and discount

Every "default" flag is guarded by a partial unique constraint, so at most
one row per scope can carry it. Services clear the old flag and set the new
one inside a single transaction.
"""

import uuid
from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from django_pricing import conf
from django_pricing.querysets import (
    PriceTableEntryQuerySet,
    PriceTableQuerySet,
    PricingQuerySet,
)


MONEY = {'max_digits': 14, 'decimal_places': 2}
PERCENT = {'max_digits': 7, 'decimal_places': 2}
QUANTITY = {'max_digits': 14, 'decimal_places': 3}


# =============================================================================
# Base Models
# =============================================================================

class PricingBaseModel(models.Model):
    """Base model for pricing: UUID PK, created_at, updated_at."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        abstract = True


class TenantScopedModel(PricingBaseModel):
    """Pricing row owned by a tenant."""

    tenant = models.ForeignKey(
        conf.get_tenant_model(),
        on_delete=models.CASCADE,
        related_name='+',
        verbose_name=_('tenant'),
    )

    class Meta:
        abstract = True


# =============================================================================
# PriceCategory
# =============================================================================

class PriceCategory(TenantScopedModel):
    """Hierarchical price category, e.g. RETAIL > RETAIL_ONLINE."""

    code = models.CharField(_('code'), max_length=50)
    name = models.CharField(_('name'), max_length=200)
    description = models.TextField(_('description'), blank=True, default='')
    parent = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='children',
        verbose_name=_('parent'),
    )
    default_discount_percent = models.DecimalField(
        _('default discount (%)'), null=True, blank=True, **PERCENT
    )
    is_default = models.BooleanField(_('is default'), default=False)
    is_active = models.BooleanField(_('active'), default=True, db_index=True)
    sort_order = models.IntegerField(_('sort order'), default=0)

    objects = PricingQuerySet.as_manager()

    class Meta:
        verbose_name = _('price category')
        verbose_name_plural = _('price categories')
        ordering = ['sort_order', 'name']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'code'],
                name='pricing_unique_category_code',
            ),
            models.UniqueConstraint(
                fields=['tenant'],
                condition=Q(is_default=True),
                name='pricing_one_default_category',
            ),
        ]

    def __str__(self):
        return f'{self.code} ({self.name})'

    def ancestors(self):
        """Walk up the parent chain, nearest first."""
        node = self.parent
        seen = set()
        while node is not None and node.pk not in seen:
            seen.add(node.pk)
            yield node
            node = node.parent


# =============================================================================
# PriceTable
# =============================================================================

class PriceTableType(models.TextChoices):
    STANDARD = 'STANDARD', _('Standard')
    CUSTOMER = 'CUSTOMER', _('Customer')
    PROMO = 'PROMO', _('Promotion')
    WHOLESALE = 'WHOLESALE', _('Wholesale')
    CONTRACT = 'CONTRACT', _('Contract')
    SEASONAL = 'SEASONAL', _('Seasonal')
    CLEARANCE = 'CLEARANCE', _('Clearance')


class PriceTable(TenantScopedModel):
    """Named, time-bounded, prioritized collection of per-product prices.

    Valid in [valid_from, valid_to); valid_to=None means until further notice.
    """

    code = models.CharField(_('code'), max_length=50)
    name = models.CharField(_('name'), max_length=200)
    description = models.TextField(_('description'), blank=True, default='')
    category = models.ForeignKey(
        PriceCategory,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='price_tables',
        verbose_name=_('category'),
    )
    currency = models.CharField(_('currency'), max_length=3)
    valid_from = models.DateTimeField(_('valid from'), default=timezone.now, db_index=True)
    valid_to = models.DateTimeField(_('valid to'), null=True, blank=True, db_index=True)
    priority = models.IntegerField(_('priority'), default=0)
    price_type = models.CharField(
        _('price type'),
        max_length=20,
        choices=PriceTableType.choices,
        default=PriceTableType.STANDARD,
    )
    is_default = models.BooleanField(_('is default'), default=False)
    is_active = models.BooleanField(_('active'), default=True, db_index=True)

    objects = PriceTableQuerySet.as_manager()

    class Meta:
        verbose_name = _('price table')
        verbose_name_plural = _('price tables')
        ordering = ['-priority', 'name']
        indexes = [
            models.Index(fields=['tenant', 'is_active', 'is_default'], name='pricing_table_lookup_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'code'],
                name='pricing_unique_table_code',
            ),
            models.UniqueConstraint(
                fields=['tenant'],
                condition=Q(is_default=True),
                name='pricing_one_default_table',
            ),
            models.CheckConstraint(
                condition=Q(valid_to__isnull=True) | Q(valid_to__gt=F('valid_from')),
                name='pricing_table_valid_to_after_valid_from',
            ),
        ]

    def __str__(self):
        return f'{self.code} ({self.name})'

    def is_valid_at(self, when) -> bool:
        if self.valid_from and self.valid_from > when:
            return False
        if self.valid_to and self.valid_to <= when:
            return False
        return True


# =============================================================================
# PriceTableEntry
# =============================================================================

class PriceTableEntry(PricingBaseModel):
    """A product's price within a table.

    min_quantity/max_quantity form an inclusive quantity tier; max_quantity=None
    is open-ended. promo_price is a gross price that replaces the table price
    while [promo_valid_from, promo_valid_to) contains the pricing date.
    """

    price_table = models.ForeignKey(
        PriceTable,
        on_delete=models.CASCADE,
        related_name='entries',
        verbose_name=_('price table'),
    )
    product = models.ForeignKey(
        conf.get_product_model(),
        on_delete=models.CASCADE,
        related_name='+',
        verbose_name=_('product'),
    )
    product_sku = models.CharField(_('product SKU'), max_length=100, blank=True, default='')
    product_name = models.CharField(_('product name'), max_length=255, blank=True, default='')
    price_net = models.DecimalField(_('net price'), **MONEY)
    price_gross = models.DecimalField(_('gross price'), **MONEY)
    vat_rate = models.DecimalField(_('VAT rate (%)'), max_digits=5, decimal_places=2)
    promo_price = models.DecimalField(_('promo price (gross)'), null=True, blank=True, **MONEY)
    promo_valid_from = models.DateTimeField(_('promo valid from'), null=True, blank=True)
    promo_valid_to = models.DateTimeField(_('promo valid to'), null=True, blank=True)
    min_quantity = models.DecimalField(_('min quantity'), default=Decimal('1'), **QUANTITY)
    max_quantity = models.DecimalField(_('max quantity'), null=True, blank=True, **QUANTITY)
    is_active = models.BooleanField(_('active'), default=True, db_index=True)

    objects = PriceTableEntryQuerySet.as_manager()

    class Meta:
        verbose_name = _('price table entry')
        verbose_name_plural = _('price table entries')
        ordering = ['product_name', 'min_quantity']
        constraints = [
            models.UniqueConstraint(
                fields=['price_table', 'product', 'min_quantity'],
                name='pricing_unique_entry_tier',
            ),
            models.CheckConstraint(
                condition=Q(max_quantity__isnull=True) | Q(max_quantity__gte=F('min_quantity')),
                name='pricing_entry_quantity_range',
            ),
        ]

    def __str__(self):
        return f'{self.price_table.code}: {self.product_id} x{self.min_quantity}+ @ {self.price_net}'

    def promo_active_at(self, when) -> bool:
        """True if a promo price is set and its window contains `when`."""
        if self.promo_price is None:
            return False
        if self.promo_valid_from and self.promo_valid_from > when:
            return False
        if self.promo_valid_to and self.promo_valid_to <= when:
            return False
        return True


# =============================================================================
# Surcharge
# =============================================================================

class SurchargeType(models.TextChoices):
    FIXED = 'FIXED', _('Fixed amount')
    PERCENT = 'PERCENT', _('Percent of order value')
    PER_M2 = 'PER_M2', _('Per square metre')
    PER_MB = 'PER_MB', _('Per running metre')
    PER_KG = 'PER_KG', _('Per kilogram')
    PER_UNIT = 'PER_UNIT', _('Per unit')
    TIERED = 'TIERED', _('Tiered by order value')


class Surcharge(TenantScopedModel):
    """Conditionally applicable order-level charge.

    applies_to_categories / applies_to_products: None means "applies to all".
    tiers: list of {"from": n, "to": n | null, "value": n}, TIERED only.
    """

    code = models.CharField(_('code'), max_length=50)
    name = models.CharField(_('name'), max_length=200)
    description = models.TextField(_('description'), blank=True, default='')
    type = models.CharField(_('type'), max_length=20, choices=SurchargeType.choices)
    value = models.DecimalField(_('value'), max_digits=14, decimal_places=4)
    min_value = models.DecimalField(_('min amount'), null=True, blank=True, **MONEY)
    max_value = models.DecimalField(_('max amount'), null=True, blank=True, **MONEY)
    tiers = models.JSONField(_('tiers'), null=True, blank=True)
    applies_to_categories = models.JSONField(_('applies to categories'), null=True, blank=True)
    applies_to_products = models.JSONField(_('applies to products'), null=True, blank=True)
    min_order_value = models.DecimalField(_('min order value'), null=True, blank=True, **MONEY)
    max_order_value = models.DecimalField(_('max order value'), null=True, blank=True, **MONEY)
    is_required = models.BooleanField(_('is required'), default=False)
    is_optional = models.BooleanField(_('is optional'), default=True)
    is_active = models.BooleanField(_('active'), default=True, db_index=True)
    sort_order = models.IntegerField(_('sort order'), default=0)
    valid_from = models.DateTimeField(_('valid from'), null=True, blank=True)
    valid_to = models.DateTimeField(_('valid to'), null=True, blank=True)

    objects = PricingQuerySet.as_manager()

    class Meta:
        verbose_name = _('surcharge')
        verbose_name_plural = _('surcharges')
        ordering = ['sort_order', 'name']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'code'],
                name='pricing_unique_surcharge_code',
            ),
        ]

    def __str__(self):
        return f'{self.code} ({self.get_type_display()})'


# =============================================================================
# ProductCost
# =============================================================================

class ProductCost(TenantScopedModel):
    """Cost basis of a product.

    total_cost is derived from the five cost components on every save so
    margin calculations always use what was actually stored.
    """

    product = models.ForeignKey(
        conf.get_product_model(),
        on_delete=models.CASCADE,
        related_name='+',
        verbose_name=_('product'),
    )
    category = models.ForeignKey(
        PriceCategory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='product_costs',
        verbose_name=_('category'),
    )
    purchase_price = models.DecimalField(_('purchase price'), **MONEY)
    purchase_currency = models.CharField(_('purchase currency'), max_length=3)
    supplier_id = models.CharField(_('supplier id'), max_length=255, blank=True, default='')
    supplier_name = models.CharField(_('supplier name'), max_length=255, blank=True, default='')
    supplier_sku = models.CharField(_('supplier SKU'), max_length=100, blank=True, default='')
    shipping_cost = models.DecimalField(_('shipping cost'), null=True, blank=True, **MONEY)
    handling_cost = models.DecimalField(_('handling cost'), null=True, blank=True, **MONEY)
    customs_cost = models.DecimalField(_('customs cost'), null=True, blank=True, **MONEY)
    other_costs = models.DecimalField(_('other costs'), null=True, blank=True, **MONEY)
    total_cost = models.DecimalField(_('total cost'), editable=False, **MONEY)
    target_margin_percent = models.DecimalField(_('target margin (%)'), null=True, blank=True, **PERCENT)
    target_margin_value = models.DecimalField(_('target margin value'), null=True, blank=True, **MONEY)
    min_sale_price = models.DecimalField(_('min sale price'), null=True, blank=True, **MONEY)
    valid_from = models.DateTimeField(_('valid from'), default=timezone.now)
    valid_to = models.DateTimeField(_('valid to'), null=True, blank=True)
    is_default = models.BooleanField(_('is default'), default=False)
    is_active = models.BooleanField(_('active'), default=True, db_index=True)

    objects = PricingQuerySet.as_manager()

    COST_COMPONENTS = ('purchase_price', 'shipping_cost', 'handling_cost', 'customs_cost', 'other_costs')

    class Meta:
        verbose_name = _('product cost')
        verbose_name_plural = _('product costs')
        ordering = ['product', '-valid_from']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'product'],
                condition=Q(is_default=True),
                name='pricing_one_default_cost_per_product',
            ),
            models.CheckConstraint(
                condition=Q(valid_to__isnull=True) | Q(valid_to__gt=F('valid_from')),
                name='pricing_cost_valid_to_after_valid_from',
            ),
        ]

    def __str__(self):
        return f'{self.product_id}: {self.total_cost} {self.purchase_currency}'

    def compute_total_cost(self) -> Decimal:
        return sum(
            (Decimal(str(getattr(self, name) or 0)) for name in self.COST_COMPONENTS),
            Decimal('0'),
        )

    @property
    def cost_basis(self) -> Decimal:
        """Stored aggregate, or the bare purchase price when it is unset."""
        return self.total_cost or self.purchase_price

    def save(self, *args, **kwargs):
        self.total_cost = self.compute_total_cost()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and set(update_fields) & set(self.COST_COMPONENTS):
            kwargs['update_fields'] = set(update_fields) | {'total_cost'}
        super().save(*args, **kwargs)


# =============================================================================
# CustomerPricing
# =============================================================================

class CustomerPricing(TenantScopedModel):
    """Per-customer pricing override: table, discount and credit terms.

    At most one active row exists per (tenant, customer).
    """

    customer = models.ForeignKey(
        conf.get_customer_model(),
        on_delete=models.CASCADE,
        related_name='+',
        verbose_name=_('customer'),
    )
    price_table = models.ForeignKey(
        PriceTable,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='customer_pricings',
        verbose_name=_('price table'),
    )
    price_category_code = models.CharField(_('price category code'), max_length=50, blank=True, default='')
    discount_percent = models.DecimalField(_('discount (%)'), null=True, blank=True, **PERCENT)
    credit_limit = models.DecimalField(_('credit limit'), null=True, blank=True, **MONEY)
    credit_used = models.DecimalField(_('credit used'), default=Decimal('0'), **MONEY)
    payment_terms = models.PositiveIntegerField(_('payment terms (days)'), null=True, blank=True)
    valid_from = models.DateTimeField(_('valid from'), default=timezone.now)
    valid_to = models.DateTimeField(_('valid to'), null=True, blank=True)
    is_active = models.BooleanField(_('active'), default=True, db_index=True)

    objects = PricingQuerySet.as_manager()

    class Meta:
        verbose_name = _('customer pricing')
        verbose_name_plural = _('customer pricing')
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'customer'],
                condition=Q(is_active=True),
                name='pricing_one_active_customer_pricing',
            ),
            models.CheckConstraint(
                condition=Q(valid_to__isnull=True) | Q(valid_to__gt=F('valid_from')),
                name='pricing_customer_valid_to_after_valid_from',
            ),
        ]

    def __str__(self):
        return f'{self.customer_id}: table={self.price_table_id} discount={self.discount_percent}'

    @property
    def available_credit(self):
        if self.credit_limit is None:
            return None
        return self.credit_limit - (self.credit_used or Decimal('0'))
