"""Price resolution.

resolve_price walks a fixed waterfall and stops at the first match:

1. the customer's active pricing valid at the pricing date (table + discount)
2. candidate table: explicit price_table_id, else the customer's table
3. best qualifying quantity tier in the candidate table
4. best qualifying tier in the tenant's default table
5. the product's own base price, treated as gross with the default VAT rate
6. an all-zero result

A promo price active at the pricing date replaces the table price and is
never combined with the customer discount. Resolution misses are not
errors: resolve_price always returns a ResolvedPrice.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal

from django.utils import timezone

from django_pricing import conf
from django_pricing.calculators import HUNDRED, net_from_gross, round_money, to_decimal
from django_pricing.catalog import coerce_pk, get_product_info, get_product_model
from django_pricing.models import PriceTable, PriceTableEntry
from django_pricing.services.catalog import get_active_tables, get_default_table
from django_pricing.services.costs import get_customer_pricing

logger = logging.getLogger(__name__)


class PriceSource:
    TABLE = 'table'
    DEFAULT_TABLE = 'default_table'
    PRODUCT = 'product'
    NONE = 'none'


@dataclass
class ResolvedPrice:
    """Snapshot of a resolved price. Amounts are rounded to 2 places."""

    product_id: str
    price_net: Decimal
    price_gross: Decimal
    vat_rate: Decimal
    currency: str
    source: str = PriceSource.NONE
    price_table_id: str | None = None
    price_table_code: str | None = None
    is_promo: bool = False
    discount_percent: Decimal | None = None
    original_price_net: Decimal | None = None
    original_price_gross: Decimal | None = None

    @property
    def is_priced(self) -> bool:
        return self.source != PriceSource.NONE

    def to_dict(self) -> dict:
        def text(value):
            return None if value is None else str(value)

        return {
            'product_id': self.product_id,
            'price_net': str(self.price_net),
            'price_gross': str(self.price_gross),
            'vat_rate': str(self.vat_rate),
            'currency': self.currency,
            'source': self.source,
            'price_table_id': self.price_table_id,
            'price_table_code': self.price_table_code,
            'is_promo': self.is_promo,
            'discount_percent': text(self.discount_percent),
            'original_price_net': text(self.original_price_net),
            'original_price_gross': text(self.original_price_gross),
        }


@dataclass
class PriceComparison:
    """One table's price for a product, as listed by compare_prices."""

    price_table_id: str
    price_table_code: str
    price_table_name: str
    price_type: str
    priority: int
    price_net: Decimal
    price_gross: Decimal
    is_promo: bool
    promo_price: Decimal | None


def _discounted(amount: Decimal, discount_percent: Decimal) -> Decimal:
    return amount * (1 - discount_percent / HUNDRED)


def _from_entry(product_id, entry: PriceTableEntry, table: PriceTable, source: str, discount, as_of) -> ResolvedPrice:
    price_net = entry.price_net
    price_gross = entry.price_gross
    result = ResolvedPrice(
        product_id=str(product_id),
        price_net=round_money(price_net),
        price_gross=round_money(price_gross),
        vat_rate=entry.vat_rate,
        currency=table.currency,
        source=source,
        price_table_id=str(table.pk),
        price_table_code=table.code,
    )

    if entry.promo_active_at(as_of):
        result.price_net = round_money(net_from_gross(entry.promo_price, entry.vat_rate))
        result.price_gross = round_money(entry.promo_price)
        result.is_promo = True
        result.original_price_net = round_money(price_net)
        result.original_price_gross = round_money(price_gross)
    elif discount:
        result.price_net = round_money(_discounted(price_net, discount))
        result.price_gross = round_money(_discounted(price_gross, discount))
        result.discount_percent = discount
        result.original_price_net = round_money(price_net)
        result.original_price_gross = round_money(price_gross)
    return result


def _usable_table(tenant, table_id, as_of) -> PriceTable | None:
    """The tenant's table if it is active and valid at as_of."""
    pk = coerce_pk(PriceTable, table_id)
    if pk is None:
        return None
    table = PriceTable.objects.for_tenant(tenant).filter(pk=pk).first()
    if table is None or not table.is_active or not table.is_valid_at(as_of):
        return None
    return table


def pricing_moment(as_of=None) -> datetime:
    """Aware datetime for a pricing date.

    None means now. A date means the start of that day and a naive
    datetime is read in the current time zone.
    """
    if as_of is None:
        return timezone.now()
    if not isinstance(as_of, datetime):
        as_of = datetime.combine(as_of, time.min)
    if timezone.is_naive(as_of):
        as_of = timezone.make_aware(as_of)
    return as_of


def zero_price(product_id) -> ResolvedPrice:
    return ResolvedPrice(
        product_id=str(product_id),
        price_net=Decimal('0.00'),
        price_gross=Decimal('0.00'),
        vat_rate=conf.default_vat_rate(),
        currency=conf.default_currency(),
    )


def resolve_price(tenant, product_id, *, customer_id=None, quantity=1, as_of=None, price_table_id=None) -> ResolvedPrice:
    """Resolve the authoritative price of a product.

    Args:
        tenant: Owning tenant
        product_id: Product to price
        customer_id: Optional customer whose pricing applies
        quantity: Quantity used to pick the tier
        as_of: Pricing date or datetime (defaults to now; a date means start of day)
        price_table_id: Explicit table that takes precedence over the customer's

    Returns:
        ResolvedPrice. source == PriceSource.NONE marks an unpriced product.
    """
    as_of = pricing_moment(as_of)
    quantity = to_decimal(1 if quantity is None else quantity)
    pk = coerce_pk(get_product_model(), product_id)
    if pk is None:
        logger.debug(f"Malformed product id {product_id!r}; returning zero price")
        return zero_price(product_id)

    discount = None
    customer_table_id = None
    if customer_id is not None:
        pricing = get_customer_pricing(tenant, customer_id, as_of=as_of)
        if pricing is not None:
            customer_table_id = pricing.price_table_id
            discount = pricing.discount_percent or None

    candidate = None
    table_id = price_table_id or customer_table_id
    if table_id is not None:
        candidate = _usable_table(tenant, table_id, as_of)
        if candidate is not None:
            entry = PriceTableEntry.objects.best_tier(candidate, pk, quantity)
            if entry is not None:
                logger.debug(f"Product {pk} priced from table {candidate.code}")
                return _from_entry(pk, entry, candidate, PriceSource.TABLE, discount, as_of)

    default_table = get_default_table(tenant, as_of=as_of)
    if default_table is not None and default_table != candidate:
        entry = PriceTableEntry.objects.best_tier(default_table, pk, quantity)
        if entry is not None:
            logger.debug(f"Product {pk} priced from default table {default_table.code}")
            return _from_entry(pk, entry, default_table, PriceSource.DEFAULT_TABLE, discount, as_of)

    product = get_product_info(tenant, pk)
    if product is not None and product.base_price is not None:
        vat_rate = conf.default_vat_rate()
        price_gross = product.base_price
        price_net = net_from_gross(price_gross, vat_rate)
        result = ResolvedPrice(
            product_id=str(pk),
            price_net=round_money(price_net),
            price_gross=round_money(price_gross),
            vat_rate=vat_rate,
            currency=conf.default_currency(),
            source=PriceSource.PRODUCT,
        )
        if discount:
            result.price_net = round_money(_discounted(price_net, discount))
            result.price_gross = round_money(_discounted(price_gross, discount))
            result.discount_percent = discount
            result.original_price_net = round_money(price_net)
            result.original_price_gross = round_money(price_gross)
        logger.debug(f"Product {pk} priced from its base price")
        return result

    logger.debug(f"No price configured for product {pk}")
    return zero_price(pk)


def resolve_prices(tenant, product_ids, **options) -> list[ResolvedPrice]:
    """resolve_price for each product, in input order."""
    return [resolve_price(tenant, product_id, **options) for product_id in product_ids]


def compare_prices(tenant, product_id, as_of=None) -> list[PriceComparison]:
    """Each active table's lowest-tier active entry for the product, cheapest first."""
    as_of = pricing_moment(as_of)
    pk = coerce_pk(get_product_model(), product_id)
    if pk is None:
        return []

    comparisons = []
    for table in get_active_tables(tenant, as_of=as_of):
        entry = table.entries.active().filter(product_id=pk).order_by('min_quantity').first()
        if entry is None:
            continue
        comparisons.append(PriceComparison(
            price_table_id=str(table.pk),
            price_table_code=table.code,
            price_table_name=table.name,
            price_type=table.price_type,
            priority=table.priority,
            price_net=entry.price_net,
            price_gross=entry.price_gross,
            is_promo=entry.promo_active_at(as_of),
            promo_price=entry.promo_price,
        ))
    comparisons.sort(key=lambda c: c.price_net)
    return comparisons


def get_price_history(tenant, product_id, *, price_table_id=None, start=None, end=None):
    """Entries for the product across the tenant's tables, most recently updated first.

    start/end bound updated_at as [start, end).
    """
    pk = coerce_pk(get_product_model(), product_id)
    queryset = PriceTableEntry.objects.for_tenant(tenant).select_related('price_table')
    if pk is None:
        return queryset.none()
    queryset = queryset.filter(product_id=pk)
    if price_table_id is not None:
        table_pk = coerce_pk(PriceTable, price_table_id)
        if table_pk is None:
            return queryset.none()
        queryset = queryset.filter(price_table_id=table_pk)
    if start is not None:
        queryset = queryset.filter(updated_at__gte=start)
    if end is not None:
        queryset = queryset.filter(updated_at__lt=end)
    return queryset.order_by('-updated_at')
