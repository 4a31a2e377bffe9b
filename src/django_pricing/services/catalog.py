"""Price catalog services: categories, tables and table entries.

These functions are the only supported write path for the price catalog.
All of them take the tenant as the first argument; rows owned by another
tenant behave as if they did not exist.

Default flags:
- setting is_default on a table or category clears the previous default of
  the same tenant inside the same transaction
- a partial unique constraint backs the invariant at the database level
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from django_pricing import conf
from django_pricing.calculators import apply_percent, round_money, round_to_increment, to_decimal
from django_pricing.catalog import coerce_pk, get_product_info, get_product_model, get_products_info
from django_pricing.exceptions import ConflictError, NotFoundError, PricingValidationError
from django_pricing.models import PriceCategory, PriceTable, PriceTableEntry, PriceTableType
from django_pricing.services.base import apply_changes, atomic_write, claim_default, get_owned
from django_pricing.validators import (
    check_non_negative,
    check_percent,
    check_range,
    check_required,
    check_window,
    raise_if_errors,
)

logger = logging.getLogger(__name__)


CATEGORY_FIELDS = (
    'code', 'name', 'description', 'parent_id', 'default_discount_percent',
    'is_default', 'is_active', 'sort_order',
)

TABLE_FIELDS = (
    'code', 'name', 'description', 'category_id', 'currency', 'valid_from',
    'valid_to', 'priority', 'price_type', 'is_default', 'is_active',
)

ENTRY_FIELDS = (
    'product_sku', 'product_name', 'price_net', 'price_gross', 'vat_rate',
    'promo_price', 'promo_valid_from', 'promo_valid_to', 'min_quantity',
    'max_quantity', 'is_active',
)

MONEY_FIELDS = ('price_net', 'price_gross', 'promo_price')
QUANTITY_FIELDS = ('min_quantity', 'max_quantity')


# =============================================================================
# Categories
# =============================================================================

def list_categories(tenant, include_inactive: bool = False):
    queryset = PriceCategory.objects.for_tenant(tenant).select_related('parent')
    if not include_inactive:
        queryset = queryset.active()
    return queryset.order_by('sort_order', 'name')


def get_category(tenant, category_id) -> PriceCategory:
    return get_owned(PriceCategory.objects.for_tenant(tenant), category_id, 'Price category')


def _category_errors(category: PriceCategory) -> list[str]:
    errors = []
    check_required(errors, code=category.code, name=category.name)
    check_percent(errors, default_discount_percent=category.default_discount_percent)
    return errors


def _check_category_code(tenant, code, exclude_pk=None):
    queryset = PriceCategory.objects.for_tenant(tenant).filter(code=code)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    if queryset.exists():
        raise ConflictError(f"Price category with code {code} already exists")


def create_category(
    tenant,
    *,
    code: str,
    name: str,
    description: str = '',
    parent_id=None,
    default_discount_percent=None,
    is_default: bool = False,
    is_active: bool = True,
    sort_order: int = 0,
) -> PriceCategory:
    """Create a price category.

    Raises:
        PricingValidationError: missing code/name or discount outside 0-100
        NotFoundError: parent does not belong to the tenant
        ConflictError: code already used in the tenant
    """
    category = PriceCategory(
        tenant=tenant,
        code=code,
        name=name,
        description=description,
        default_discount_percent=default_discount_percent,
        is_default=is_default,
        is_active=is_active,
        sort_order=sort_order,
    )
    raise_if_errors(_category_errors(category), "Invalid price category")
    if parent_id is not None:
        category.parent = get_category(tenant, parent_id)
    _check_category_code(tenant, code)

    with atomic_write(f"Price category with code {code} already exists"):
        if is_default:
            claim_default(PriceCategory.objects.for_tenant(tenant), category)
        category.save()

    logger.info(f"Created price category {category.code} ({category.pk})")
    return category


def update_category(tenant, category_id, **changes) -> PriceCategory:
    """Update a category. A parent that would form a cycle is rejected."""
    category = get_category(tenant, category_id)
    apply_changes(category, changes, CATEGORY_FIELDS)

    errors = _category_errors(category)
    if 'parent_id' in changes and category.parent_id is not None:
        parent = get_category(tenant, category.parent_id)
        if parent.pk == category.pk or any(a.pk == category.pk for a in parent.ancestors()):
            errors.append("parent_id would create a cycle")
        category.parent = parent
    raise_if_errors(errors, "Invalid price category")
    if 'code' in changes:
        _check_category_code(tenant, category.code, exclude_pk=category.pk)

    with atomic_write(f"Price category with code {category.code} already exists"):
        if category.is_default:
            cleared = claim_default(PriceCategory.objects.for_tenant(tenant), category)
            if cleared:
                logger.info(f"Price category {category.code} is now the default")
        category.save()

    logger.info(f"Updated price category {category.code} ({category.pk})")
    return category


def delete_category(tenant, category_id) -> None:
    """Delete a category that has neither children nor price tables."""
    category = get_category(tenant, category_id)
    if category.children.exists():
        raise ConflictError("Cannot delete category with children")
    if category.price_tables.exists():
        raise ConflictError("Cannot delete category with assigned price tables")
    category.delete()
    logger.info(f"Deleted price category {category.code} ({category_id})")


# =============================================================================
# Price tables
# =============================================================================

def list_tables(tenant, *, category_id=None, price_type=None, is_active=None, valid_at=None):
    """Tables ordered by priority (highest first), then newest valid_from."""
    queryset = PriceTable.objects.for_tenant(tenant).select_related('category')
    if category_id is not None:
        queryset = queryset.filter(category_id=category_id)
    if price_type is not None:
        queryset = queryset.filter(price_type=price_type)
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active)
    if valid_at is not None:
        queryset = queryset.as_of(valid_at)
    return queryset.order_by('-priority', '-valid_from')


def get_table(tenant, table_id) -> PriceTable:
    return get_owned(PriceTable.objects.for_tenant(tenant), table_id, 'Price table')


def get_table_by_code(tenant, code: str) -> PriceTable:
    table = PriceTable.objects.for_tenant(tenant).filter(code=code).first()
    if table is None:
        raise NotFoundError('Price table', message=f"Price table with code {code} not found")
    return table


def get_default_table(tenant, as_of=None) -> PriceTable | None:
    """Active default table valid at as_of; highest priority, then name."""
    as_of = as_of or timezone.now()
    return PriceTable.objects.for_tenant(tenant).active().as_of(as_of).defaults().first()


def get_active_tables(tenant, as_of=None):
    as_of = as_of or timezone.now()
    return PriceTable.objects.for_tenant(tenant).active().as_of(as_of).order_by('-priority', 'name')


def _table_errors(table: PriceTable) -> list[str]:
    errors = []
    check_required(errors, code=table.code, name=table.name, currency=table.currency, valid_from=table.valid_from)
    if table.price_type not in PriceTableType.values:
        errors.append(f"Unknown price type: {table.price_type}")
    check_window(errors, table.valid_from, table.valid_to)
    return errors


def _check_table_code(tenant, code, exclude_pk=None):
    queryset = PriceTable.objects.for_tenant(tenant).filter(code=code)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    if queryset.exists():
        raise ConflictError(f"Price table with code {code} already exists")


def _save_table(tenant, table: PriceTable) -> None:
    with atomic_write(f"Price table with code {table.code} already exists"):
        if table.is_default:
            cleared = claim_default(PriceTable.objects.for_tenant(tenant), table)
            if cleared:
                logger.info(f"Price table {table.code} replaced the previous default")
        table.save()


def create_table(
    tenant,
    *,
    code: str,
    name: str,
    description: str = '',
    category_id=None,
    currency: str | None = None,
    valid_from=None,
    valid_to=None,
    priority: int = 0,
    price_type: str = PriceTableType.STANDARD,
    is_default: bool = False,
    is_active: bool = True,
) -> PriceTable:
    """Create a price table.

    currency defaults to PRICING_DEFAULT_CURRENCY and valid_from to now.
    """
    table = PriceTable(
        tenant=tenant,
        code=code,
        name=name,
        description=description,
        currency=currency or conf.default_currency(),
        valid_from=valid_from or timezone.now(),
        valid_to=valid_to,
        priority=priority,
        price_type=price_type,
        is_default=is_default,
        is_active=is_active,
    )
    raise_if_errors(_table_errors(table), "Invalid price table")
    if category_id is not None:
        table.category = get_category(tenant, category_id)
    _check_table_code(tenant, code)

    _save_table(tenant, table)
    logger.info(f"Created price table {table.code} ({table.pk})")
    return table


def update_table(tenant, table_id, **changes) -> PriceTable:
    table = get_table(tenant, table_id)
    apply_changes(table, changes, TABLE_FIELDS)
    raise_if_errors(_table_errors(table), "Invalid price table")
    if changes.get('category_id') is not None:
        table.category = get_category(tenant, changes['category_id'])
    if 'code' in changes:
        _check_table_code(tenant, table.code, exclude_pk=table.pk)

    _save_table(tenant, table)
    logger.info(f"Updated price table {table.code} ({table.pk})")
    return table


def delete_table(tenant, table_id) -> None:
    """Delete a table together with its entries."""
    table = get_table(tenant, table_id)
    table.delete()
    logger.info(f"Deleted price table {table.code} ({table_id})")


def duplicate_table(tenant, table_id, new_code: str, new_name: str) -> PriceTable:
    """Copy a table's metadata and its active entries under a new code.

    The copy is never the default, starts now and is open-ended. The
    source table and its entries are left untouched.
    """
    source = get_table(tenant, table_id)
    errors = []
    check_required(errors, new_code=new_code, new_name=new_name)
    raise_if_errors(errors, "Invalid price table")
    _check_table_code(tenant, new_code)

    copy = PriceTable(
        tenant=tenant,
        code=new_code,
        name=new_name,
        description=source.description,
        category_id=source.category_id,
        currency=source.currency,
        valid_from=timezone.now(),
        valid_to=None,
        priority=source.priority,
        price_type=source.price_type,
        is_default=False,
        is_active=True,
    )
    with atomic_write(f"Price table with code {new_code} already exists"):
        copy.save()
        entries = [
            PriceTableEntry(
                price_table=copy,
                product_id=entry.product_id,
                product_sku=entry.product_sku,
                product_name=entry.product_name,
                price_net=entry.price_net,
                price_gross=entry.price_gross,
                vat_rate=entry.vat_rate,
                promo_price=entry.promo_price,
                promo_valid_from=entry.promo_valid_from,
                promo_valid_to=entry.promo_valid_to,
                min_quantity=entry.min_quantity,
                max_quantity=entry.max_quantity,
                is_active=True,
            )
            for entry in source.entries.active()
        ]
        PriceTableEntry.objects.bulk_create(entries)

    logger.info(f"Duplicated price table {source.code} as {copy.code} with {len(entries)} entries")
    return copy


# =============================================================================
# Entries
# =============================================================================

def list_entries(tenant, table_id, *, product_id=None, is_active=None):
    table = get_table(tenant, table_id)
    queryset = table.entries.all()
    if product_id is not None:
        pk = coerce_pk(get_product_model(), product_id)
        if pk is None:
            return queryset.none()
        queryset = queryset.filter(product_id=pk)
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active)
    return queryset.order_by('product_name', 'min_quantity')


def get_entry(tenant, entry_id) -> PriceTableEntry:
    queryset = PriceTableEntry.objects.for_tenant(tenant).select_related('price_table')
    return get_owned(queryset, entry_id, 'Price table entry')


def _normalize_entry(entry: PriceTableEntry) -> list[str]:
    """Validate entry values and convert them to Decimal in place."""
    errors = []
    check_required(errors, price_net=entry.price_net)
    check_non_negative(errors, **{name: getattr(entry, name) for name in MONEY_FIELDS + QUANTITY_FIELDS})
    check_percent(errors, vat_rate=entry.vat_rate)
    if errors:
        return errors

    for name in MONEY_FIELDS + QUANTITY_FIELDS + ('vat_rate',):
        value = getattr(entry, name)
        if value is not None:
            setattr(entry, name, to_decimal(value))

    if entry.min_quantity is None:
        entry.min_quantity = Decimal('1')
    check_range(errors, 'min_quantity', entry.min_quantity, 'max_quantity', entry.max_quantity)
    check_window(errors, entry.promo_valid_from, entry.promo_valid_to, label='promo_valid')
    if entry.price_gross is None:
        entry.price_gross = round_money(apply_percent(entry.price_net, entry.vat_rate))
    return errors


def _build_entry(table: PriceTable, product, data: dict) -> PriceTableEntry:
    unknown = sorted(set(data) - set(ENTRY_FIELDS) - {'product_id'})
    if unknown:
        raise PricingValidationError(f"Unknown fields for PriceTableEntry: {', '.join(unknown)}")
    values = {name: value for name, value in data.items() if name != 'product_id'}
    if values.get('vat_rate') is None:
        values['vat_rate'] = conf.default_vat_rate()
    entry = PriceTableEntry(price_table=table, product_id=product.product_id, **values)
    if not entry.product_sku:
        entry.product_sku = product.sku
    if not entry.product_name:
        entry.product_name = product.name
    return entry


def _entry_key(entry: PriceTableEntry):
    return entry.product_id, entry.min_quantity


def _conflict_message(entry: PriceTableEntry) -> str:
    return f"Entry for product {entry.product_id} with min_quantity {entry.min_quantity} already exists"


def create_entry(tenant, table_id, *, product_id, **values) -> PriceTableEntry:
    """Add a product price to a table.

    price_gross is derived from price_net and vat_rate when omitted;
    vat_rate defaults to PRICING_DEFAULT_VAT_RATE. SKU and name are
    snapshotted from the product unless given.

    Raises:
        NotFoundError: table or product not owned by the tenant
        PricingValidationError: negative amounts, inverted ranges or windows
        ConflictError: (table, product, min_quantity) already priced
    """
    table = get_table(tenant, table_id)
    product = get_product_info(tenant, product_id)
    if product is None:
        raise NotFoundError('Product', product_id)

    entry = _build_entry(table, product, values)
    raise_if_errors(_normalize_entry(entry), "Invalid price table entry")

    conflict = _conflict_message(entry)
    if table.entries.filter(product_id=entry.product_id, min_quantity=entry.min_quantity).exists():
        raise ConflictError(conflict)
    with atomic_write(conflict):
        entry.save()

    logger.info(f"Created price entry for product {entry.product_id} in table {table.code}")
    return entry


def update_entry(tenant, entry_id, **changes) -> PriceTableEntry:
    """Update an entry. Changing price_net or vat_rate without a price_gross re-derives the gross."""
    entry = get_entry(tenant, entry_id)
    apply_changes(entry, changes, ENTRY_FIELDS)
    if changes.keys() & {'price_net', 'vat_rate'} and 'price_gross' not in changes:
        entry.price_gross = None
    raise_if_errors(_normalize_entry(entry), "Invalid price table entry")

    conflict = _conflict_message(entry)
    if 'min_quantity' in changes:
        siblings = PriceTableEntry.objects.filter(
            price_table_id=entry.price_table_id,
            product_id=entry.product_id,
            min_quantity=entry.min_quantity,
        ).exclude(pk=entry.pk)
        if siblings.exists():
            raise ConflictError(conflict)
    with atomic_write(conflict):
        entry.save()

    logger.info(f"Updated price entry {entry.pk}")
    return entry


def delete_entry(tenant, entry_id) -> None:
    entry = get_entry(tenant, entry_id)
    entry.delete()
    logger.info(f"Deleted price entry {entry_id}")


def bulk_create_entries(tenant, table_id, entries) -> int:
    """Insert many entries at once and return how many were created.

    Rows whose (product, min_quantity) key is already priced in the table,
    or repeats an earlier row of the same batch, are skipped. Every row is
    validated before anything is written.

    Raises:
        ConflictError: a colliding row was written concurrently; nothing is created
    """
    table = get_table(tenant, table_id)
    rows = list(entries)
    products = get_products_info(tenant, [row.get('product_id') for row in rows])
    Product = get_product_model()

    built = []
    errors = []
    for index, row in enumerate(rows):
        pk = coerce_pk(Product, row.get('product_id'))
        if pk not in products:
            raise NotFoundError('Product', row.get('product_id'))
        entry = _build_entry(table, products[pk], row)
        errors.extend(f"Entry {index}: {message}" for message in _normalize_entry(entry))
        built.append(entry)
    raise_if_errors(errors, "Invalid price table entries")

    seen = set(table.entries.values_list('product_id', 'min_quantity'))
    fresh = []
    for entry in built:
        key = _entry_key(entry)
        if key in seen:
            continue
        seen.add(key)
        fresh.append(entry)

    with atomic_write(f"Entries for table {table.code} collide with rows written concurrently"):
        PriceTableEntry.objects.bulk_create(fresh)

    skipped = len(built) - len(fresh)
    if skipped:
        logger.info(f"Skipped {skipped} colliding entries for table {table.code}")
    logger.info(f"Bulk created {len(fresh)} entries in table {table.code}")
    return len(fresh)


def bulk_update_prices(
    tenant,
    table_id,
    adjustment_percent,
    *,
    product_ids=None,
    round_to=Decimal('0.01'),
) -> int:
    """Scale net and gross prices by (1 + adjustment_percent/100).

    Each new price is rounded to the nearest multiple of round_to. Only
    entries for product_ids are touched when given. Returns the number of
    entries updated.
    """
    table = get_table(tenant, table_id)
    adjustment_percent = to_decimal(adjustment_percent)
    round_to = to_decimal(round_to)
    errors = []
    if adjustment_percent < -100:
        errors.append("adjustment_percent must not be below -100")
    if round_to <= 0:
        errors.append("round_to must be positive")
    raise_if_errors(errors, "Invalid price adjustment")

    now = timezone.now()
    with transaction.atomic():
        queryset = PriceTableEntry.objects.select_for_update().filter(price_table=table)
        if product_ids:
            Product = get_product_model()
            pks = [pk for pk in (coerce_pk(Product, value) for value in product_ids) if pk is not None]
            queryset = queryset.filter(product_id__in=pks)
        entries = list(queryset)
        for entry in entries:
            entry.price_net = round_to_increment(apply_percent(entry.price_net, adjustment_percent), round_to)
            entry.price_gross = round_to_increment(apply_percent(entry.price_gross, adjustment_percent), round_to)
            entry.updated_at = now
        PriceTableEntry.objects.bulk_update(entries, ['price_net', 'price_gross', 'updated_at'])

    logger.info(f"Adjusted {len(entries)} prices in table {table.code} by {adjustment_percent}%")
    return len(entries)
