"""Margin and sale price calculations against a product's cost basis.

Unlike price resolution, a margin without a cost basis is meaningless:
calculate_margin and calculate_sale_price raise MissingCostError instead
of defaulting.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django_pricing import conf
from django_pricing.calculators import HUNDRED, apply_percent, round_money, to_decimal
from django_pricing.catalog import get_products_info
from django_pricing.exceptions import MissingCostError
from django_pricing.models import ProductCost
from django_pricing.services.costs import find_product_cost_by_product

logger = logging.getLogger(__name__)


@dataclass
class MarginResult:
    product_id: str
    purchase_price: Decimal
    total_cost: Decimal
    sale_price: Decimal
    margin_value: Decimal
    margin_percent: Decimal
    is_above_target: bool
    is_below_min_price: bool
    target_margin_percent: Decimal | None = None
    min_sale_price: Decimal | None = None


@dataclass
class SalePriceSuggestion:
    product_id: str
    total_cost: Decimal
    target_margin_percent: Decimal
    suggested_price: Decimal
    min_sale_price: Decimal | None = None


@dataclass
class LowMarginProduct:
    product_id: str
    product_name: str
    product_sku: str
    purchase_price: Decimal
    total_cost: Decimal
    current_price: Decimal
    margin_percent: Decimal
    target_margin_percent: Decimal | None = None


def margin_percent(sale_price: Decimal, total_cost: Decimal) -> Decimal:
    """(sale - cost) / cost * 100, or 0 when there is no positive cost."""
    if total_cost <= 0:
        return Decimal('0')
    return (sale_price - total_cost) / total_cost * HUNDRED


def _require_cost(tenant, product_id, category_id, supplier_id) -> ProductCost:
    cost = find_product_cost_by_product(
        tenant, product_id, category_id=category_id, supplier_id=supplier_id
    )
    if cost is None:
        raise MissingCostError(product_id)
    return cost


def calculate_margin(tenant, product_id, sale_price, *, category_id=None, supplier_id=None) -> MarginResult:
    """Margin of sale_price over the product's cost basis.

    Raises:
        MissingCostError: no cost row exists for the product
    """
    cost = _require_cost(tenant, product_id, category_id, supplier_id)
    sale_price = to_decimal(sale_price)
    total_cost = cost.cost_basis
    percent = margin_percent(sale_price, total_cost)

    target = cost.target_margin_percent
    minimum = cost.min_sale_price
    return MarginResult(
        product_id=str(cost.product_id),
        purchase_price=cost.purchase_price,
        total_cost=total_cost,
        sale_price=sale_price,
        margin_value=round_money(sale_price - total_cost),
        margin_percent=round_money(percent),
        is_above_target=True if target is None else percent >= target,
        is_below_min_price=False if minimum is None else sale_price < minimum,
        target_margin_percent=target,
        min_sale_price=minimum,
    )


def calculate_sale_price(
    tenant,
    product_id,
    target_margin_percent,
    *,
    category_id=None,
    supplier_id=None,
) -> SalePriceSuggestion:
    """Suggest total_cost * (1 + target/100); min_sale_price is passed through.

    Raises:
        MissingCostError: no cost row exists for the product
    """
    cost = _require_cost(tenant, product_id, category_id, supplier_id)
    target_margin_percent = to_decimal(target_margin_percent)
    return SalePriceSuggestion(
        product_id=str(cost.product_id),
        total_cost=cost.cost_basis,
        target_margin_percent=target_margin_percent,
        suggested_price=round_money(apply_percent(cost.cost_basis, target_margin_percent)),
        min_sale_price=cost.min_sale_price,
    )


def calculate_bulk_margins(tenant, items) -> list[MarginResult]:
    """calculate_margin for (product_id, sale_price) pairs; uncosted products are skipped."""
    results = []
    for product_id, sale_price in items:
        try:
            results.append(calculate_margin(tenant, product_id, sale_price))
        except MissingCostError:
            logger.debug(f"Skipping product {product_id}: no cost data")
    return results


def get_products_with_low_margin(tenant, threshold=None) -> list[LowMarginProduct]:
    """Costed, targeted products whose live price margin is below threshold.

    The product's live price comes from the product catalog. One cost row is
    used per product: the default one, else the newest. Products without a
    live price are skipped. Sorted by margin, lowest first.
    """
    threshold = to_decimal(threshold) if threshold is not None else conf.low_margin_threshold()
    costs = (
        ProductCost.objects.for_tenant(tenant)
        .active()
        .filter(target_margin_percent__isnull=False)
        .order_by('product_id', '-is_default', '-valid_from')
    )
    chosen = {}
    for cost in costs:
        chosen.setdefault(cost.product_id, cost)

    products = get_products_info(tenant, list(chosen))
    report = []
    for product_id, cost in chosen.items():
        product = products.get(product_id)
        if product is None or product.base_price is None:
            continue
        percent = margin_percent(product.base_price, cost.cost_basis)
        if percent < threshold:
            report.append(LowMarginProduct(
                product_id=str(product_id),
                product_name=product.name,
                product_sku=product.sku,
                purchase_price=cost.purchase_price,
                total_cost=cost.cost_basis,
                current_price=product.base_price,
                margin_percent=round_money(percent),
                target_margin_percent=cost.target_margin_percent,
            ))
    report.sort(key=lambda item: item.margin_percent)
    logger.info(f"Found {len(report)} products below {threshold}% margin")
    return report
