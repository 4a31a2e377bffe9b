"""Pricing calculators.

Pure functions and value objects with no database access:
- money rounding and rounding to a price increment
- surcharge formulas (one tagged value per surcharge type)
- min/max clamping
- order context used to pick each surcharge's base metric
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, NamedTuple

from django_pricing.exceptions import PricingValidationError
from django_pricing.models import SurchargeType


HUNDRED = Decimal('100')


def to_decimal(value) -> Decimal:
    """Convert ints, floats, strings and Decimals without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round to specified decimal places, halves away from zero."""
    quantize_str = "0." + "0" * places if places else "1"
    return to_decimal(amount).quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def round_to_increment(amount: Decimal, increment: Decimal) -> Decimal:
    """Round to the nearest multiple of increment (0.01, 0.5, 1, 5, ...)."""
    increment = to_decimal(increment)
    if increment <= 0:
        raise PricingValidationError(f"Rounding increment must be positive, got {increment}")
    steps = (to_decimal(amount) / increment).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return round_money(steps * increment)


def apply_percent(amount: Decimal, percent: Decimal) -> Decimal:
    """amount * (1 + percent/100), unrounded."""
    return to_decimal(amount) * (1 + to_decimal(percent) / HUNDRED)


def net_from_gross(gross: Decimal, vat_rate: Decimal) -> Decimal:
    return to_decimal(gross) / (1 + to_decimal(vat_rate) / HUNDRED)


def clamp(amount: Decimal, min_value: Decimal | None = None, max_value: Decimal | None = None) -> Decimal:
    """Clamp amount into [min_value, max_value]; a None bound is not applied."""
    if min_value is not None and amount < min_value:
        amount = to_decimal(min_value)
    if max_value is not None and amount > max_value:
        amount = to_decimal(max_value)
    return amount


# =============================================================================
# Surcharge formulas
# =============================================================================

class SurchargeTier(NamedTuple):
    """One band of a TIERED surcharge: lower <= base and (upper is None or base <= upper)."""

    lower: Decimal
    upper: Decimal | None
    value: Decimal

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'SurchargeTier':
        try:
            upper = data.get('to')
            return cls(
                lower=to_decimal(data['from']),
                upper=None if upper is None else to_decimal(upper),
                value=to_decimal(data['value']),
            )
        except (AttributeError, KeyError, TypeError, ArithmeticError, ValueError) as e:
            raise PricingValidationError(f"Malformed surcharge tier {data!r}: {e}")

    def contains(self, base_value: Decimal) -> bool:
        return base_value >= self.lower and (self.upper is None or base_value <= self.upper)

    def to_dict(self) -> dict[str, str | None]:
        return {
            'from': str(self.lower),
            'to': None if self.upper is None else str(self.upper),
            'value': str(self.value),
        }


@dataclass(frozen=True)
class SurchargeFormula:
    """Calculation rule for a surcharge type.

    tiers are only carried by TIERED formulas. For TIERED, the first tier
    containing the base value wins; with no matching tier the flat rate
    is used.
    """

    type: str
    rate: Decimal
    tiers: tuple[SurchargeTier, ...] = ()

    def __post_init__(self):
        if self.type not in SurchargeType.values:
            raise PricingValidationError(f"Unknown surcharge type: {self.type}")
        if self.tiers and self.type != SurchargeType.TIERED:
            raise PricingValidationError(f"Tiers are only allowed for TIERED surcharges, not {self.type}")

    @classmethod
    def from_surcharge(cls, surcharge) -> 'SurchargeFormula':
        tiers = ()
        if surcharge.type == SurchargeType.TIERED and surcharge.tiers:
            tiers = tuple(SurchargeTier.from_dict(t) for t in surcharge.tiers)
        return cls(type=surcharge.type, rate=to_decimal(surcharge.value), tiers=tiers)

    def amount(self, base_value) -> Decimal:
        base_value = to_decimal(base_value)

        if self.type == SurchargeType.FIXED:
            return self.rate
        if self.type == SurchargeType.PERCENT:
            return base_value * self.rate / HUNDRED
        if self.type in (
            SurchargeType.PER_M2,
            SurchargeType.PER_MB,
            SurchargeType.PER_KG,
            SurchargeType.PER_UNIT,
        ):
            return base_value * self.rate

        # TIERED
        for tier in self.tiers:
            if tier.contains(base_value):
                return tier.value
        return self.rate


def validate_tiers(tiers) -> list[SurchargeTier]:
    """Parse and check tier ranges. Returns tiers sorted by lower bound.

    Rules:
    - every tier has from >= 0 and, if bounded, to > from
    - only the last tier may be open-ended
    - tiers may touch (previous.to == next.from) but not overlap
    """
    if not isinstance(tiers, (list, tuple)) or not tiers:
        raise PricingValidationError("Tiers must be a non-empty list")

    parsed = sorted((SurchargeTier.from_dict(t) for t in tiers), key=lambda t: t.lower)
    errors = []
    for index, tier in enumerate(parsed):
        if tier.lower < 0:
            errors.append(f"Tier {index}: 'from' must not be negative")
        if tier.upper is not None and tier.upper <= tier.lower:
            errors.append(f"Tier {index}: 'to' must be greater than 'from'")
        if index + 1 < len(parsed):
            following = parsed[index + 1]
            if tier.upper is None:
                errors.append(f"Tier {index}: only the last tier may be open-ended")
            elif following.lower < tier.upper:
                errors.append(f"Tier {index + 1} overlaps tier {index}")
    if errors:
        raise PricingValidationError("Invalid surcharge tiers", errors=errors)
    return parsed


# =============================================================================
# Order context
# =============================================================================

@dataclass(frozen=True)
class OrderContext:
    """Attributes of an order that surcharges are evaluated against."""

    order_value: Decimal
    total_area: Decimal | None = None
    total_length: Decimal | None = None
    total_weight: Decimal | None = None
    total_quantity: Decimal | None = None
    product_ids: tuple = ()
    product_categories: tuple = ()
    surcharge_ids: tuple = ()
    currency: str | None = None
    as_of: Any = None

    def base_for(self, surcharge_type: str, currency: str) -> tuple[Decimal, str]:
        """Return (base_value, base_unit) for a surcharge type."""
        if surcharge_type == SurchargeType.FIXED:
            return Decimal('1'), 'unit'
        if surcharge_type == SurchargeType.PER_M2:
            return to_decimal(self.total_area or 0), 'm2'
        if surcharge_type == SurchargeType.PER_MB:
            return to_decimal(self.total_length or 0), 'm'
        if surcharge_type == SurchargeType.PER_KG:
            return to_decimal(self.total_weight or 0), 'kg'
        if surcharge_type == SurchargeType.PER_UNIT:
            return to_decimal(self.total_quantity or 0), 'pcs'
        return to_decimal(self.order_value), self.currency or currency


@dataclass
class CalculatedSurcharge:
    """Result of evaluating one surcharge. Callers decide what to apply."""

    surcharge_id: str
    code: str
    name: str
    type: str
    rate: Decimal
    base_value: Decimal
    base_unit: str | None
    amount: Decimal
    is_required: bool = False
    is_optional: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            'surcharge_id': self.surcharge_id,
            'code': self.code,
            'name': self.name,
            'type': self.type,
            'rate': str(self.rate),
            'base_value': str(self.base_value),
            'base_unit': self.base_unit,
            'amount': str(self.amount),
            'is_required': self.is_required,
            'is_optional': self.is_optional,
        }
