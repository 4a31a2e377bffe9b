"""Tests for pure pricing calculators."""

from decimal import Decimal

import pytest

from django_pricing.calculators import (
    CalculatedSurcharge,
    OrderContext,
    SurchargeFormula,
    SurchargeTier,
    clamp,
    round_money,
    round_to_increment,
    validate_tiers,
)
from django_pricing.exceptions import PricingValidationError


OPEN_ENDED_TIERS = (
    SurchargeTier(Decimal('0'), Decimal('1000'), Decimal('50')),
    SurchargeTier(Decimal('1000'), None, Decimal('20')),
)


class TestRounding:
    """Tests for money rounding helpers."""

    def test_round_money_rounds_half_up(self):
        assert round_money(Decimal('2.345')) == Decimal('2.35')
        assert round_money(Decimal('2.344')) == Decimal('2.34')

    def test_round_money_rounds_negative_halves_away_from_zero(self):
        assert round_money(Decimal('-2.345')) == Decimal('-2.35')

    def test_round_money_accepts_floats_without_noise(self):
        assert round_money(0.1 + 0.2) == Decimal('0.30')

    def test_round_to_increment_half(self):
        assert round_to_increment(Decimal('12.34'), Decimal('0.5')) == Decimal('12.50')

    def test_round_to_increment_five(self):
        assert round_to_increment(Decimal('12.34'), 5) == Decimal('10.00')
        assert round_to_increment(Decimal('12.50'), 5) == Decimal('15.00')

    def test_round_to_increment_rejects_non_positive(self):
        with pytest.raises(PricingValidationError):
            round_to_increment(Decimal('10'), 0)


class TestClamp:
    """Tests for min/max clamping."""

    def test_raises_to_minimum(self):
        assert clamp(Decimal('5'), Decimal('10'), None) == Decimal('10')

    def test_lowers_to_maximum(self):
        assert clamp(Decimal('100'), None, Decimal('80')) == Decimal('80')

    def test_without_bounds_is_identity(self):
        assert clamp(Decimal('42.42')) == Decimal('42.42')

    def test_zero_bound_is_applied(self):
        assert clamp(Decimal('-1'), Decimal('0'), None) == Decimal('0')


class TestSurchargeFormula:
    """Tests for per-type surcharge amounts."""

    def test_fixed_ignores_base(self):
        formula = SurchargeFormula('FIXED', Decimal('50'))
        assert formula.amount(1) == Decimal('50')
        assert formula.amount(9999) == Decimal('50')

    def test_percent_of_base(self):
        formula = SurchargeFormula('PERCENT', Decimal('15'))
        assert formula.amount(Decimal('200')) == Decimal('30')

    @pytest.mark.parametrize('surcharge_type', ['PER_M2', 'PER_MB', 'PER_KG', 'PER_UNIT'])
    def test_per_unit_types_multiply(self, surcharge_type):
        formula = SurchargeFormula(surcharge_type, Decimal('25'))
        assert formula.amount(Decimal('4.5')) == Decimal('112.5')

    def test_tiered_open_ended_tier_wins_above_last_bound(self):
        formula = SurchargeFormula('TIERED', Decimal('99'), OPEN_ENDED_TIERS)
        assert formula.amount(Decimal('1500')) == Decimal('20')

    def test_tiered_first_matching_tier_wins_on_shared_bound(self):
        formula = SurchargeFormula('TIERED', Decimal('99'), OPEN_ENDED_TIERS)
        assert formula.amount(Decimal('500')) == Decimal('50')
        assert formula.amount(Decimal('1000')) == Decimal('50')

    def test_tiered_falls_back_to_rate(self):
        tiers = (SurchargeTier(Decimal('100'), Decimal('200'), Decimal('5')),)
        formula = SurchargeFormula('TIERED', Decimal('7'), tiers)
        assert formula.amount(Decimal('50')) == Decimal('7')

    def test_tiered_without_tiers_uses_rate(self):
        assert SurchargeFormula('TIERED', Decimal('7')).amount(Decimal('50')) == Decimal('7')

    def test_tiers_rejected_for_non_tiered_types(self):
        with pytest.raises(PricingValidationError):
            SurchargeFormula('FIXED', Decimal('1'), OPEN_ENDED_TIERS)

    def test_unknown_type_rejected(self):
        with pytest.raises(PricingValidationError):
            SurchargeFormula('PER_LITRE', Decimal('1'))


class TestValidateTiers:
    """Tests for tier range validation."""

    def test_sorts_by_lower_bound(self):
        tiers = validate_tiers([
            {'from': 1000, 'to': None, 'value': 20},
            {'from': 0, 'to': 1000, 'value': 50},
        ])
        assert [t.lower for t in tiers] == [Decimal('0'), Decimal('1000')]

    def test_touching_tiers_are_allowed(self):
        tiers = validate_tiers([
            {'from': 0, 'to': 100, 'value': 1},
            {'from': 100, 'to': 200, 'value': 2},
        ])
        assert len(tiers) == 2

    def test_overlap_rejected(self):
        with pytest.raises(PricingValidationError) as exc_info:
            validate_tiers([
                {'from': 0, 'to': 150, 'value': 1},
                {'from': 100, 'to': 200, 'value': 2},
            ])
        assert 'Tier 1 overlaps tier 0' in exc_info.value.errors

    def test_open_ended_tier_must_be_last(self):
        with pytest.raises(PricingValidationError):
            validate_tiers([
                {'from': 0, 'to': None, 'value': 1},
                {'from': 100, 'to': 200, 'value': 2},
            ])

    def test_to_must_exceed_from(self):
        with pytest.raises(PricingValidationError):
            validate_tiers([{'from': 10, 'to': 10, 'value': 1}])

    def test_negative_from_rejected(self):
        with pytest.raises(PricingValidationError):
            validate_tiers([{'from': -1, 'to': 10, 'value': 1}])

    def test_empty_list_rejected(self):
        with pytest.raises(PricingValidationError):
            validate_tiers([])

    @pytest.mark.parametrize('bad', [{'to': 10, 'value': 1}, {'from': 'x', 'value': 1}, 'not-a-tier'])
    def test_malformed_tier_rejected(self, bad):
        with pytest.raises(PricingValidationError):
            validate_tiers([bad])


class TestOrderContext:
    """Tests for surcharge base selection."""

    def setup_method(self):
        self.order = OrderContext(
            order_value=Decimal('1500'),
            total_area=Decimal('12.5'),
            total_length=Decimal('30'),
            total_weight=Decimal('80'),
            total_quantity=Decimal('4'),
        )

    def test_fixed_uses_constant_one(self):
        assert self.order.base_for('FIXED', 'PLN') == (Decimal('1'), 'unit')

    def test_percent_and_tiered_use_order_value(self):
        assert self.order.base_for('PERCENT', 'PLN') == (Decimal('1500'), 'PLN')
        assert self.order.base_for('TIERED', 'PLN') == (Decimal('1500'), 'PLN')

    def test_order_currency_wins(self):
        order = OrderContext(order_value=Decimal('10'), currency='EUR')
        assert order.base_for('PERCENT', 'PLN') == (Decimal('10'), 'EUR')

    def test_per_types_use_their_metric(self):
        assert self.order.base_for('PER_M2', 'PLN') == (Decimal('12.5'), 'm2')
        assert self.order.base_for('PER_MB', 'PLN') == (Decimal('30'), 'm')
        assert self.order.base_for('PER_KG', 'PLN') == (Decimal('80'), 'kg')
        assert self.order.base_for('PER_UNIT', 'PLN') == (Decimal('4'), 'pcs')

    def test_missing_metric_is_zero(self):
        order = OrderContext(order_value=Decimal('10'))
        assert order.base_for('PER_KG', 'PLN') == (Decimal('0'), 'kg')


def test_calculated_surcharge_to_dict_is_json_safe():
    result = CalculatedSurcharge(
        surcharge_id='abc',
        code='TRANSPORT',
        name='Transport',
        type='FIXED',
        rate=Decimal('50'),
        base_value=Decimal('1'),
        base_unit='unit',
        amount=Decimal('50.00'),
    )
    data = result.to_dict()
    assert data['amount'] == '50.00'
    assert data['is_optional'] is True
