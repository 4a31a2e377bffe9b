"""Tests for surcharge services."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from django_pricing.calculators import OrderContext
from django_pricing.exceptions import ConflictError, NotFoundError, PricingValidationError
from django_pricing.models import Surcharge
from django_pricing.services import surcharges


SHIPPING_TIERS = [
    {'from': 0, 'to': 1000, 'value': 50},
    {'from': 1000, 'to': None, 'value': 20},
]


def make_surcharge(tenant, code, type='FIXED', value='10', **options):
    return surcharges.create_surcharge(
        tenant, code=code, name=code.title(), type=type, value=Decimal(value), **options
    )


def codes(results):
    return [result.code for result in results]


@pytest.mark.django_db
class TestSurchargeCatalog:
    """Tests for surcharge CRUD and validation."""

    def test_create_surcharge(self, tenant):
        surcharge = make_surcharge(tenant, 'TRANSPORT', value='50')

        assert surcharge.pk is not None
        assert surcharge.value == Decimal('50')
        assert surcharge.applies_to_categories is None

    def test_duplicate_code_conflicts(self, tenant):
        make_surcharge(tenant, 'TRANSPORT')
        with pytest.raises(ConflictError):
            make_surcharge(tenant, 'TRANSPORT')

    def test_unknown_type_rejected(self, tenant):
        with pytest.raises(PricingValidationError):
            make_surcharge(tenant, 'X', type='PER_LITRE')

    def test_negative_value_rejected(self, tenant):
        with pytest.raises(PricingValidationError):
            make_surcharge(tenant, 'X', value='-1')

    def test_min_above_max_rejected(self, tenant):
        with pytest.raises(PricingValidationError) as exc_info:
            make_surcharge(tenant, 'X', min_value=Decimal('50'), max_value=Decimal('10'))
        assert 'min_value must not exceed max_value' in exc_info.value.errors

    def test_empty_allow_list_rejected(self, tenant):
        with pytest.raises(PricingValidationError):
            make_surcharge(tenant, 'X', applies_to_categories=[])

    def test_tiers_only_for_tiered(self, tenant):
        with pytest.raises(PricingValidationError):
            make_surcharge(tenant, 'X', type='FIXED', tiers=SHIPPING_TIERS)

    def test_overlapping_tiers_rejected(self, tenant):
        tiers = [{'from': 0, 'to': 500, 'value': 5}, {'from': 400, 'to': None, 'value': 1}]
        with pytest.raises(PricingValidationError) as exc_info:
            make_surcharge(tenant, 'X', type='TIERED', tiers=tiers)
        assert 'Tier 1 overlaps tier 0' in exc_info.value.errors
        assert not Surcharge.objects.exists()

    def test_tiers_are_stored_sorted(self, tenant):
        surcharge = make_surcharge(tenant, 'SHIP', type='TIERED', tiers=list(reversed(SHIPPING_TIERS)))
        surcharge.refresh_from_db()

        assert [tier['from'] for tier in surcharge.tiers] == ['0', '1000']
        assert surcharge.tiers[1]['to'] is None

    def test_type_change_clears_tiers(self, tenant):
        surcharge = make_surcharge(tenant, 'SHIP', type='TIERED', tiers=SHIPPING_TIERS)
        updated = surcharges.update_surcharge(tenant, surcharge.pk, type='FIXED')

        assert updated.tiers is None

    def test_get_surcharge_other_tenant_not_found(self, tenant, other_tenant):
        surcharge = make_surcharge(tenant, 'TRANSPORT')
        with pytest.raises(NotFoundError):
            surcharges.get_surcharge(other_tenant, surcharge.pk)

    def test_get_by_code(self, tenant):
        surcharge = make_surcharge(tenant, 'TRANSPORT')
        assert surcharges.get_surcharge_by_code(tenant, 'TRANSPORT') == surcharge
        with pytest.raises(NotFoundError):
            surcharges.get_surcharge_by_code(tenant, 'MISSING')

    def test_list_filters(self, tenant):
        now = timezone.now()
        make_surcharge(tenant, 'A', sort_order=2, is_required=True)
        make_surcharge(tenant, 'B', sort_order=1, valid_from=now + timedelta(days=1))

        assert [s.code for s in surcharges.list_surcharges(tenant)] == ['B', 'A']
        assert [s.code for s in surcharges.list_surcharges(tenant, valid_at=now)] == ['A']
        assert [s.code for s in surcharges.list_surcharges(tenant, is_required=True)] == ['A']

    def test_delete(self, tenant):
        surcharge = make_surcharge(tenant, 'TRANSPORT')
        surcharges.delete_surcharge(tenant, surcharge.pk)
        assert not Surcharge.objects.exists()


@pytest.mark.django_db
class TestSeedDefaults:
    """Tests for seed_default_surcharges."""

    def test_seeds_standard_set_once(self, tenant):
        created = surcharges.seed_default_surcharges(tenant)

        assert [s.code for s in created] == ['TRANSPORT', 'ASSEMBLY', 'EXPRESS', 'PACKAGING']
        assert surcharges.seed_default_surcharges(tenant) == []
        assert Surcharge.objects.filter(tenant=tenant).count() == 4

    def test_keeps_existing_codes(self, tenant):
        make_surcharge(tenant, 'TRANSPORT', value='99')

        created = surcharges.seed_default_surcharges(tenant)

        assert len(created) == 3
        assert surcharges.get_surcharge_by_code(tenant, 'TRANSPORT').value == Decimal('99')


@pytest.mark.django_db
class TestCalculateSingle:
    """Tests for evaluating one surcharge."""

    def test_tiered_open_ended_band(self, tenant):
        surcharge = make_surcharge(tenant, 'SHIP', type='TIERED', value='99', tiers=SHIPPING_TIERS)

        result = surcharges.calculate_single(tenant, surcharge.pk, Decimal('1500'))

        assert result.amount == Decimal('20.00')
        assert result.surcharge_id == str(surcharge.pk)

    def test_minimum_applied_after_tier(self, tenant):
        surcharge = make_surcharge(
            tenant, 'SHIP', type='TIERED', value='99', tiers=SHIPPING_TIERS, min_value=Decimal('25'),
        )
        assert surcharges.calculate_single(tenant, surcharge.pk, Decimal('1500')).amount == Decimal('25.00')

    def test_maximum_caps_amount(self, tenant):
        surcharge = make_surcharge(tenant, 'EXPRESS', type='PERCENT', value='15', max_value=Decimal('100'))
        assert surcharges.calculate_single(tenant, surcharge.pk, Decimal('1000')).amount == Decimal('100.00')

    def test_percent_rounds_half_up(self, tenant):
        surcharge = make_surcharge(tenant, 'EXPRESS', type='PERCENT', value='15')

        result = surcharges.calculate_single(tenant, surcharge.pk, Decimal('99.99'))

        assert result.amount == Decimal('15.00')

    def test_per_unit_base(self, tenant):
        surcharge = make_surcharge(tenant, 'ASSEMBLY', type='PER_M2', value='25')

        result = surcharges.calculate_single(tenant, surcharge.pk, Decimal('3.5'), 'm2')

        assert result.amount == Decimal('87.50')
        assert result.base_unit == 'm2'

    def test_other_tenant_not_found(self, tenant, other_tenant):
        surcharge = make_surcharge(tenant, 'TRANSPORT')
        with pytest.raises(NotFoundError):
            surcharges.calculate_single(other_tenant, surcharge.pk, 1)


@pytest.mark.django_db
class TestCalculateMultiple:
    """Tests for evaluating all applicable surcharges for an order."""

    def test_inactive_and_out_of_window_excluded(self, tenant):
        now = timezone.now()
        make_surcharge(tenant, 'LIVE')
        make_surcharge(tenant, 'OFF', is_active=False)
        make_surcharge(tenant, 'OLD', valid_from=now - timedelta(days=10), valid_to=now - timedelta(days=1))
        make_surcharge(tenant, 'SOON', valid_from=now + timedelta(days=1))

        results = surcharges.calculate_multiple(tenant, OrderContext(order_value=Decimal('100')))

        assert codes(results) == ['LIVE']

    def test_as_of_selects_window(self, tenant):
        now = timezone.now()
        make_surcharge(tenant, 'SOON', valid_from=now + timedelta(days=1))

        order = OrderContext(order_value=Decimal('100'), as_of=now + timedelta(days=2))

        assert codes(surcharges.calculate_multiple(tenant, order)) == ['SOON']

    def test_order_value_gate_is_inclusive(self, tenant):
        make_surcharge(tenant, 'BIG', min_order_value=Decimal('100'))
        make_surcharge(tenant, 'SMALL', max_order_value=Decimal('99.99'))

        assert codes(surcharges.calculate_multiple(tenant, OrderContext(order_value=Decimal('100')))) == ['BIG']
        assert codes(surcharges.calculate_multiple(tenant, OrderContext(order_value=Decimal('99.99')))) == ['SMALL']

    def test_category_allow_list(self, tenant):
        make_surcharge(tenant, 'DOORS_ONLY', applies_to_categories=['DOORS'])
        make_surcharge(tenant, 'ANY')

        doors = OrderContext(order_value=Decimal('100'), product_categories=('DOORS',))
        windows = OrderContext(order_value=Decimal('100'), product_categories=('WINDOWS',))
        unknown = OrderContext(order_value=Decimal('100'))

        assert codes(surcharges.calculate_multiple(tenant, doors)) == ['ANY', 'DOORS_ONLY']
        assert codes(surcharges.calculate_multiple(tenant, windows)) == ['ANY']
        assert codes(surcharges.calculate_multiple(tenant, unknown)) == ['ANY', 'DOORS_ONLY']

    def test_product_allow_list_compares_as_strings(self, tenant, product):
        make_surcharge(tenant, 'OAK', applies_to_products=[str(product.pk)])

        order = OrderContext(order_value=Decimal('100'), product_ids=(product.pk,))
        other = OrderContext(order_value=Decimal('100'), product_ids=(product.pk + 1,))

        assert codes(surcharges.calculate_multiple(tenant, order)) == ['OAK']
        assert surcharges.calculate_multiple(tenant, other) == []

    def test_surcharge_ids_restrict_selection(self, tenant):
        wanted = make_surcharge(tenant, 'A')
        make_surcharge(tenant, 'B')

        order = OrderContext(order_value=Decimal('100'), surcharge_ids=(wanted.pk,))

        assert codes(surcharges.calculate_multiple(tenant, order)) == ['A']

    def test_bases_follow_type(self, tenant):
        make_surcharge(tenant, 'TRANSPORT', value='50', sort_order=1)
        make_surcharge(tenant, 'ASSEMBLY', type='PER_M2', value='25', sort_order=2)
        make_surcharge(tenant, 'EXPRESS', type='PERCENT', value='15', sort_order=3)
        make_surcharge(tenant, 'FREIGHT', type='PER_KG', value='0.5', sort_order=4)

        order = OrderContext(order_value=Decimal('2000'), total_area=Decimal('4'), total_weight=Decimal('120'))
        results = {result.code: result for result in surcharges.calculate_multiple(tenant, order)}

        assert results['TRANSPORT'].amount == Decimal('50.00')
        assert results['ASSEMBLY'].amount == Decimal('100.00')
        assert results['EXPRESS'].amount == Decimal('300.00')
        assert results['EXPRESS'].base_unit == 'PLN'
        assert results['FREIGHT'].amount == Decimal('60.00')
        assert results['FREIGHT'].base_unit == 'kg'

    def test_flags_carried_and_nothing_dropped(self, tenant):
        make_surcharge(tenant, 'MUST', is_required=True, is_optional=False)
        make_surcharge(tenant, 'MAYBE')

        results = surcharges.calculate_multiple(tenant, OrderContext(order_value=Decimal('10')))
        by_code = {result.code: result for result in results}

        assert by_code['MUST'].is_required is True
        assert by_code['MUST'].is_optional is False
        assert by_code['MAYBE'].is_optional is True

    def test_ordered_by_sort_order_then_name(self, tenant):
        make_surcharge(tenant, 'ZULU', sort_order=1)
        make_surcharge(tenant, 'BRAVO', sort_order=2)
        make_surcharge(tenant, 'ALPHA', sort_order=2)

        results = surcharges.calculate_multiple(tenant, OrderContext(order_value=Decimal('10')))

        assert codes(results) == ['ZULU', 'ALPHA', 'BRAVO']

    def test_other_tenant_surcharges_ignored(self, tenant, other_tenant):
        make_surcharge(other_tenant, 'FOREIGN')
        assert surcharges.calculate_multiple(tenant, OrderContext(order_value=Decimal('10'))) == []
