"""Tests for pricing models and their database constraints."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from django_pricing.models import (
    CustomerPricing,
    PriceCategory,
    PriceTable,
    PriceTableEntry,
    ProductCost,
)


@pytest.mark.django_db
class TestProductCostTotal:
    """total_cost is derived from the cost components on save."""

    def test_total_cost_sums_components(self, tenant, product):
        cost = ProductCost.objects.create(
            tenant=tenant,
            product=product,
            purchase_price=Decimal('100.00'),
            purchase_currency='PLN',
            shipping_cost=Decimal('10.00'),
            handling_cost=Decimal('5.00'),
            other_costs=Decimal('2.50'),
        )
        cost.refresh_from_db()
        assert cost.total_cost == Decimal('117.50')

    def test_update_fields_save_persists_total(self, tenant, product):
        cost = ProductCost.objects.create(
            tenant=tenant, product=product, purchase_price=Decimal('100'), purchase_currency='PLN',
        )
        cost.customs_cost = Decimal('20')
        cost.save(update_fields=['customs_cost'])

        cost.refresh_from_db()
        assert cost.total_cost == Decimal('120.00')

    def test_cost_basis_falls_back_to_purchase_price(self):
        cost = ProductCost(purchase_price=Decimal('10'), total_cost=None)
        assert cost.cost_basis == Decimal('10')


@pytest.mark.django_db
class TestDefaultConstraints:
    """Partial unique constraints back every default flag."""

    def test_two_default_tables_rejected(self, tenant):
        PriceTable.objects.create(tenant=tenant, code='A', name='A', currency='PLN', is_default=True)
        with pytest.raises(IntegrityError), transaction.atomic():
            PriceTable.objects.create(tenant=tenant, code='B', name='B', currency='PLN', is_default=True)

    def test_default_tables_in_different_tenants_allowed(self, tenant, other_tenant):
        PriceTable.objects.create(tenant=tenant, code='A', name='A', currency='PLN', is_default=True)
        PriceTable.objects.create(tenant=other_tenant, code='A', name='A', currency='PLN', is_default=True)
        assert PriceTable.objects.filter(is_default=True).count() == 2

    def test_two_default_categories_rejected(self, tenant):
        PriceCategory.objects.create(tenant=tenant, code='A', name='A', is_default=True)
        with pytest.raises(IntegrityError), transaction.atomic():
            PriceCategory.objects.create(tenant=tenant, code='B', name='B', is_default=True)

    def test_two_active_customer_pricings_rejected(self, tenant, customer):
        CustomerPricing.objects.create(tenant=tenant, customer=customer)
        with pytest.raises(IntegrityError), transaction.atomic():
            CustomerPricing.objects.create(tenant=tenant, customer=customer)

    def test_inactive_customer_pricing_does_not_collide(self, tenant, customer):
        CustomerPricing.objects.create(tenant=tenant, customer=customer, is_active=False)
        CustomerPricing.objects.create(tenant=tenant, customer=customer)
        assert CustomerPricing.objects.filter(customer=customer).count() == 2

    def test_table_window_must_not_be_inverted(self, tenant):
        now = timezone.now()
        with pytest.raises(IntegrityError), transaction.atomic():
            PriceTable.objects.create(
                tenant=tenant, code='A', name='A', currency='PLN',
                valid_from=now, valid_to=now - timedelta(days=1),
            )

    def test_entry_tier_key_unique(self, default_table, product):
        PriceTableEntry.objects.create(
            price_table=default_table, product=product,
            price_net=Decimal('1'), price_gross=Decimal('1.23'), vat_rate=Decimal('23'),
        )
        with pytest.raises(IntegrityError), transaction.atomic():
            PriceTableEntry.objects.create(
                price_table=default_table, product=product,
                price_net=Decimal('2'), price_gross=Decimal('2.46'), vat_rate=Decimal('23'),
            )


class TestWindows:
    """Validity windows are half-open [from, to)."""

    def test_table_valid_at(self):
        start = timezone.now()
        end = start + timedelta(days=10)
        table = PriceTable(valid_from=start, valid_to=end)

        assert table.is_valid_at(start)
        assert table.is_valid_at(end - timedelta(seconds=1))
        assert not table.is_valid_at(end)
        assert not table.is_valid_at(start - timedelta(seconds=1))

    def test_open_ended_table(self):
        start = timezone.now()
        table = PriceTable(valid_from=start, valid_to=None)
        assert table.is_valid_at(start + timedelta(days=3650))

    def test_promo_window(self):
        start = timezone.now()
        end = start + timedelta(days=7)
        entry = PriceTableEntry(promo_price=Decimal('9.99'), promo_valid_from=start, promo_valid_to=end)

        assert entry.promo_active_at(start)
        assert not entry.promo_active_at(end)

    def test_promo_without_price_is_never_active(self):
        entry = PriceTableEntry(promo_price=None)
        assert not entry.promo_active_at(timezone.now())


@pytest.mark.django_db
class TestCategoryTree:
    """Tests for category ancestry."""

    def test_ancestors_nearest_first(self, tenant):
        root = PriceCategory.objects.create(tenant=tenant, code='RETAIL', name='Retail')
        mid = PriceCategory.objects.create(tenant=tenant, code='ONLINE', name='Online', parent=root)
        leaf = PriceCategory.objects.create(tenant=tenant, code='APP', name='App', parent=mid)

        assert [c.code for c in leaf.ancestors()] == ['ONLINE', 'RETAIL']
        assert list(root.ancestors()) == []


def test_available_credit():
    pricing = CustomerPricing(credit_limit=Decimal('1000'), credit_used=Decimal('250'))
    assert pricing.available_credit == Decimal('750')
    assert CustomerPricing(credit_limit=None).available_credit is None
