"""Shared fixtures for django-pricing tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from django_pricing.services import catalog


@pytest.fixture
def tenant():
    from tests.testapp.models import Tenant
    return Tenant.objects.create(name='Acme', code='acme')


@pytest.fixture
def other_tenant():
    from tests.testapp.models import Tenant
    return Tenant.objects.create(name='Globex', code='globex')


@pytest.fixture
def make_product(tenant):
    from tests.testapp.models import Product

    def _make(name='Oak Door', price=Decimal('123.00'), owner=None, **kwargs):
        return Product.objects.create(tenant=owner or tenant, name=name, price=price, **kwargs)

    return _make


@pytest.fixture
def product(make_product):
    return make_product(sku='DOOR-OAK', category='DOORS', unit='pcs')


@pytest.fixture
def customer(tenant):
    from tests.testapp.models import Customer
    return Customer.objects.create(tenant=tenant, name='Jan Kowalski')


@pytest.fixture
def yesterday():
    return timezone.now() - timedelta(days=1)


@pytest.fixture
def default_table(tenant, yesterday):
    return catalog.create_table(
        tenant, code='RETAIL', name='Retail', valid_from=yesterday, is_default=True,
    )


@pytest.fixture
def wholesale_table(tenant, yesterday):
    return catalog.create_table(
        tenant, code='WHOLESALE', name='Wholesale', valid_from=yesterday,
        price_type='WHOLESALE', priority=10,
    )
