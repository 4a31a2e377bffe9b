"""QuerySet helpers for tenant scoping and validity windows."""
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone


class PricingQuerySet(models.QuerySet):
    """
    QuerySet for tenant-owned records with a validity period.

    Query pattern: (valid_from IS NULL OR valid_from <= ts)
                   AND (valid_to IS NULL OR valid_to > ts)

    Windows are half-open: a record whose valid_to equals the timestamp
    is already expired. A null bound is open-ended.
    """

    def for_tenant(self, tenant):
        return self.filter(tenant=tenant)

    def active(self):
        return self.filter(is_active=True)

    def as_of(self, timestamp):
        """
        Return records that were valid at the given timestamp.

        Args:
            timestamp: The datetime to query as of

        Returns:
            QuerySet filtered to records valid at the timestamp
        """
        return self.filter(
            Q(valid_from__isnull=True) | Q(valid_from__lte=timestamp)
        ).filter(
            Q(valid_to__isnull=True) | Q(valid_to__gt=timestamp)
        )

    def current(self):
        """Convenience method equivalent to as_of(timezone.now())."""
        return self.as_of(timezone.now())


class PriceTableQuerySet(PricingQuerySet):

    def defaults(self):
        """Default tables, best candidate first (priority desc, name asc)."""
        return self.filter(is_default=True).order_by('-priority', 'name')


class PriceTableEntryQuerySet(models.QuerySet):

    def for_tenant(self, tenant):
        return self.filter(price_table__tenant=tenant)

    def active(self):
        return self.filter(is_active=True)

    def for_quantity(self, quantity):
        """Entries whose [min_quantity, max_quantity] tier contains quantity."""
        quantity = Decimal(str(quantity))
        return self.filter(min_quantity__lte=quantity).filter(
            Q(max_quantity__isnull=True) | Q(max_quantity__gte=quantity)
        )

    def best_tier(self, price_table, product_id, quantity):
        """
        Return the qualifying entry with the highest min_quantity, or None.

        The best qualifying tier wins: for quantity 25 with tiers starting
        at 1, 10 and 50, the tier starting at 10 is returned.
        """
        return (
            self.filter(price_table=price_table, product_id=product_id)
            .active()
            .for_quantity(quantity)
            .order_by('-min_quantity')
            .first()
        )
