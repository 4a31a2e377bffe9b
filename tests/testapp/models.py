"""Test models for django-pricing tests."""

from django.db import models


class Tenant(models.Model):
    """Simple tenant model for testing pricing."""

    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, unique=True)

    class Meta:
        app_label = 'testapp'

    def __str__(self):
        return self.name


class Product(models.Model):
    """Product catalog row; price is the gross base price."""

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=100, blank=True, default='')
    price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    category = models.CharField(max_length=50, blank=True, default='')
    unit = models.CharField(max_length=20, blank=True, default='pcs')

    class Meta:
        app_label = 'testapp'

    def __str__(self):
        return self.name


class Customer(models.Model):
    """Simple customer model for testing pricing."""

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='customers')
    name = models.CharField(max_length=200)

    class Meta:
        app_label = 'testapp'

    def __str__(self):
        return self.name
