"""Django settings for django-pricing tests."""

SECRET_KEY = 'test-secret-key-do-not-use-in-production'

DEBUG = True

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.messages',
    'django.contrib.sessions',
    'tests.testapp',
    'django_pricing',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

USE_TZ = True

# Swappable models for tests
PRICING_TENANT_MODEL = 'testapp.Tenant'
PRICING_PRODUCT_MODEL = 'testapp.Product'
PRICING_CUSTOMER_MODEL = 'testapp.Customer'
