"""Exceptions for django-pricing."""

from django.core.exceptions import ImproperlyConfigured


class PricingError(Exception):
    """Base exception for pricing errors."""

    pass


class NotFoundError(PricingError):
    """Raised when a row is missing or owned by another tenant."""

    def __init__(self, entity: str, identifier=None, message: str | None = None):
        if message is None:
            if identifier is not None:
                message = f"{entity} {identifier} not found"
            else:
                message = f"{entity} not found"
        super().__init__(message)
        self.entity = entity
        self.identifier = identifier


class MissingCostError(NotFoundError):
    """Raised when a margin is requested for a product without cost data."""

    def __init__(self, product_id):
        super().__init__(
            "Product cost",
            product_id,
            message=f"No cost data found for product {product_id}",
        )
        self.product_id = product_id


class ConflictError(PricingError):
    """Raised when a write collides with existing data."""

    pass


class PricingValidationError(PricingError):
    """Raised when input is rejected before any write happens."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or [message]


class PricingConfigError(ImproperlyConfigured):
    """Raised when PRICING_* settings are missing or invalid."""

    pass
