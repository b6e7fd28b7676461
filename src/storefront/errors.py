"""Error taxonomy for the storefront domain.

Everything except ``ExternalProviderFailure`` derives from Protean's
exceptions, so the FastAPI integration renders them as 400 (validation)
or 404 (not found) responses.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class NotFound(ObjectNotFoundError):
    def __init__(self, kind: str, reference: str):
        self.kind = kind
        self.reference = reference
        super().__init__({kind: [f"{kind.capitalize()} {reference} not found"]})


class InvalidState(ValidationError):
    """The target is in the wrong state for the requested operation."""

    def __init__(self, message: str, field: str = "status"):
        super().__init__({field: [message]})


class ProductInactive(InvalidState):
    def __init__(self, product_name: str):
        super().__init__(f"Product {product_name} is not available", field="product")


class WindowExpired(InvalidState):
    def __init__(self, days: int):
        self.days = days
        super().__init__(
            f"Request window expired. Requests are accepted within {days} days of delivery",
            field="delivered_at",
        )


class InsufficientStock(ValidationError):
    def __init__(self, product_name: str, available: int):
        self.available = available
        super().__init__({"stock": [f"Insufficient stock for {product_name}. Only {available} available"]})


class InvalidCoupon(ValidationError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__({"coupon_code": [reason]})


class ExternalProviderFailure(Exception):
    """A shipping or checkout provider call failed.

    Never aborts a local operation: callers log it and carry on.
    """

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")
