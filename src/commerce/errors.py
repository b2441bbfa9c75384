"""Typed failures raised by the commerce pipeline.

Recoverable conflicts extend protean's ``InvalidOperationError`` and missing
records extend ``ObjectNotFoundError``, so callers that already handle the
protean hierarchy keep working. ``DataIntegrityError`` sits
outside that hierarchy: nothing in the pipeline catches it.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class ProductNotFound(ObjectNotFoundError):
    def __init__(self, product_id):
        self.product_id = str(product_id)
        super().__init__({"product_id": [f"Product {self.product_id} does not exist"]})

    def __str__(self):
        return f"Product {self.product_id} does not exist"


class ProductInactive(InvalidOperationError):
    def __init__(self, product_id):
        self.product_id = str(product_id)
        super().__init__({"product_id": [f"Product {self.product_id} is not available"]})

    def __str__(self):
        return f"Product {self.product_id} is not available"


class InsufficientStock(InvalidOperationError):
    """Requested quantity exceeds what the ledger holds for a product."""

    def __init__(self, product_id, available, requested):
        self.product_id = str(product_id)
        self.available = available
        self.requested = requested
        super().__init__({"quantity": [str(self)]})

    def __str__(self):
        return f"Insufficient stock for product {self.product_id}: available {self.available}, requested {self.requested}"


class InvalidTransition(InvalidOperationError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__({"status": [str(self)]})

    def __str__(self):
        return f"Cannot transition order from {self.current} to {self.target}"


class AlreadyProcessed(InvalidOperationError):
    def __init__(self, detail):
        self.detail = detail
        super().__init__({"order": [detail]})

    def __str__(self):
        return self.detail


class PaymentNotFound(ObjectNotFoundError):
    def __init__(self, gateway_payment_id):
        self.gateway_payment_id = str(gateway_payment_id)
        super().__init__({"payment_id": [str(self)]})

    def __str__(self):
        return f"Gateway has no payment {self.gateway_payment_id}"


class OrderCorrelationMissing(ValidationError):
    """The gateway payment carries no order reference; needs manual reconciliation."""

    def __init__(self, gateway_payment_id):
        self.gateway_payment_id = str(gateway_payment_id)
        super().__init__({"payment_id": [str(self)]})

    def __str__(self):
        return f"Payment {self.gateway_payment_id} is not linked to any order"


class GatewayError(Exception):
    """The payment gateway could not be reached or answered with garbage."""


class GatewayTimeout(GatewayError):
    pass


class DataIntegrityError(Exception):
    """Stored state contradicts itself. Alert and fix by hand, never auto-resolve."""
