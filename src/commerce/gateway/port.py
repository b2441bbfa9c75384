"""Payment gateway port (abstract interface).

The pipeline needs three things from a gateway: start a payment that carries
an order-correlation token, read back the authoritative status of a payment,
and list the payment methods a buyer can choose from.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

SUCCESS = "success"


@dataclass(frozen=True)
class PaymentSession:
    """A payment the buyer still has to complete on the gateway's page."""

    gateway_payment_id: str
    payment_url: str
    correlation_token: str


@dataclass(frozen=True)
class GatewayPayment:
    """Authoritative payment state as reported by the gateway."""

    gateway_payment_id: str
    status: str
    amount: float | None = None
    currency: str | None = None
    transaction_id: str | None = None
    correlation_token: str | None = None
    payment_method: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        # Anything that is not an explicit success counts as a failure
        return (self.status or "").strip().lower() == SUCCESS


@dataclass(frozen=True)
class PaymentMethodOption:
    method_id: str
    name: str
    code: str | None = None
    service_charge: float = 0.0


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "gateway"

    @abstractmethod
    def create_payment(
        self,
        amount: float,
        currency: str,
        correlation_token: str,
        customer: dict | None = None,
        payment_method_id: str | None = None,
    ) -> PaymentSession:
        """Open a payment. ``correlation_token`` must come back in ``get_payment_status``."""
        ...

    @abstractmethod
    def get_payment_status(self, gateway_payment_id: str) -> GatewayPayment:
        """Raise ``PaymentNotFound`` for unknown ids and ``GatewayTimeout`` when the call times out."""
        ...

    @abstractmethod
    def list_payment_methods(self, amount: float, currency: str) -> list[PaymentMethodOption]: ...
