"""Configurable fake payment gateway for development and testing.

Payments live in memory. Tests open one with ``create_payment`` (or
``register_payment``), settle it with ``settle`` and then drive verification
exactly as a real callback would.
"""

from uuid import uuid4

from commerce.errors import GatewayTimeout, PaymentNotFound
from commerce.gateway.port import SUCCESS, GatewayPayment, PaymentGateway, PaymentMethodOption, PaymentSession


class FakeGateway(PaymentGateway):
    name = "fake"

    def __init__(self) -> None:
        self.payments: dict[str, GatewayPayment] = {}
        self.calls: list[dict] = []
        self.times_out = False
        self.methods = [
            PaymentMethodOption(method_id="1", name="KNET", code="kn"),
            PaymentMethodOption(method_id="2", name="VISA/MASTER", code="vm", service_charge=0.25),
        ]

    def configure(self, times_out: bool = False) -> None:
        """Configure gateway behavior at runtime."""
        self.times_out = times_out

    def _record(self, method, **kwargs):
        self.calls.append({"method": method, **kwargs})
        if self.times_out:
            raise GatewayTimeout(f"Fake gateway timed out on {method}")

    def create_payment(self, amount, currency, correlation_token, customer=None, payment_method_id=None):
        self._record(
            "create_payment",
            amount=amount,
            currency=currency,
            correlation_token=correlation_token,
            payment_method_id=payment_method_id,
        )
        payment_id = f"fake_pay_{uuid4().hex[:12]}"
        self.payments[payment_id] = GatewayPayment(
            gateway_payment_id=payment_id,
            status="pending",
            amount=amount,
            currency=currency,
            correlation_token=correlation_token,
            payment_method=payment_method_id,
        )
        return PaymentSession(
            gateway_payment_id=payment_id,
            payment_url=f"https://fake-gateway.test/pay/{payment_id}",
            correlation_token=correlation_token,
        )

    def register_payment(self, gateway_payment_id, status, amount=None, correlation_token=None, **extra):
        """Seed a payment directly, as if the buyer had already been through the gateway."""
        self.payments[gateway_payment_id] = GatewayPayment(
            gateway_payment_id=gateway_payment_id,
            status=status,
            amount=amount,
            correlation_token=correlation_token,
            **extra,
        )
        return self.payments[gateway_payment_id]

    def settle(self, gateway_payment_id, succeed=True):
        payment = self.payments[gateway_payment_id]
        self.payments[gateway_payment_id] = GatewayPayment(
            gateway_payment_id=payment.gateway_payment_id,
            status=SUCCESS if succeed else "failed",
            amount=payment.amount,
            currency=payment.currency,
            transaction_id=f"fake_txn_{uuid4().hex[:12]}" if succeed else None,
            correlation_token=payment.correlation_token,
            payment_method=payment.payment_method,
            metadata=payment.metadata,
        )
        return self.payments[gateway_payment_id]

    def get_payment_status(self, gateway_payment_id):
        self._record("get_payment_status", gateway_payment_id=gateway_payment_id)
        if gateway_payment_id not in self.payments:
            raise PaymentNotFound(gateway_payment_id)
        return self.payments[gateway_payment_id]

    def list_payment_methods(self, amount, currency):
        self._record("list_payment_methods", amount=amount, currency=currency)
        return list(self.methods)
