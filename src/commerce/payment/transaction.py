"""Transaction aggregate (CQRS): the local record of one gateway payment.

``gateway_payment_id`` is the idempotency key. There is one Transaction per
gateway payment, however many times its callback arrives.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from commerce.domain import commerce
from commerce.errors import DataIntegrityError
from commerce.payment.events import TransactionRecorded, TransactionStatusChanged
from commerce.tenancy import Tenant


class TransactionStatus(Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


@commerce.aggregate
class Transaction:
    tenant = String(required=True, choices=Tenant)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    gateway = String(max_length=50)
    gateway_payment_id = String(required=True, max_length=255)
    gateway_transaction_id = String(max_length=255)
    amount = Float()
    currency = String(max_length=3)
    payment_method = String(max_length=100)
    status = String(choices=TransactionStatus, default=TransactionStatus.PENDING.value)
    raw_gateway_metadata = Text()  # JSON
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def record(cls, tenant, order_id, user_id, gateway, payment, status):
        """Record a gateway payment seen for the first time."""
        now = datetime.now(UTC)
        transaction = cls(
            tenant=Tenant(tenant).value,
            order_id=order_id,
            user_id=user_id,
            gateway=gateway,
            gateway_payment_id=payment.gateway_payment_id,
            gateway_transaction_id=payment.transaction_id,
            amount=payment.amount,
            currency=payment.currency,
            payment_method=payment.payment_method,
            status=TransactionStatus(status).value,
            raw_gateway_metadata=json.dumps({"status": payment.status, **(payment.metadata or {})}, default=str),
            created_at=now,
            updated_at=now,
        )
        transaction.raise_(
            TransactionRecorded(
                transaction_id=str(transaction.id),
                order_id=str(order_id),
                gateway_payment_id=payment.gateway_payment_id,
                status=transaction.status,
                amount=payment.amount,
            )
        )
        return transaction

    @property
    def metadata(self) -> dict:
        return json.loads(self.raw_gateway_metadata) if self.raw_gateway_metadata else {}

    def belongs_to(self, order_id):
        """A payment id may map to one order only; anything else is corrupt data."""
        if str(self.order_id) != str(order_id):
            raise DataIntegrityError(
                f"Gateway payment {self.gateway_payment_id} is recorded for order {self.order_id}, "
                f"but the gateway now links it to order {order_id}"
            )

    def confirm(self, status, payment):
        """Bring the record in line with what the gateway reports now."""
        target = TransactionStatus(status)
        current = TransactionStatus(self.status)
        if current == TransactionStatus.REFUNDED:
            raise ValidationError({"status": ["Refunded transactions cannot change"]})
        if target == current:
            return

        self.status = target.value
        self.gateway_transaction_id = payment.transaction_id or self.gateway_transaction_id
        self.raw_gateway_metadata = json.dumps({"status": payment.status, **(payment.metadata or {})}, default=str)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            TransactionStatusChanged(
                transaction_id=str(self.id),
                gateway_payment_id=self.gateway_payment_id,
                previous_status=current.value,
                new_status=target.value,
            )
        )


@commerce.repository(part_of=Transaction)
class TransactionRepository:
    def for_gateway_payment(self, gateway_payment_id) -> Transaction | None:
        found = self._dao.query.filter(gateway_payment_id=str(gateway_payment_id)).all().items
        if len(found) > 1:
            raise DataIntegrityError(f"{len(found)} transactions share gateway payment {gateway_payment_id}")
        return found[0] if found else None

    def for_order(self, order_id) -> list[Transaction]:
        return self._dao.query.filter(order_id=str(order_id)).all().items
