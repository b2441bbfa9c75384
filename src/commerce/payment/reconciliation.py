"""Payment reconciliation: apply a gateway's verdict to an order exactly once.

``PaymentReconciler.verify`` asks the gateway for the authoritative status,
finds the order through the correlation token, and hands everything to
``ApplyPaymentOutcome``. That command's handler records the Transaction,
updates the order and commits stock in one unit of work. Invoice numbering
and notifications run only after that unit has been committed, and their
failures are logged, never raised.
"""

import json
from dataclasses import dataclass, replace
from enum import Enum

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import InsufficientStock, OrderCorrelationMissing
from commerce.gateway import get_gateway
from commerce.gateway.port import GatewayPayment, PaymentGateway
from commerce.notification.helpers import notify_admins, notify_user
from commerce.notification.port import Severity
from commerce.order.order import Order, OrderStatus, PaymentStatus
from commerce.order.transitions import AssignInvoiceNumber
from commerce.payment.transaction import Transaction, TransactionStatus
from commerce.stock.ledger import StockLedger
from commerce.tenancy import Tenant

logger = structlog.get_logger(__name__)


class Outcome(Enum):
    PAID = "PAID"
    FAILED = "FAILED"
    ALREADY_PAID = "ALREADY_PAID"
    ALREADY_FAILED = "ALREADY_FAILED"
    STOCK_SHORTFALL = "STOCK_SHORTFALL"
    ALREADY_HELD = "ALREADY_HELD"


@dataclass(frozen=True)
class ReconciliationResult:
    order_id: str
    buyer_id: str
    display_id: str | None
    outcome: Outcome
    transaction_id: str | None = None
    invoice_number: str | None = None
    requires_refund: bool = False

    @property
    def is_new(self) -> bool:
        return self.outcome in (Outcome.PAID, Outcome.FAILED, Outcome.STOCK_SHORTFALL)


@commerce.command(part_of="Transaction")
class ApplyPaymentOutcome:
    tenant = String(required=True, choices=Tenant)
    order_id = Identifier(required=True)
    gateway = String(max_length=50)
    gateway_payment_id = String(required=True, max_length=255)
    gateway_status = String(required=True, max_length=50)
    amount = Float()
    currency = String(max_length=3)
    gateway_transaction_id = String(max_length=255)
    payment_method = String(max_length=100)
    metadata = Text()  # JSON


def _payment_from(command) -> GatewayPayment:
    return GatewayPayment(
        gateway_payment_id=command.gateway_payment_id,
        status=command.gateway_status,
        amount=command.amount,
        currency=command.currency,
        transaction_id=command.gateway_transaction_id,
        correlation_token=str(command.order_id),
        payment_method=command.payment_method,
        metadata=json.loads(command.metadata) if command.metadata else {},
    )


def _result(order, outcome, transaction=None, requires_refund=False) -> dict:
    return {
        "order_id": str(order.id),
        "buyer_id": str(order.buyer_id),
        "display_id": order.display_id,
        "outcome": outcome.value,
        "transaction_id": str(transaction.id) if transaction else None,
        "invoice_number": order.invoice_number,
        "requires_refund": requires_refund,
    }


@commerce.command_handler(part_of=Transaction)
class ApplyPaymentOutcomeHandler:
    @handle(ApplyPaymentOutcome)
    def apply_payment_outcome(self, command):
        orders = current_domain.repository_for(Order)
        transactions = current_domain.repository_for(Transaction)
        order = orders.get_for_tenant(command.tenant, command.order_id)
        payment = _payment_from(command)

        transaction = transactions.for_gateway_payment(payment.gateway_payment_id)
        if transaction is not None:
            transaction.belongs_to(order.id)

        if order.is_paid:
            logger.info(
                "payment_already_applied",
                order_id=str(order.id),
                gateway_payment_id=payment.gateway_payment_id,
            )
            return _result(order, Outcome.ALREADY_PAID, transaction)

        # A held order only moves again when a different payment actually succeeds
        if order.payment_held and (transaction is not None or not payment.succeeded):
            return _result(order, Outcome.ALREADY_HELD, transaction)

        if payment.succeeded:
            return self._apply_success(command, order, payment, transaction, orders, transactions)
        return self._apply_failure(command, order, payment, transaction, orders, transactions)

    def _apply_success(self, command, order, payment, transaction, orders, transactions):
        if transaction is None:
            transaction = Transaction.record(
                command.tenant, order.id, order.buyer_id, command.gateway, payment, TransactionStatus.SUCCESS
            )
        else:
            transaction.confirm(TransactionStatus.SUCCESS, payment)

        if payment.amount is not None and abs(payment.amount - order.total_amount) > 0.001:
            logger.warning(
                "payment_amount_mismatch",
                order_id=str(order.id),
                order_total=order.total_amount,
                paid=payment.amount,
            )

        requires_refund = order.status == OrderStatus.CANCELLED.value
        ledger = StockLedger(command.tenant)
        if not requires_refund and not order.stock_committed:
            try:
                ledger.check(order.demand(), require_active=False)
            except InsufficientStock as exc:
                return self._hold_payment(order, payment, transaction, orders, transactions, exc)

        # Status and payment status change before stock moves; all three land together
        order.confirm_payment(payment.gateway_payment_id, payment.amount)
        if not requires_refund:
            ledger.commit_order(order, trigger="payment")

        transactions.add(transaction)
        orders.add(order)

        logger.info(
            "payment_confirmed",
            order_id=str(order.id),
            gateway_payment_id=payment.gateway_payment_id,
            transaction_id=str(transaction.id),
            requires_refund=requires_refund,
        )
        return _result(order, Outcome.PAID, transaction, requires_refund)

    def _hold_payment(self, order, payment, transaction, orders, transactions, shortfall):
        order.hold_payment(payment.gateway_payment_id, payment.amount, reason=str(shortfall))

        transactions.add(transaction)
        orders.add(order)

        logger.warning(
            "payment_held_for_stock",
            order_id=str(order.id),
            gateway_payment_id=payment.gateway_payment_id,
            product_id=shortfall.product_id,
            available=shortfall.available,
            requested=shortfall.requested,
        )
        return _result(order, Outcome.STOCK_SHORTFALL, transaction)

    def _apply_failure(self, command, order, payment, transaction, orders, transactions):
        if (
            transaction is not None
            and transaction.status == TransactionStatus.FAILED.value
            and order.payment_status == PaymentStatus.FAILED.value
        ):
            return _result(order, Outcome.ALREADY_FAILED, transaction)

        if transaction is None:
            transaction = Transaction.record(
                command.tenant, order.id, order.buyer_id, command.gateway, payment, TransactionStatus.FAILED
            )
        else:
            transaction.confirm(TransactionStatus.FAILED, payment)

        order.record_payment_failure(payment.gateway_payment_id, payment.status)

        transactions.add(transaction)
        orders.add(order)

        logger.info(
            "payment_failed",
            order_id=str(order.id),
            gateway_payment_id=payment.gateway_payment_id,
            gateway_status=payment.status,
        )
        return _result(order, Outcome.FAILED, transaction)


class PaymentReconciler:
    """Idempotent bridge from gateway confirmations to orders and stock."""

    def __init__(self, tenant, gateway: PaymentGateway | None = None):
        self.tenant = Tenant(tenant).value
        self.gateway = gateway or get_gateway(tenant)

    def verify(self, gateway_payment_id: str) -> ReconciliationResult:
        """Reconcile one gateway payment.

        A successful payment whose stock can no longer be reserved is recorded
        and held on the order (``Outcome.STOCK_SHORTFALL``) instead of failing.

        Raises:
            PaymentNotFound: the gateway has no such payment.
            OrderCorrelationMissing: the payment carries no order id.
            GatewayTimeout: the gateway did not answer; nothing was changed.
        """
        payment = self.gateway.get_payment_status(gateway_payment_id)

        if not payment.correlation_token:
            logger.error("payment_without_order_reference", gateway_payment_id=gateway_payment_id)
            raise OrderCorrelationMissing(gateway_payment_id)

        outcome = current_domain.process(
            ApplyPaymentOutcome(
                tenant=self.tenant,
                order_id=payment.correlation_token,
                gateway=self.gateway.name,
                gateway_payment_id=payment.gateway_payment_id,
                gateway_status=payment.status,
                amount=payment.amount,
                currency=payment.currency,
                gateway_transaction_id=payment.transaction_id,
                payment_method=payment.payment_method,
                metadata=json.dumps(payment.metadata or {}, default=str),
            ),
            asynchronous=False,
        )
        result = ReconciliationResult(
            order_id=outcome["order_id"],
            buyer_id=outcome["buyer_id"],
            display_id=outcome["display_id"],
            outcome=Outcome(outcome["outcome"]),
            transaction_id=outcome["transaction_id"],
            invoice_number=outcome["invoice_number"],
            requires_refund=outcome["requires_refund"],
        )

        if result.outcome == Outcome.PAID:
            result = self._after_success(result)
        elif result.outcome == Outcome.FAILED:
            self._after_failure(result)
        elif result.outcome == Outcome.STOCK_SHORTFALL:
            self._after_shortfall(result)
        return result

    def _after_success(self, result: ReconciliationResult) -> ReconciliationResult:
        label = result.display_id or result.order_id

        if result.requires_refund:
            notify_admins(
                "Payment received for a cancelled order",
                f"Order #{label} was cancelled before its payment arrived. Refund the buyer.",
                Severity.WARNING,
                f"/admin/orders/{result.order_id}",
            )
            return result

        invoice_number = None
        try:
            invoice_number = current_domain.process(
                AssignInvoiceNumber(tenant=self.tenant, order_id=result.order_id),
                asynchronous=False,
            )
        except Exception:
            logger.exception("invoice_number_assignment_failed", order_id=result.order_id)

        notify_user(
            result.buyer_id,
            "Payment successful",
            f"We received your payment for order #{label}.",
            Severity.SUCCESS,
            f"/orders/{result.order_id}",
        )
        notify_admins(
            "New order received",
            f"Order #{label} has been paid and is ready for processing.",
            Severity.INFO,
            f"/admin/orders/{result.order_id}",
        )

        if invoice_number is None:
            return result
        return replace(result, invoice_number=invoice_number)

    def _after_failure(self, result: ReconciliationResult) -> None:
        label = result.display_id or result.order_id
        notify_user(
            result.buyer_id,
            "Payment failed",
            f"Your payment for order #{label} did not go through. You can try again.",
            Severity.ERROR,
            f"/checkout/retry/{result.order_id}",
        )
        notify_admins(
            "Checkout abandoned",
            f"Payment for order #{label} failed.",
            Severity.WARNING,
            f"/admin/orders/{result.order_id}",
        )

    def _after_shortfall(self, result: ReconciliationResult) -> None:
        label = result.display_id or result.order_id
        notify_user(
            result.buyer_id,
            "Payment received",
            f"We received your payment for order #{label}, but an item ran out of stock. "
            "We will contact you shortly.",
            Severity.WARNING,
            f"/orders/{result.order_id}",
        )
        notify_admins(
            "Paid order is short of stock",
            f"Order #{label} was paid but its stock could not be reserved. "
            "Restock and approve it, or cancel and refund.",
            Severity.ERROR,
            f"/admin/orders/{result.order_id}",
        )
