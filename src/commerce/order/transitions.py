"""Order status changes after placement: approval, free-form status updates,
cancellation, invoice numbering and abandonment flags."""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.identifiers import allocate_invoice_number
from commerce.order.order import Order, OrderStatus
from commerce.stock.ledger import StockLedger
from commerce.tenancy import Tenant

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class ApproveOrder:
    tenant = String(required=True, choices=Tenant)
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class UpdateOrderStatus:
    tenant = String(required=True, choices=Tenant)
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)


@commerce.command(part_of="Order")
class CancelOrder:
    tenant = String(required=True, choices=Tenant)
    order_id = Identifier(required=True)
    reason = Text()


@commerce.command(part_of="Order")
class AssignInvoiceNumber:
    tenant = String(required=True, choices=Tenant)
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class FlagAbandonedCheckout:
    tenant = String(required=True, choices=Tenant)
    order_id = Identifier(required=True)


def _approve(order, ledger):
    # approve() rejects anything but PENDING before the ledger is consulted
    order.approve()
    ledger.commit_order(order, trigger="approval")
    # Money that arrived while stock was short is settled once stock is reserved
    if order.payment_held:
        order.confirm_payment(order.gateway_payment_id)


@commerce.command_handler(part_of=Order)
class OrderTransitionsHandler:
    @handle(ApproveOrder)
    def approve_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_tenant(command.tenant, command.order_id)

        _approve(order, StockLedger(command.tenant))
        repo.add(order)
        logger.info("order_approved", order_id=str(order.id))

    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_tenant(command.tenant, command.order_id)
        ledger = StockLedger(command.tenant)
        previous = order.status

        # Approving through the generic endpoint still goes through the ledger
        if command.status == OrderStatus.APPROVED.value and previous == OrderStatus.PENDING.value:
            _approve(order, ledger)
        else:
            order.transition_to(command.status)
            if order.status == OrderStatus.CANCELLED.value:
                ledger.release_order(order)

        repo.add(order)
        logger.info("order_status_updated", order_id=str(order.id), previous=previous, status=order.status)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_tenant(command.tenant, command.order_id)

        order.cancel(reason=command.reason)
        restocked = StockLedger(command.tenant).release_order(order)
        repo.add(order)
        logger.info("order_cancelled", order_id=str(order.id), restocked=restocked)

    @handle(AssignInvoiceNumber)
    def assign_invoice_number(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_tenant(command.tenant, command.order_id)
        if order.invoice_number:
            return order.invoice_number

        order.assign_invoice_number(allocate_invoice_number(repo.invoice_number_taken))
        repo.add(order)
        logger.info("invoice_number_assigned", order_id=str(order.id), invoice_number=order.invoice_number)
        return order.invoice_number

    @handle(FlagAbandonedCheckout)
    def flag_abandoned_checkout(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_tenant(command.tenant, command.order_id)

        order.flag_checkout_abandoned()
        repo.add(order)
