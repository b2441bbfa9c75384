"""OrderLifecycle: create orders and move them through their statuses.

Commands do the state changes inside their unit of work. The buyer and admin
notifications that follow run afterwards, best-effort, once the change is
committed.
"""

import json

import structlog
from protean.utils.globals import current_domain

from commerce.notification.helpers import notify_admins, notify_user
from commerce.notification.port import Severity
from commerce.order.order import Order, OrderStatus, OrderType, PaymentMethod
from commerce.order.placement import CheckoutCart, PlaceOrder
from commerce.order.transitions import ApproveOrder, AssignInvoiceNumber, CancelOrder, UpdateOrderStatus
from commerce.tenancy import BuyerRole, Tenant

logger = structlog.get_logger(__name__)

_STATUS_MESSAGES = {
    OrderStatus.APPROVED.value: "has been approved",
    OrderStatus.PACKED.value: "has been packed",
    OrderStatus.OUT_FOR_DELIVERY.value: "is out for delivery",
    OrderStatus.SHIPPED.value: "has been shipped",
    OrderStatus.DELIVERED.value: "has been delivered",
    OrderStatus.CANCELLED.value: "has been cancelled",
}


class OrderLifecycle:
    def __init__(self, tenant):
        self.tenant = Tenant(tenant).value

    def get(self, order_id) -> Order:
        return current_domain.repository_for(Order).get_for_tenant(self.tenant, order_id)

    def create_order(
        self,
        buyer_id,
        payment_method,
        items: list[dict] | None = None,
        delivery: dict | None = None,
        buyer_role=BuyerRole.B2C_BUYER.value,
    ) -> Order:
        """Place an order from ``items``, or from the buyer's cart when no items are given."""
        delivery_json = json.dumps(delivery) if delivery else None
        if items is None:
            command = CheckoutCart(
                tenant=self.tenant,
                buyer_id=buyer_id,
                buyer_role=buyer_role,
                payment_method=payment_method,
                delivery=delivery_json,
            )
        else:
            command = PlaceOrder(
                tenant=self.tenant,
                buyer_id=buyer_id,
                buyer_role=buyer_role,
                items=json.dumps(items),
                payment_method=payment_method,
                delivery=delivery_json,
            )

        order = self.get(current_domain.process(command, asynchronous=False))

        notify_user(
            order.buyer_id,
            "Order placed",
            f"Your order #{order.display_id} for {order.total_amount:.2f} {order.currency} was placed.",
            Severity.SUCCESS,
            f"/orders/{order.id}",
        )
        # Online B2C orders reach the admins once they are paid
        if order.payment_method == PaymentMethod.COD.value or order.order_type == OrderType.B2B.value:
            notify_admins(
                "New order received",
                f"Order #{order.display_id} ({order.order_type}, {order.payment_method}) is {order.status}.",
                Severity.INFO,
                f"/admin/orders/{order.id}",
            )
        return order

    def approve(self, order_id) -> Order:
        current_domain.process(ApproveOrder(tenant=self.tenant, order_id=order_id), asynchronous=False)
        order = self.get(order_id)
        # Approving a held payment settles it, and paid orders get their invoice
        if order.is_paid and not order.invoice_number:
            try:
                current_domain.process(
                    AssignInvoiceNumber(tenant=self.tenant, order_id=order_id),
                    asynchronous=False,
                )
                order = self.get(order_id)
            except Exception:
                logger.exception("invoice_number_assignment_failed", order_id=str(order_id))
        self._announce_status(order)
        return order

    def transition_status(self, order_id, status) -> Order:
        current_domain.process(
            UpdateOrderStatus(tenant=self.tenant, order_id=order_id, status=status),
            asynchronous=False,
        )
        order = self.get(order_id)
        self._announce_status(order)
        return order

    def cancel(self, order_id, reason=None) -> Order:
        current_domain.process(
            CancelOrder(tenant=self.tenant, order_id=order_id, reason=reason),
            asynchronous=False,
        )
        order = self.get(order_id)
        self._announce_status(order)
        return order

    @staticmethod
    def _announce_status(order):
        phrase = _STATUS_MESSAGES.get(order.status)
        if phrase is None:
            return
        notify_user(
            order.buyer_id,
            "Order update",
            f"Your order #{order.display_id} {phrase}.",
            Severity.WARNING if order.status == OrderStatus.CANCELLED.value else Severity.INFO,
            f"/orders/{order.id}",
        )


def order_snapshot(order: Order) -> dict:
    delivery = order.delivery
    return {
        "order_id": str(order.id),
        "display_id": order.display_id,
        "tenant": order.tenant,
        "buyer_id": str(order.buyer_id),
        "order_type": order.order_type,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_held": bool(order.payment_held),
        "payment_method": order.payment_method,
        "total_amount": order.total_amount,
        "currency": order.currency,
        "invoice_number": order.invoice_number,
        "items": [
            {
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "quantity": item.quantity,
                "price_at_purchase": item.price_at_purchase,
                "selected_config": {"ram": item.selected_ram, "storage": item.selected_storage},
                "selected_warranty": (
                    {"duration": item.warranty_duration, "price": item.warranty_price}
                    if item.warranty_duration
                    else None
                ),
            }
            for item in order.items
        ],
        "delivery": delivery.to_dict() if delivery else None,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }
