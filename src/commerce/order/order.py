"""Order aggregate (CQRS): frozen prices, status and payment status.

State machine:
    PENDING → APPROVED → PACKED → OUT_FOR_DELIVERY → SHIPPED / DELIVERED
    CANCELLED from anything except CANCELLED and DELIVERED

``transition_to`` is loose: it only refuses to leave CANCELLED.
Approval and payment confirmation have their own methods because they are
tied to the order's single stock deduction, tracked by ``stock_committed_at``.
"""

import math
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from commerce.domain import commerce
from commerce.errors import AlreadyProcessed, DataIntegrityError, InvalidTransition
from commerce.order.events import (
    CheckoutAbandoned,
    InvoiceNumberAssigned,
    OrderApproved,
    OrderCancelled,
    OrderPaymentConfirmed,
    OrderPaymentFailed,
    OrderPaymentHeld,
    OrderPlaced,
    OrderStatusChanged,
    OrderStockCommitted,
    OrderStockReleased,
)
from commerce.tenancy import BuyerClass, Tenant, buyer_class_for, currency_for


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PACKED = "PACKED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(Enum):
    COD = "COD"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    UPI = "UPI"
    NET_BANKING = "NET_BANKING"
    WALLET = "WALLET"
    ONLINE = "ONLINE"
    OTHER = "OTHER"


class OrderType(Enum):
    B2B = BuyerClass.B2B.value
    B2C = BuyerClass.B2C.value


_NOT_CANCELLABLE = {OrderStatus.CANCELLED, OrderStatus.DELIVERED}

_DELIVERY_FIELDS = (
    "recipient_name",
    "phone",
    "email",
    "address_line",
    "area",
    "city",
    "delivery_date",
    "time_slot",
    "notes",
)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@commerce.value_object(part_of="Order")
class DeliveryDetails:
    """Where and when the order is delivered, captured at checkout."""

    recipient_name = String(max_length=255)
    phone = String(max_length=30)
    email = String(max_length=255)
    address_line = String(max_length=500)
    area = String(max_length=100)
    city = String(max_length=100)
    delivery_date = String(max_length=10)  # ISO date string
    time_slot = String(max_length=50)
    notes = String(max_length=1000)


def _delivery_details(data):
    if not data:
        return None
    return DeliveryDetails(**{key: data[key] for key in _DELIVERY_FIELDS if data.get(key) is not None})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class OrderItem:
    """A frozen copy of a priced line. Never re-read from the catalogue."""

    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    price_at_purchase = Float(required=True, min_value=0.0)
    selected_ram = String(max_length=100)
    selected_storage = String(max_length=100)
    warranty_duration = String(max_length=100)
    warranty_price = Float(default=0.0)

    @property
    def line_total(self):
        return self.price_at_purchase * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@commerce.aggregate
class Order:
    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)
    display_id = String(max_length=20)
    items = HasMany(OrderItem)
    order_type = String(choices=OrderType, default=OrderType.B2C.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.COD.value)
    total_amount = Float(default=0.0)
    currency = String(max_length=3)
    delivery = ValueObject(DeliveryDetails)
    gateway_payment_id = String(max_length=255)
    invoice_number = String(max_length=30)
    stock_committed_at = DateTime()
    stock_released_at = DateTime()
    abandonment_notified = Boolean(default=False)
    payment_held = Boolean(default=False)
    cancellation_reason = Text()
    paid_at = DateTime()
    cancelled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_frozen_lines(self):
        expected = sum(item.line_total for item in self.items)
        if not math.isclose(self.total_amount or 0.0, expected, abs_tol=1e-9):
            raise ValidationError({"total_amount": ["Order total must equal the sum of its line totals"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, tenant, buyer_id, buyer_role, lines, payment_method, delivery=None, display_id_for=None):
        """Create an order from already-priced lines.

        Args:
            lines: dicts with product_id, product_name, quantity,
                price_at_purchase and optional selected_ram,
                selected_storage, warranty_duration, warranty_price.
            buyer_role: decides ``order_type``; nothing else does.
            display_id_for: callable turning the internal id into the
                short display id.

        B2C cash-on-delivery orders start APPROVED; everything else starts
        PENDING. The caller commits stock for APPROVED orders in the same unit
        of work.
        """
        if not lines:
            raise ValidationError({"items": ["An order needs at least one line"]})
        for line in lines:
            if line.get("price_at_purchase") is None:
                raise DataIntegrityError(f"Line for product {line.get('product_id')} has no frozen price")

        order_type = OrderType(buyer_class_for(buyer_role).value)
        method = PaymentMethod(payment_method)
        immediate = order_type == OrderType.B2C and method == PaymentMethod.COD
        status = OrderStatus.APPROVED if immediate else OrderStatus.PENDING

        now = datetime.now(UTC)
        order = cls(
            tenant=Tenant(tenant).value,
            buyer_id=buyer_id,
            order_type=order_type.value,
            status=status.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=method.value,
            currency=currency_for(tenant),
            delivery=_delivery_details(delivery),
            created_at=now,
            updated_at=now,
        )

        items = [
            OrderItem(
                product_id=str(line["product_id"]),
                product_name=line.get("product_name"),
                quantity=line["quantity"],
                price_at_purchase=line["price_at_purchase"],
                selected_ram=line.get("selected_ram"),
                selected_storage=line.get("selected_storage"),
                warranty_duration=line.get("warranty_duration"),
                warranty_price=line.get("warranty_price") or 0.0,
            )
            for line in lines
        ]
        with atomic_change(order):
            order.add_items(items)
            order.total_amount = sum(item.line_total for item in items)

        if display_id_for is not None:
            order.display_id = display_id_for(str(order.id))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                display_id=order.display_id or str(order.id),
                tenant=order.tenant,
                buyer_id=str(buyer_id),
                order_type=order.order_type,
                status=order.status,
                payment_method=order.payment_method,
                total_amount=order.total_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def stock_committed(self) -> bool:
        return self.stock_committed_at is not None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def demand(self) -> dict[str, int]:
        """Units needed per product, with repeated products summed."""
        wanted: dict[str, int] = {}
        for item in self.items:
            wanted[str(item.product_id)] = wanted.get(str(item.product_id), 0) + item.quantity
        return wanted

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def approve(self):
        current = OrderStatus(self.status)
        if current != OrderStatus.PENDING:
            raise InvalidTransition(current.value, OrderStatus.APPROVED.value)

        now = datetime.now(UTC)
        self.status = OrderStatus.APPROVED.value
        self.updated_at = now
        self.raise_(OrderApproved(order_id=str(self.id), approved_at=now))

    def transition_to(self, new_status):
        target = OrderStatus(new_status)
        current = OrderStatus(self.status)

        if current == OrderStatus.CANCELLED:
            raise InvalidTransition(current.value, target.value)
        if target == OrderStatus.CANCELLED:
            self.cancel()
            return
        if target == current:
            return

        self.status = target.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
            )
        )

    def cancel(self, reason=None):
        current = OrderStatus(self.status)
        if current in _NOT_CANCELLABLE:
            raise InvalidTransition(current.value, OrderStatus.CANCELLED.value)

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_at = now
        self.updated_at = now
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Stock bookkeeping (driven by the stock ledger)
    # -------------------------------------------------------------------
    def mark_stock_committed(self, trigger):
        if self.stock_committed:
            raise AlreadyProcessed(f"Stock for order {self.id} was already deducted")

        self.stock_committed_at = datetime.now(UTC)
        self.raise_(OrderStockCommitted(order_id=str(self.id), trigger=trigger))

    def mark_stock_released(self):
        if not self.stock_committed or self.stock_released_at is not None:
            raise AlreadyProcessed(f"Order {self.id} holds no stock to release")

        self.stock_released_at = datetime.now(UTC)
        self.raise_(OrderStockReleased(order_id=str(self.id)))

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def confirm_payment(self, gateway_payment_id, amount=None):
        """Record a successful payment.

        PENDING orders move to APPROVED with it. Orders an admin already
        approved keep their status, and so do cancelled ones: the money is
        recorded but nothing is revived.
        """
        if self.is_paid:
            raise AlreadyProcessed(f"Order {self.id} is already paid")

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.payment_held = False
        self.gateway_payment_id = gateway_payment_id
        self.paid_at = now
        self.updated_at = now
        if OrderStatus(self.status) == OrderStatus.PENDING:
            self.status = OrderStatus.APPROVED.value
            self.raise_(OrderApproved(order_id=str(self.id), approved_at=now))

        self.raise_(
            OrderPaymentConfirmed(
                order_id=str(self.id),
                gateway_payment_id=gateway_payment_id,
                amount=amount,
                paid_at=now,
            )
        )

    def record_payment_failure(self, gateway_payment_id, gateway_status=None):
        """Mark the attempt failed. The order stays PENDING so the buyer can pay again."""
        if self.is_paid:
            raise AlreadyProcessed(f"Order {self.id} is already paid")

        self.payment_status = PaymentStatus.FAILED.value
        self.gateway_payment_id = gateway_payment_id
        self.updated_at = datetime.now(UTC)
        self.raise_(
            OrderPaymentFailed(
                order_id=str(self.id),
                gateway_payment_id=gateway_payment_id,
                gateway_status=gateway_status,
            )
        )

    def hold_payment(self, gateway_payment_id, amount=None, reason=None):
        """Record money that arrived while the order's stock could not be reserved.

        The order stays PENDING and unpaid until an admin either restocks and
        approves it, which settles the held payment, or cancels and refunds.
        """
        if self.is_paid:
            raise AlreadyProcessed(f"Order {self.id} is already paid")

        now = datetime.now(UTC)
        self.payment_held = True
        self.gateway_payment_id = gateway_payment_id
        self.updated_at = now
        self.raise_(
            OrderPaymentHeld(
                order_id=str(self.id),
                gateway_payment_id=gateway_payment_id,
                amount=amount,
                reason=reason,
                held_at=now,
            )
        )

    def assign_invoice_number(self, invoice_number):
        if not self.is_paid:
            raise ValidationError({"invoice_number": ["Invoice numbers are issued only for paid orders"]})
        if self.invoice_number:
            raise AlreadyProcessed(f"Order {self.id} already has invoice {self.invoice_number}")

        self.invoice_number = invoice_number
        self.updated_at = datetime.now(UTC)
        self.raise_(InvoiceNumberAssigned(order_id=str(self.id), invoice_number=invoice_number))

    def flag_checkout_abandoned(self):
        if self.abandonment_notified:
            raise ValidationError({"abandonment_notified": ["Order was already flagged"]})

        now = datetime.now(UTC)
        self.abandonment_notified = True
        self.raise_(CheckoutAbandoned(order_id=str(self.id), buyer_id=str(self.buyer_id), flagged_at=now))


@commerce.repository(part_of=Order)
class OrderRepository:
    def get_for_tenant(self, tenant, order_id) -> Order:
        order = self.get(str(order_id))
        if order.tenant != Tenant(tenant).value:
            raise ObjectNotFoundError({"order_id": [f"Order {order_id} does not exist"]})
        return order

    def display_id_taken(self, display_id) -> bool:
        return bool(self._dao.query.filter(display_id=display_id).all().items)

    def invoice_number_taken(self, invoice_number) -> bool:
        return bool(self._dao.query.filter(invoice_number=invoice_number).all().items)

    def awaiting_online_payment(self, tenant) -> list[Order]:
        """Online-payment orders still waiting for money, not yet flagged as abandoned."""
        orders = (
            self._dao.query.filter(
                tenant=Tenant(tenant).value,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                abandonment_notified=False,
                payment_held=False,
            )
            .all()
            .items
        )
        return [o for o in orders if o.payment_method != PaymentMethod.COD.value]
