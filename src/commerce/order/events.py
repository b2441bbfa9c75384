"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """A cart or a list of line items became an order with frozen prices."""

    __version__ = 1

    order_id = Identifier(required=True)
    display_id = String(required=True)
    tenant = String(required=True)
    buyer_id = Identifier(required=True)
    order_type = String(required=True)
    status = String(required=True)
    payment_method = String(required=True)
    total_amount = Float(required=True)
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderApproved:
    __version__ = 1

    order_id = Identifier(required=True)
    approved_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderStockCommitted:
    """The order's single stock deduction happened."""

    __version__ = 1

    order_id = Identifier(required=True)
    trigger = String(required=True)


@commerce.event(part_of="Order")
class OrderStockReleased:
    __version__ = 1

    order_id = Identifier(required=True)


@commerce.event(part_of="Order")
class OrderPaymentConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_payment_id = String(required=True)
    amount = Float()
    paid_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderPaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_payment_id = String(required=True)
    gateway_status = String()


@commerce.event(part_of="Order")
class InvoiceNumberAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    invoice_number = String(required=True)


@commerce.event(part_of="Order")
class CheckoutAbandoned:
    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    flagged_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderPaymentHeld:
    """Money arrived but the order's stock could not be reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    gateway_payment_id = String(required=True)
    amount = Float()
    reason = String(max_length=500)
    held_at = DateTime(required=True)
