"""Order placement: a direct list of line items, or a buyer's cart.

Every line is checked against the current catalogue and stock before anything
is written. The order, any immediate stock deduction and the emptied cart are
saved in the handler's single unit of work, so a failed check leaves no trace.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.domain import commerce
from commerce.order.identifiers import allocate_display_id
from commerce.order.order import Order, OrderStatus, PaymentMethod
from commerce.pricing import engine
from commerce.pricing.engine import Selections
from commerce.stock.ledger import StockLedger
from commerce.tenancy import BuyerRole, Tenant, buyer_class_for

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class PlaceOrder:
    """Create an order straight from line items; prices are computed here.

    ``items`` is a JSON list of objects with ``product_id``, ``quantity`` and
    optional ``ram``, ``storage`` and ``warranty``.
    """

    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)
    buyer_role = String(choices=BuyerRole, default=BuyerRole.B2C_BUYER.value)
    items = Text(required=True)
    payment_method = String(required=True, choices=PaymentMethod)
    delivery = Text()  # JSON of DeliveryDetails fields


@commerce.command(part_of="Order")
class CheckoutCart:
    """Freeze the buyer's cart into an order and empty the cart."""

    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)
    buyer_role = String(choices=BuyerRole, default=BuyerRole.B2C_BUYER.value)
    payment_method = String(required=True, choices=PaymentMethod)
    delivery = Text()


def _parse_items(raw) -> list[dict]:
    try:
        items = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError({"items": ["Items must be a JSON list"]})

    if not isinstance(items, list) or not items:
        raise ValidationError({"items": ["An order needs at least one line"]})

    errors = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or not item.get("product_id"):
            errors.append(f"Line {index} has no product_id")
        elif not isinstance(item.get("quantity"), int) or isinstance(item["quantity"], bool) or item["quantity"] < 1:
            errors.append(f"Line {index} needs a quantity of at least 1")
    if errors:
        raise ValidationError({"items": errors})
    return items


def _demand(lines) -> dict[str, int]:
    wanted: dict[str, int] = {}
    for line in lines:
        wanted[str(line["product_id"])] = wanted.get(str(line["product_id"]), 0) + line["quantity"]
    return wanted


@commerce.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items = _parse_items(command.items)

        ledger = StockLedger(command.tenant)
        products = ledger.check(_demand(items))

        buyer_class = buyer_class_for(command.buyer_role)
        lines = []
        for item in items:
            product = products[str(item["product_id"])]
            selections = Selections.from_dict(item)
            quote = engine.quote(product, item["quantity"], buyer_class, selections)
            lines.append(
                {
                    "product_id": str(product.id),
                    "product_name": product.name,
                    "quantity": item["quantity"],
                    "price_at_purchase": quote.unit_price,
                    "selected_ram": selections.ram,
                    "selected_storage": selections.storage,
                    "warranty_duration": quote.warranty.label if quote.warranty else None,
                    "warranty_price": quote.warranty.amount if quote.warranty else 0.0,
                }
            )

        return _open_order(command, lines, ledger)

    @handle(CheckoutCart)
    def checkout_cart(self, command):
        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.for_buyer(command.tenant, command.buyer_id)
        if cart is None or not cart.items:
            raise ValidationError({"cart": ["Cart is empty"]})

        lines = [
            {
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "quantity": item.quantity,
                "price_at_purchase": item.unit_price,
                "selected_ram": item.selected_ram,
                "selected_storage": item.selected_storage,
                "warranty_duration": item.warranty_duration,
                "warranty_price": item.warranty_price,
            }
            for item in cart.items
        ]

        ledger = StockLedger(command.tenant)
        # Stock may have moved since the cart was last read
        ledger.check(_demand(lines))

        order_id = _open_order(command, lines, ledger)

        cart.clear()
        cart_repo.add(cart)
        return order_id


def _open_order(command, lines, ledger: StockLedger) -> str:
    repo = current_domain.repository_for(Order)
    delivery = json.loads(command.delivery) if command.delivery else None

    order = Order.place(
        tenant=command.tenant,
        buyer_id=command.buyer_id,
        buyer_role=command.buyer_role,
        lines=lines,
        payment_method=command.payment_method,
        delivery=delivery,
        display_id_for=lambda order_id: allocate_display_id(order_id, repo.display_id_taken),
    )

    if order.status == OrderStatus.APPROVED.value:
        ledger.commit_order(order, trigger="cash_on_delivery")

    repo.add(order)

    logger.info(
        "order_placed",
        order_id=str(order.id),
        display_id=order.display_id,
        tenant=order.tenant,
        order_type=order.order_type,
        status=order.status,
        total_amount=order.total_amount,
    )
    return str(order.id)
