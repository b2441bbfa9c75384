"""Application tests for order placement from direct items and from carts."""

import pytest
from commerce.cart.store import CartStore
from commerce.catalogue.product import Product
from commerce.errors import InsufficientStock, ProductInactive
from commerce.order.lifecycle import OrderLifecycle, order_snapshot
from commerce.order.order import Order, OrderStatus, OrderType, PaymentStatus
from commerce.pricing.engine import Selections
from commerce.stock.ledger import StockLedger
from protean import current_domain
from protean.exceptions import ValidationError


def _stock(product_id):
    return current_domain.repository_for(Product).get(str(product_id)).stock


def _orders():
    return current_domain.repository_for(Order)._dao.query.all().items


@pytest.fixture()
def lifecycle():
    return OrderLifecycle("flowers")


@pytest.fixture()
def roses(make_product):
    return make_product(tenant="flowers", name="Red Roses", base_price=12.5, stock=5)


class TestDirectItems:
    def test_cash_on_delivery_order_is_approved_and_deducts_stock(self, lifecycle, roses):
        order = lifecycle.create_order("buyer-1", "COD", items=[{"product_id": roses.id, "quantity": 2}])

        assert order.status == OrderStatus.APPROVED.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.stock_committed
        assert order.total_amount == 25.0
        assert _stock(roses.id) == 3

    def test_online_order_waits_and_keeps_stock(self, lifecycle, roses):
        order = lifecycle.create_order("buyer-1", "CREDIT_CARD", items=[{"product_id": roses.id, "quantity": 2}])

        assert order.status == OrderStatus.PENDING.value
        assert not order.stock_committed
        assert _stock(roses.id) == 5

    def test_b2b_order_waits_for_approval(self, lifecycle, roses):
        order = lifecycle.create_order(
            "buyer-1", "COD", items=[{"product_id": roses.id, "quantity": 1}], buyer_role="B2B_BUYER"
        )
        assert order.order_type == OrderType.B2B.value
        assert order.status == OrderStatus.PENDING.value
        assert _stock(roses.id) == 5

    def test_direct_items_are_priced_by_the_engine(self, make_product):
        laptop = make_product(
            base_price=1000.0,
            bulk_pricing=[{"min_qty": 3, "price": 900.0}],
            warranty_options=[{"duration": "1 Year", "price": 40.0}],
        )
        order = OrderLifecycle("laptops").create_order(
            "buyer-1",
            "UPI",
            items=[{"product_id": laptop.id, "quantity": 3, "warranty": "1 year"}],
        )
        item = order.items[0]
        assert item.price_at_purchase == 940.0
        assert item.warranty_duration == "1 Year"
        assert order.total_amount == 2820.0
        assert order.currency == "INR"

    def test_insufficient_stock_creates_nothing(self, lifecycle, roses):
        with pytest.raises(InsufficientStock) as exc:
            lifecycle.create_order("buyer-1", "COD", items=[{"product_id": roses.id, "quantity": 6}])

        assert exc.value.available == 5
        assert exc.value.requested == 6
        assert _orders() == []
        assert _stock(roses.id) == 5

    def test_repeated_product_lines_are_checked_together(self, lifecycle, roses):
        items = [{"product_id": roses.id, "quantity": 3}, {"product_id": roses.id, "quantity": 3}]
        with pytest.raises(InsufficientStock) as exc:
            lifecycle.create_order("buyer-1", "COD", items=items)
        assert exc.value.requested == 6

    def test_inactive_product_is_refused(self, lifecycle, roses):
        roses.deactivate()
        current_domain.repository_for(Product).add(roses)

        with pytest.raises(ProductInactive):
            lifecycle.create_order("buyer-1", "COD", items=[{"product_id": roses.id, "quantity": 1}])

    def test_bad_quantity_is_a_validation_error(self, lifecycle, roses):
        with pytest.raises(ValidationError):
            lifecycle.create_order("buyer-1", "COD", items=[{"product_id": roses.id, "quantity": 0}])

    def test_unknown_payment_method_is_a_validation_error(self, lifecycle, roses):
        with pytest.raises(ValidationError):
            lifecycle.create_order("buyer-1", "BARTER", items=[{"product_id": roses.id, "quantity": 1}])

    def test_display_id_is_short_and_unique(self, lifecycle, roses):
        first = lifecycle.create_order("buyer-1", "CREDIT_CARD", items=[{"product_id": roses.id, "quantity": 1}])
        second = lifecycle.create_order("buyer-1", "CREDIT_CARD", items=[{"product_id": roses.id, "quantity": 1}])

        assert first.display_id.startswith(str(first.id).replace("-", "")[-6:].upper())
        assert first.display_id != second.display_id

    def test_delivery_details_are_kept(self, lifecycle, roses):
        order = lifecycle.create_order(
            "buyer-1",
            "COD",
            items=[{"product_id": roses.id, "quantity": 1}],
            delivery={"recipient_name": "Noor", "area": "Salmiya", "delivery_date": "2026-02-14"},
        )
        assert order.delivery.area == "Salmiya"
        assert order.delivery.delivery_date == "2026-02-14"


class TestCartCheckout:
    def test_checkout_freezes_cart_prices_and_clears_cart(self, lifecycle, roses):
        CartStore("flowers").add_item("buyer-1", roses.id, 2)

        order = lifecycle.create_order("buyer-1", "COD")

        assert [(str(i.product_id), i.quantity, i.price_at_purchase) for i in order.items] == [
            (str(roses.id), 2, 12.5)
        ]
        assert CartStore("flowers").read("buyer-1").items == []
        assert _stock(roses.id) == 3

    def test_unknown_warranty_is_not_frozen_into_the_order(self, make_product):
        laptop = make_product(
            tenant="laptops",
            base_price=1000.0,
            warranty_options=[{"duration": "1 Year", "price": 40.0}],
        )
        CartStore("laptops").add_item("buyer-1", laptop.id, 1, selections=Selections(warranty="5 Years"))

        order = OrderLifecycle("laptops").create_order("buyer-1", "COD")

        [item] = order.items
        assert item.warranty_duration is None
        assert item.warranty_price == 0.0
        assert item.price_at_purchase == 1000.0
        assert order_snapshot(order)["items"][0]["selected_warranty"] is None

    def test_empty_cart_cannot_be_checked_out(self, lifecycle):
        with pytest.raises(ValidationError):
            lifecycle.create_order("buyer-1", "COD")

    def test_stock_drop_after_cart_read_fails_checkout_cleanly(self, lifecycle, roses):
        CartStore("flowers").add_item("buyer-1", roses.id, 3)
        # Someone else buys three units first
        StockLedger("flowers").try_deduct(roses.id, 3)

        with pytest.raises(InsufficientStock) as exc:
            lifecycle.create_order("buyer-1", "COD")

        assert exc.value.available == 2
        assert exc.value.requested == 3
        assert _orders() == []
        assert _stock(roses.id) == 2
        assert len(CartStore("flowers").read("buyer-1").items) == 1

    def test_total_matches_frozen_lines(self, lifecycle, roses, make_product):
        tulips = make_product(tenant="flowers", name="Tulips", base_price=3.75, stock=20)
        store = CartStore("flowers")
        store.add_item("buyer-1", roses.id, 2)
        store.add_item("buyer-1", tulips.id, 7)

        order = lifecycle.create_order("buyer-1", "CREDIT_CARD")
        assert order.total_amount == sum(i.price_at_purchase * i.quantity for i in order.items)
        assert order.total_amount == 51.25


class TestNotifications:
    def test_buyer_and_admins_hear_about_cash_orders(self, lifecycle, roses, in_app):
        order = lifecycle.create_order("buyer-1", "COD", items=[{"product_id": roses.id, "quantity": 1}])

        assert in_app.user_notices[-1]["user_id"] == "buyer-1"
        assert in_app.user_notices[-1]["deep_link"] == f"/orders/{order.id}"
        assert in_app.admin_notices[-1]["title"] == "New order received"

    def test_admins_wait_for_payment_on_online_orders(self, lifecycle, roses, in_app):
        lifecycle.create_order("buyer-1", "CREDIT_CARD", items=[{"product_id": roses.id, "quantity": 1}])

        assert len(in_app.user_notices) == 1
        assert in_app.admin_notices == []

    def test_broken_channel_does_not_undo_the_order(self, lifecycle, roses, in_app, email):
        in_app.configure(should_succeed=False)

        order = lifecycle.create_order("buyer-1", "COD", items=[{"product_id": roses.id, "quantity": 1}])

        assert lifecycle.get(order.id).status == OrderStatus.APPROVED.value
        assert email.user_notices[-1]["title"] == "Order placed"
