"""Integration tests for the order endpoints via TestClient."""

import pytest
from commerce.api.app import create_app
from commerce.catalogue.product import Product
from fastapi.testclient import TestClient
from protean import current_domain

BUYER = {"X-Buyer-Id": "buyer-api-1"}
B2B_BUYER = {"X-Buyer-Id": "buyer-api-2", "X-Buyer-Role": "B2B_BUYER"}
ADMIN = {"X-Buyer-Id": "admin-1", "X-Buyer-Role": "ADMIN"}


@pytest.fixture()
def client():
    return TestClient(create_app())


@pytest.fixture()
def roses(make_product):
    return make_product(
        tenant="flowers",
        name="Red Roses",
        base_price=12.5,
        b2b_price=10.0,
        moq=5,
        stock=10,
    )


def _stock(product_id):
    return current_domain.repository_for(Product).get(str(product_id)).stock


def _create_order(client, product_id, quantity=2, payment_method="COD", headers=BUYER):
    response = client.post(
        "/flowers/orders",
        json={
            "items": [{"product_id": product_id, "quantity": quantity}],
            "payment_method": payment_method,
            "delivery": {"recipient_name": "Noor", "city": "Kuwait City", "time_slot": "9-12"},
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateOrder:
    def test_cash_order(self, client, roses):
        order = _create_order(client, roses.id)

        assert order["status"] == "APPROVED"
        assert order["payment_status"] == "PENDING"
        assert order["order_type"] == "B2C"
        assert order["currency"] == "KWD"
        assert order["total_amount"] == 25.0
        assert order["delivery"]["recipient_name"] == "Noor"
        assert len(order["display_id"]) >= 6
        assert _stock(roses.id) == 8

    def test_b2b_order_uses_b2b_price_and_waits(self, client, roses):
        order = _create_order(client, roses.id, quantity=5, headers=B2B_BUYER)

        assert order["order_type"] == "B2B"
        assert order["status"] == "PENDING"
        assert order["items"][0]["price_at_purchase"] == 10.0
        assert _stock(roses.id) == 10

    def test_checkout_from_cart(self, client, roses):
        client.post("/flowers/cart/items", json={"product_id": roses.id, "quantity": 3}, headers=BUYER)

        response = client.post("/flowers/orders/checkout", json={"payment_method": "CREDIT_CARD"}, headers=BUYER)

        assert response.status_code == 201
        assert response.json()["total_amount"] == 37.5
        assert client.get("/flowers/cart", headers=BUYER).json()["items"] == []

    def test_insufficient_stock(self, client, roses):
        response = client.post(
            "/flowers/orders",
            json={"items": [{"product_id": roses.id, "quantity": 11}], "payment_method": "COD"},
            headers=BUYER,
        )
        assert response.status_code == 409
        assert response.json()["available"] == 10

    def test_empty_items_are_rejected(self, client):
        response = client.post("/flowers/orders", json={"items": [], "payment_method": "COD"}, headers=BUYER)
        assert response.status_code == 422

    def test_unknown_payment_method(self, client, roses):
        response = client.post(
            "/flowers/orders",
            json={"items": [{"product_id": roses.id, "quantity": 1}], "payment_method": "BARTER"},
            headers=BUYER,
        )
        assert response.status_code == 400


class TestReadOrder:
    def test_owner_and_admin_can_read(self, client, roses):
        order = _create_order(client, roses.id)

        assert client.get(f"/flowers/orders/{order['order_id']}", headers=BUYER).status_code == 200
        assert client.get(f"/flowers/orders/{order['order_id']}", headers=ADMIN).status_code == 200

    def test_other_buyers_cannot_see_it(self, client, roses):
        order = _create_order(client, roses.id)
        response = client.get(f"/flowers/orders/{order['order_id']}", headers={"X-Buyer-Id": "someone-else"})
        assert response.status_code == 404

    def test_other_tenant_cannot_see_it(self, client, roses):
        order = _create_order(client, roses.id)
        assert client.get(f"/laptops/orders/{order['order_id']}", headers=ADMIN).status_code == 404


class TestAdminTransitions:
    def test_approve_requires_admin(self, client, roses):
        order = _create_order(client, roses.id, payment_method="CREDIT_CARD")
        response = client.post(f"/flowers/orders/{order['order_id']}/approve", headers=BUYER)
        assert response.status_code == 403

    def test_approve(self, client, roses):
        order = _create_order(client, roses.id, payment_method="CREDIT_CARD")
        response = client.post(f"/flowers/orders/{order['order_id']}/approve", headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"
        assert _stock(roses.id) == 8

    def test_approving_twice_is_a_conflict(self, client, roses):
        order = _create_order(client, roses.id, payment_method="CREDIT_CARD")
        client.post(f"/flowers/orders/{order['order_id']}/approve", headers=ADMIN)

        response = client.post(f"/flowers/orders/{order['order_id']}/approve", headers=ADMIN)
        assert response.status_code == 409
        assert response.json()["current"] == "APPROVED"
        assert _stock(roses.id) == 8

    def test_status_update(self, client, roses):
        order = _create_order(client, roses.id)
        response = client.post(
            f"/flowers/orders/{order['order_id']}/status", json={"status": "out_for_delivery"}, headers=ADMIN
        )
        assert response.status_code == 200
        assert response.json()["status"] == "OUT_FOR_DELIVERY"

    def test_unknown_status_is_rejected(self, client, roses):
        order = _create_order(client, roses.id)
        response = client.post(f"/flowers/orders/{order['order_id']}/status", json={"status": "LOST"}, headers=ADMIN)
        assert response.status_code == 400

    def test_owner_can_cancel_and_stock_returns(self, client, roses):
        order = _create_order(client, roses.id)
        response = client.post(f"/flowers/orders/{order['order_id']}/cancel", json={"reason": "oops"}, headers=BUYER)

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert _stock(roses.id) == 10

    def test_cancelled_order_cannot_move(self, client, roses):
        order = _create_order(client, roses.id)
        client.post(f"/flowers/orders/{order['order_id']}/cancel", json={}, headers=ADMIN)

        response = client.post(
            f"/flowers/orders/{order['order_id']}/status", json={"status": "PACKED"}, headers=ADMIN
        )
        assert response.status_code == 409
