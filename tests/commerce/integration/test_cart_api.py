"""Integration tests for the cart endpoints via TestClient."""

import pytest
from commerce.api.app import create_app
from fastapi.testclient import TestClient

BUYER = {"X-Buyer-Id": "buyer-api-1"}


@pytest.fixture()
def client():
    return TestClient(create_app())


@pytest.fixture()
def laptop(make_product):
    return make_product(
        base_price=1000.0,
        stock=5,
        configuration_variants=[{"variant_type": "RAM", "value": "16GB", "price_adjustment": 50.0}],
        warranty_options=[{"duration": "1 Year", "price": 30.0}],
    )


class TestCartApi:
    def test_empty_cart(self, client):
        response = client.get("/laptops/cart", headers=BUYER)
        assert response.status_code == 200
        body = response.json()
        assert body["items"] == []
        assert body["total_amount"] == 0.0
        assert body["tenant"] == "laptops"

    def test_add_item_with_selections(self, client, laptop):
        response = client.post(
            "/laptops/cart/items",
            json={
                "product_id": laptop.id,
                "quantity": 2,
                "selected_config": {"ram": "16GB"},
                "selected_warranty": {"duration": "1 Year"},
            },
            headers=BUYER,
        )
        assert response.status_code == 200
        line = response.json()["items"][0]
        assert line["unit_price"] == 1080.0
        assert line["total_price"] == 2160.0
        assert line["selected_config"]["ram"] == "16GB"
        assert line["selected_warranty"] == {"duration": "1 Year", "price": 30.0}

    def test_update_and_remove(self, client, laptop):
        client.post("/laptops/cart/items", json={"product_id": laptop.id, "quantity": 1}, headers=BUYER)

        response = client.patch(f"/laptops/cart/items/{laptop.id}", json={"quantity": 3}, headers=BUYER)
        assert response.json()["total_amount"] == 3000.0

        response = client.delete(f"/laptops/cart/items/{laptop.id}", headers=BUYER)
        assert response.json()["items"] == []

    def test_clear(self, client, laptop):
        client.post("/laptops/cart/items", json={"product_id": laptop.id, "quantity": 1}, headers=BUYER)
        response = client.delete("/laptops/cart", headers=BUYER)
        assert response.status_code == 200
        assert response.json()["total_amount"] == 0.0

    def test_insufficient_stock_is_a_conflict(self, client, laptop):
        response = client.post("/laptops/cart/items", json={"product_id": laptop.id, "quantity": 6}, headers=BUYER)
        assert response.status_code == 409
        body = response.json()
        assert body["available"] == 5
        assert body["requested"] == 6
        assert body["product_id"] == str(laptop.id)

    def test_unknown_product_is_not_found(self, client):
        response = client.post("/laptops/cart/items", json={"product_id": "missing", "quantity": 1}, headers=BUYER)
        assert response.status_code == 404

    def test_zero_quantity_is_rejected(self, client, laptop):
        response = client.post("/laptops/cart/items", json={"product_id": laptop.id, "quantity": 0}, headers=BUYER)
        assert response.status_code == 422

    def test_unknown_tenant(self, client):
        assert client.get("/books/cart", headers=BUYER).status_code == 422

    def test_buyer_header_is_required(self, client):
        assert client.get("/laptops/cart").status_code == 422

    def test_unknown_role_is_rejected(self, client):
        response = client.get("/laptops/cart", headers={**BUYER, "X-Buyer-Role": "SUPERUSER"})
        assert response.status_code == 400
