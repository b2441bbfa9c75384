"""Application tests for CartStore: cart commands through the domain."""

import pytest
from commerce.cart.cart import Cart
from commerce.cart.store import CartStore, cart_snapshot
from commerce.catalogue.management import DeactivateProduct, UpdateProductPricing
from commerce.errors import InsufficientStock, ProductInactive, ProductNotFound
from commerce.pricing.engine import Selections
from protean import current_domain
from protean.exceptions import ValidationError


@pytest.fixture()
def store():
    return CartStore("laptops")


class TestAddItem:
    def test_first_add_creates_the_cart(self, store, make_product):
        product = make_product(base_price=1000.0)
        cart = store.add_item("buyer-1", product.id, 2)

        assert cart.buyer_id == "buyer-1"
        assert cart.tenant == "laptops"
        assert cart.total_amount == 2000.0
        assert current_domain.repository_for(Cart).for_buyer("laptops", "buyer-1").id == cart.id

    def test_repeated_adds_merge(self, store, make_product):
        product = make_product(stock=10)
        store.add_item("buyer-1", product.id, 2)
        cart = store.add_item("buyer-1", product.id, 3)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_merged_quantity_is_checked_against_stock(self, store, make_product):
        product = make_product(stock=4)
        store.add_item("buyer-1", product.id, 3)

        with pytest.raises(InsufficientStock) as exc:
            store.add_item("buyer-1", product.id, 2)

        assert exc.value.available == 4
        assert exc.value.requested == 5
        assert store.read("buyer-1").items[0].quantity == 3

    def test_selections_are_priced(self, store, make_product):
        product = make_product(
            base_price=1000.0,
            configuration_variants=[{"variant_type": "RAM", "value": "32GB", "price_adjustment": 150.0}],
            warranty_options=[{"duration": "2 Years", "price": 60.0}],
        )
        cart = store.add_item("buyer-1", product.id, 1, selections=Selections(ram="32gb", warranty="2 years"))
        assert cart.items[0].unit_price == 1210.0

    def test_b2b_role_gets_b2b_price(self, store, make_product):
        product = make_product(base_price=1000.0, b2b_price=800.0, moq=2)
        cart = store.add_item("buyer-1", product.id, 2, buyer_role="B2B_BUYER")
        assert cart.items[0].unit_price == 800.0

    def test_product_from_other_tenant_is_not_found(self, store, make_product):
        roses = make_product(tenant="flowers", name="Roses", base_price=10.0)
        with pytest.raises(ProductNotFound):
            store.add_item("buyer-1", roses.id, 1)

    def test_inactive_product_cannot_be_added(self, store, make_product):
        product = make_product()
        current_domain.process(DeactivateProduct(tenant="laptops", product_id=product.id), asynchronous=False)
        with pytest.raises(ProductInactive):
            store.add_item("buyer-1", product.id, 1)


class TestUpdateRemoveClear:
    def test_update_checks_new_quantity(self, store, make_product):
        product = make_product(stock=5)
        store.add_item("buyer-1", product.id, 1)

        cart = store.update_item("buyer-1", product.id, 5)
        assert cart.items[0].quantity == 5

        with pytest.raises(InsufficientStock):
            store.update_item("buyer-1", product.id, 6)

    def test_remove_item(self, store, make_product):
        first, second = make_product(base_price=10.0), make_product(base_price=20.0)
        store.add_item("buyer-1", first.id, 1)
        store.add_item("buyer-1", second.id, 1)

        cart = store.remove_item("buyer-1", first.id)
        assert cart.total_amount == 20.0

    def test_remove_unknown_item_fails(self, store):
        with pytest.raises(ValidationError):
            store.remove_item("buyer-1", "nope")

    def test_clear(self, store, make_product):
        store.add_item("buyer-1", make_product().id, 1)
        cart = store.clear("buyer-1")
        assert cart.items == []
        assert cart.total_amount == 0.0


class TestRead:
    def test_read_creates_empty_cart(self, store):
        cart = store.read("buyer-9")
        assert cart.items == []
        assert cart.total_amount == 0.0

    def test_reading_twice_gives_identical_prices(self, store, make_product):
        product = make_product(base_price=999.0, bulk_pricing=[{"min_qty": 3, "price": 950.0}])
        store.add_item("buyer-1", product.id, 3)

        first = cart_snapshot(store.read("buyer-1"))
        second = cart_snapshot(store.read("buyer-1"))
        assert first == second

    def test_read_reprices_from_catalogue(self, store, make_product):
        product = make_product(base_price=1000.0)
        store.add_item("buyer-1", product.id, 2)

        current_domain.process(
            UpdateProductPricing(tenant="laptops", product_id=product.id, base_price=900.0),
            asynchronous=False,
        )
        cart = store.read("buyer-1")
        assert cart.items[0].unit_price == 900.0
        assert cart.total_amount == 1800.0

    def test_read_drops_inactive_products(self, store, make_product):
        kept, retired = make_product(base_price=10.0), make_product(base_price=20.0)
        store.add_item("buyer-1", kept.id, 1)
        store.add_item("buyer-1", retired.id, 1)

        current_domain.process(DeactivateProduct(tenant="laptops", product_id=retired.id), asynchronous=False)
        cart = store.read("buyer-1")

        assert [str(i.product_id) for i in cart.items] == [str(kept.id)]
        assert cart.total_amount == 10.0

    def test_carts_are_separate_per_tenant(self, make_product):
        laptop = make_product(tenant="laptops", base_price=1000.0)
        roses = make_product(tenant="flowers", name="Roses", base_price=10.0)

        CartStore("laptops").add_item("buyer-1", laptop.id, 1)
        CartStore("flowers").add_item("buyer-1", roses.id, 1)

        assert CartStore("laptops").read("buyer-1").total_amount == 1000.0
        assert CartStore("flowers").read("buyer-1").total_amount == 10.0
