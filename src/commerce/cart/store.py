"""CartStore: the cart operations the rest of the service calls.

Each operation runs one command through the domain and returns the fresh cart.
"""

from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.cart.management import AddToCart, ClearCart, RefreshCart, RemoveFromCart, UpdateCartItem
from commerce.pricing.engine import Selections
from commerce.tenancy import BuyerRole, Tenant


class CartStore:
    def __init__(self, tenant):
        self.tenant = Tenant(tenant).value

    def _load(self, cart_id) -> Cart:
        return current_domain.repository_for(Cart).get(cart_id)

    def add_item(
        self,
        buyer_id,
        product_id,
        quantity,
        selections: Selections | None = None,
        buyer_role=BuyerRole.B2C_BUYER.value,
    ) -> Cart:
        selections = selections or Selections()
        cart_id = current_domain.process(
            AddToCart(
                tenant=self.tenant,
                buyer_id=buyer_id,
                buyer_role=buyer_role,
                product_id=product_id,
                quantity=quantity,
                ram=selections.ram,
                storage=selections.storage,
                warranty=selections.warranty,
            ),
            asynchronous=False,
        )
        return self._load(cart_id)

    def update_item(self, buyer_id, product_id, quantity, buyer_role=BuyerRole.B2C_BUYER.value) -> Cart:
        cart_id = current_domain.process(
            UpdateCartItem(
                tenant=self.tenant,
                buyer_id=buyer_id,
                buyer_role=buyer_role,
                product_id=product_id,
                quantity=quantity,
            ),
            asynchronous=False,
        )
        return self._load(cart_id)

    def remove_item(self, buyer_id, product_id) -> Cart:
        cart_id = current_domain.process(
            RemoveFromCart(tenant=self.tenant, buyer_id=buyer_id, product_id=product_id),
            asynchronous=False,
        )
        return self._load(cart_id)

    def clear(self, buyer_id) -> Cart:
        cart_id = current_domain.process(ClearCart(tenant=self.tenant, buyer_id=buyer_id), asynchronous=False)
        return self._load(cart_id)

    def read(self, buyer_id, buyer_role=BuyerRole.B2C_BUYER.value) -> Cart:
        """Revalidate against the catalogue, then return the cart."""
        cart_id = current_domain.process(
            RefreshCart(tenant=self.tenant, buyer_id=buyer_id, buyer_role=buyer_role),
            asynchronous=False,
        )
        return self._load(cart_id)


def cart_snapshot(cart: Cart) -> dict:
    """Plain-dict view of a cart, with selections grouped the way clients expect them."""
    return {
        "cart_id": str(cart.id),
        "tenant": cart.tenant,
        "buyer_id": str(cart.buyer_id),
        "items": [
            {
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total_price": item.total_price,
                "selected_config": {"ram": item.selected_ram, "storage": item.selected_storage},
                "selected_warranty": (
                    {"duration": item.warranty_duration, "price": item.warranty_price}
                    if item.warranty_duration
                    else None
                ),
            }
            for item in cart.items
        ],
        "total_amount": cart.total_amount,
    }
