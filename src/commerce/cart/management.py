"""Cart line management: commands and handler.

All commands identify the cart by (tenant, buyer). The cart is created the
first time a buyer touches it.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.catalogue.product import Product
from commerce.domain import commerce
from commerce.pricing.engine import Selections
from commerce.tenancy import BuyerRole, Tenant, buyer_class_for

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Cart")
class AddToCart:
    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)
    buyer_role = String(choices=BuyerRole, default=BuyerRole.B2C_BUYER.value)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    ram = String(max_length=100)
    storage = String(max_length=100)
    warranty = String(max_length=100)


@commerce.command(part_of="Cart")
class UpdateCartItem:
    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)
    buyer_role = String(choices=BuyerRole, default=BuyerRole.B2C_BUYER.value)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="Cart")
class RemoveFromCart:
    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@commerce.command(part_of="Cart")
class ClearCart:
    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)


@commerce.command(part_of="Cart")
class RefreshCart:
    """Revalidate and reprice a cart against the current catalogue."""

    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)
    buyer_role = String(choices=BuyerRole, default=BuyerRole.B2C_BUYER.value)


@commerce.command(part_of="Cart")
class FlagAbandonedCart:
    cart_id = Identifier(required=True)


def _load_cart(repo, tenant, buyer_id) -> tuple[Cart, bool]:
    cart = repo.for_buyer(tenant, buyer_id)
    if cart is None:
        return Cart.open(tenant, buyer_id), True
    return cart, False


@commerce.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = current_domain.repository_for(Product).get_for_tenant(command.tenant, command.product_id)
        repo = current_domain.repository_for(Cart)
        cart, _ = _load_cart(repo, command.tenant, command.buyer_id)

        cart.add_product(
            product,
            command.quantity,
            buyer_class_for(command.buyer_role),
            Selections(ram=command.ram, storage=command.storage, warranty=command.warranty),
        )
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        product = current_domain.repository_for(Product).get_for_tenant(command.tenant, command.product_id)
        repo = current_domain.repository_for(Cart)
        cart, _ = _load_cart(repo, command.tenant, command.buyer_id)

        cart.change_quantity(product, command.quantity, buyer_class_for(command.buyer_role))
        repo.add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart, _ = _load_cart(repo, command.tenant, command.buyer_id)

        cart.remove_product(command.product_id)
        repo.add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart, _ = _load_cart(repo, command.tenant, command.buyer_id)

        cart.clear()
        repo.add(cart)
        return str(cart.id)

    @handle(RefreshCart)
    def refresh_cart(self, command):
        products = current_domain.repository_for(Product)
        repo = current_domain.repository_for(Cart)
        cart, created = _load_cart(repo, command.tenant, command.buyer_id)

        changed = cart.refresh(
            lambda product_id: products.find_for_tenant(command.tenant, product_id),
            buyer_class_for(command.buyer_role),
        )
        # Unchanged carts are not written back
        if created or changed:
            repo.add(cart)
            logger.debug("cart_refreshed", cart_id=str(cart.id), created=created, changed=changed)
        return str(cart.id)

    @handle(FlagAbandonedCart)
    def flag_abandoned_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.flag_abandoned()
        repo.add(cart)
