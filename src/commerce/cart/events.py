"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Cart")
class CartLineAdded:
    """A product was added to the cart, or its quantity was merged into an existing line."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)


@commerce.event(part_of="Cart")
class CartLineUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    unit_price = Float(required=True)


@commerce.event(part_of="Cart")
class CartLineRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reason = String(max_length=50)


@commerce.event(part_of="Cart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)


@commerce.event(part_of="Cart")
class CartRepriced:
    """A read found catalogue changes and rewrote the cart's prices."""

    __version__ = 1

    cart_id = Identifier(required=True)
    total_amount = Float(required=True)


@commerce.event(part_of="Cart")
class CartFlaggedAbandoned:
    __version__ = 1

    cart_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    flagged_at = DateTime(required=True)
