"""Domain events for the Product aggregate."""

from protean.fields import Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Product")
class ProductRegistered:
    """A product became available to the pipeline."""

    __version__ = 1

    product_id = Identifier(required=True)
    tenant = String(required=True)
    name = String(required=True)
    base_price = Float(required=True)
    stock = Integer(required=True)


@commerce.event(part_of="Product")
class ProductRepriced:
    __version__ = 1

    product_id = Identifier(required=True)
    base_price = Float(required=True)
    b2b_price = Float()
    moq = Integer()


@commerce.event(part_of="Product")
class ProductDeactivated:
    __version__ = 1

    product_id = Identifier(required=True)


@commerce.event(part_of="Product")
class StockDeducted:
    """Units left the ledger for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True)
    remaining = Integer(required=True)


@commerce.event(part_of="Product")
class StockRestored:
    """Units came back into the ledger (restock or cancelled order)."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    reason = String(max_length=255)
