"""Domain events for the Transaction aggregate."""

from protean.fields import Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="Transaction")
class TransactionRecorded:
    """The first sighting of a gateway payment id."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_payment_id = String(required=True)
    status = String(required=True)
    amount = Float()


@commerce.event(part_of="Transaction")
class TransactionStatusChanged:
    __version__ = 1

    transaction_id = Identifier(required=True)
    gateway_payment_id = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
