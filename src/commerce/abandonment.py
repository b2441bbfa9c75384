"""Abandoned cart and checkout sweeps.

Run periodically by ``scheduler.py``, never from request handling. Each
candidate is flagged through its own command, so one bad record does not stop
the sweep. The flag is what keeps the next run from alerting twice.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import InvalidOperationError, ValidationError
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.cart.management import FlagAbandonedCart
from commerce.notification.helpers import notify_admins, notify_user
from commerce.notification.port import Severity
from commerce.order.order import Order
from commerce.order.transitions import FlagAbandonedCheckout
from commerce.settings import get_settings
from commerce.tenancy import Tenant

logger = structlog.get_logger(__name__)


def _cutoff(as_of, minutes):
    return (as_of or datetime.now(UTC)) - timedelta(minutes=minutes)


def _naive_utc(moment):
    if moment.tzinfo is not None:
        return moment.astimezone(UTC).replace(tzinfo=None)
    return moment


def scan_abandoned_carts(tenant, as_of=None, idle_minutes=None) -> int:
    """Alert admins about non-empty carts left idle, once per cart."""
    idle_minutes = idle_minutes or get_settings().abandoned_cart_minutes
    cutoff = _cutoff(as_of, idle_minutes)

    carts = current_domain.repository_for(Cart).idle_since(tenant, cutoff)
    logger.info("abandoned_cart_scan", tenant=Tenant(tenant).value, candidates=len(carts), cutoff=cutoff.isoformat())

    flagged = 0
    for cart in carts:
        try:
            current_domain.process(FlagAbandonedCart(cart_id=str(cart.id)), asynchronous=False)
        except (ValidationError, InvalidOperationError) as exc:
            logger.warning("abandoned_cart_flag_failed", cart_id=str(cart.id), error=str(exc))
            continue

        flagged += 1
        notify_admins(
            "Abandoned cart",
            f"Buyer {cart.buyer_id} left {len(cart.items)} item(s) worth {cart.total_amount:.2f} in their cart.",
            Severity.INFO,
            f"/admin/carts/{cart.id}",
        )

    return flagged


def scan_abandoned_orders(tenant, as_of=None, idle_minutes=None) -> int:
    """Alert admins and buyers about online-payment orders that were never paid."""
    idle_minutes = idle_minutes or get_settings().abandoned_order_minutes
    cutoff = _naive_utc(_cutoff(as_of, idle_minutes))

    orders = [
        order
        for order in current_domain.repository_for(Order).awaiting_online_payment(tenant)
        if order.created_at and _naive_utc(order.created_at) <= cutoff
    ]
    logger.info("abandoned_order_scan", tenant=Tenant(tenant).value, candidates=len(orders))

    flagged = 0
    for order in orders:
        try:
            current_domain.process(
                FlagAbandonedCheckout(tenant=order.tenant, order_id=str(order.id)),
                asynchronous=False,
            )
        except (ValidationError, InvalidOperationError) as exc:
            logger.warning("abandoned_order_flag_failed", order_id=str(order.id), error=str(exc))
            continue

        flagged += 1
        notify_admins(
            "Abandoned checkout",
            f"Order #{order.display_id} ({order.total_amount:.2f} {order.currency}) was never paid.",
            Severity.WARNING,
            f"/admin/orders/{order.id}",
        )
        notify_user(
            order.buyer_id,
            "Complete your order",
            f"Your order #{order.display_id} is waiting for payment.",
            Severity.INFO,
            f"/checkout/retry/{order.id}",
        )

    return flagged
