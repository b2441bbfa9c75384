"""Payment initiation and payment-method listing.

Starting a payment changes nothing locally. The gateway gets the order id as
its correlation token, and the order is only touched later, when
reconciliation reads that token back.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from commerce.errors import AlreadyProcessed
from commerce.gateway import get_gateway
from commerce.gateway.port import PaymentGateway, PaymentMethodOption, PaymentSession
from commerce.order.order import Order, OrderStatus, PaymentMethod
from commerce.tenancy import Tenant, currency_for
from commerce.utils.cache import TTLCache

logger = structlog.get_logger(__name__)

# Gateways want an amount to quote fees against; the method list itself does not depend on it
LISTING_AMOUNT = 10.0


def start_payment(
    tenant,
    order_id,
    customer: dict | None = None,
    payment_method_id: str | None = None,
    gateway: PaymentGateway | None = None,
) -> PaymentSession:
    order = current_domain.repository_for(Order).get_for_tenant(tenant, order_id)

    if order.is_paid:
        raise AlreadyProcessed(f"Order {order.id} is already paid")
    if order.payment_held:
        raise AlreadyProcessed(f"Order {order.id} has a payment awaiting stock reconciliation")
    if order.status == OrderStatus.CANCELLED.value:
        raise ValidationError({"order_id": ["Cancelled orders cannot be paid"]})
    if order.payment_method == PaymentMethod.COD.value:
        raise ValidationError({"payment_method": ["Cash-on-delivery orders are paid on delivery"]})

    gateway = gateway or get_gateway(tenant)
    session = gateway.create_payment(
        amount=order.total_amount,
        currency=order.currency,
        correlation_token=str(order.id),
        customer=customer,
        payment_method_id=payment_method_id,
    )
    logger.info(
        "payment_started",
        order_id=str(order.id),
        gateway=gateway.name,
        gateway_payment_id=session.gateway_payment_id,
        amount=order.total_amount,
    )
    return session


class PaymentMethodCatalog:
    """Per-tenant payment-method listings, cached for the cache's TTL."""

    def __init__(self, cache: TTLCache, gateway_for=get_gateway):
        self._cache = cache
        self._gateway_for = gateway_for

    def methods_for(self, tenant) -> list[PaymentMethodOption]:
        tenant = Tenant(tenant)
        currency = currency_for(tenant)
        return self._cache.get_or_load(
            f"{tenant.value}:{currency}",
            lambda: self._gateway_for(tenant).list_payment_methods(LISTING_AMOUNT, currency),
        )

    def invalidate(self, tenant=None) -> None:
        if tenant is None:
            self._cache.invalidate()
        else:
            self._cache.invalidate(f"{Tenant(tenant).value}:{currency_for(tenant)}")
