"""FastAPI routes for the commerce pipeline: cart, orders, payments.

Every route is scoped by tenant in its path. Routes translate requests into
CartStore / OrderLifecycle / PaymentReconciler calls and nothing more.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from commerce.api.dependencies import Caller, get_caller, get_payment_method_catalog, require_admin
from commerce.api.schemas import (
    AddCartItemRequest,
    CancelOrderRequest,
    CartResponse,
    CheckoutRequest,
    CreateOrderRequest,
    InitiatePaymentRequest,
    OrderResponse,
    PaymentMethodResponse,
    PaymentSessionResponse,
    ReconciliationResponse,
    UpdateCartItemRequest,
    UpdateStatusRequest,
    VerifyPaymentRequest,
)
from commerce.cart.store import CartStore, cart_snapshot
from commerce.order.lifecycle import OrderLifecycle, order_snapshot
from commerce.payment.initiation import PaymentMethodCatalog, start_payment
from commerce.payment.reconciliation import PaymentReconciler
from commerce.pricing.engine import Selections
from commerce.tenancy import Tenant


def _selections(body) -> Selections:
    config = body.selected_config
    warranty = body.selected_warranty
    return Selections(
        ram=config.ram if config else None,
        storage=config.storage if config else None,
        warranty=warranty.duration if warranty else None,
    )


def _item_payload(item) -> dict:
    selections = _selections(item)
    return {
        "product_id": item.product_id,
        "quantity": item.quantity,
        "ram": selections.ram,
        "storage": selections.storage,
        "warranty": selections.warranty,
    }


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/{tenant}/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def read_cart(tenant: Tenant, caller: Caller = Depends(get_caller)) -> CartResponse:
    cart = CartStore(tenant).read(caller.buyer_id, caller.role)
    return CartResponse(**cart_snapshot(cart))


@cart_router.post("/items", response_model=CartResponse)
async def add_cart_item(
    tenant: Tenant,
    body: AddCartItemRequest,
    caller: Caller = Depends(get_caller),
) -> CartResponse:
    cart = CartStore(tenant).add_item(
        caller.buyer_id,
        body.product_id,
        body.quantity,
        selections=_selections(body),
        buyer_role=caller.role,
    )
    return CartResponse(**cart_snapshot(cart))


@cart_router.patch("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    tenant: Tenant,
    product_id: str,
    body: UpdateCartItemRequest,
    caller: Caller = Depends(get_caller),
) -> CartResponse:
    cart = CartStore(tenant).update_item(caller.buyer_id, product_id, body.quantity, buyer_role=caller.role)
    return CartResponse(**cart_snapshot(cart))


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(tenant: Tenant, product_id: str, caller: Caller = Depends(get_caller)) -> CartResponse:
    cart = CartStore(tenant).remove_item(caller.buyer_id, product_id)
    return CartResponse(**cart_snapshot(cart))


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(tenant: Tenant, caller: Caller = Depends(get_caller)) -> CartResponse:
    cart = CartStore(tenant).clear(caller.buyer_id)
    return CartResponse(**cart_snapshot(cart))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/{tenant}/orders", tags=["orders"])


def _owned_or_admin(lifecycle: OrderLifecycle, order_id: str, caller: Caller):
    order = lifecycle.get(order_id)
    if not caller.is_admin and str(order.buyer_id) != caller.buyer_id:
        # Do not reveal other buyers' orders
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(
    tenant: Tenant,
    body: CreateOrderRequest,
    caller: Caller = Depends(get_caller),
) -> OrderResponse:
    order = OrderLifecycle(tenant).create_order(
        caller.buyer_id,
        body.payment_method,
        items=[_item_payload(item) for item in body.items],
        delivery=body.delivery.model_dump(exclude_none=True) if body.delivery else None,
        buyer_role=caller.role,
    )
    return OrderResponse(**order_snapshot(order))


@order_router.post("/checkout", status_code=201, response_model=OrderResponse)
async def checkout(tenant: Tenant, body: CheckoutRequest, caller: Caller = Depends(get_caller)) -> OrderResponse:
    order = OrderLifecycle(tenant).create_order(
        caller.buyer_id,
        body.payment_method,
        delivery=body.delivery.model_dump(exclude_none=True) if body.delivery else None,
        buyer_role=caller.role,
    )
    return OrderResponse(**order_snapshot(order))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(tenant: Tenant, order_id: str, caller: Caller = Depends(get_caller)) -> OrderResponse:
    order = _owned_or_admin(OrderLifecycle(tenant), order_id, caller)
    return OrderResponse(**order_snapshot(order))


@order_router.post("/{order_id}/approve", response_model=OrderResponse)
async def approve_order(tenant: Tenant, order_id: str, caller: Caller = Depends(get_caller)) -> OrderResponse:
    require_admin(caller)
    order = OrderLifecycle(tenant).approve(order_id)
    return OrderResponse(**order_snapshot(order))


@order_router.post("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    tenant: Tenant,
    order_id: str,
    body: UpdateStatusRequest,
    caller: Caller = Depends(get_caller),
) -> OrderResponse:
    require_admin(caller)
    order = OrderLifecycle(tenant).transition_status(order_id, body.status.strip().upper())
    return OrderResponse(**order_snapshot(order))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    tenant: Tenant,
    order_id: str,
    body: CancelOrderRequest,
    caller: Caller = Depends(get_caller),
) -> OrderResponse:
    lifecycle = OrderLifecycle(tenant)
    _owned_or_admin(lifecycle, order_id, caller)
    order = lifecycle.cancel(order_id, reason=body.reason)
    return OrderResponse(**order_snapshot(order))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/{tenant}/payments", tags=["payments"])


@payment_router.get("/methods", response_model=list[PaymentMethodResponse])
async def list_payment_methods(
    tenant: Tenant,
    catalog: PaymentMethodCatalog = Depends(get_payment_method_catalog),
) -> list[PaymentMethodResponse]:
    return [
        PaymentMethodResponse(
            method_id=method.method_id,
            name=method.name,
            code=method.code,
            service_charge=method.service_charge,
        )
        for method in catalog.methods_for(tenant)
    ]


@payment_router.post("/initiate", status_code=201, response_model=PaymentSessionResponse)
async def initiate_payment(
    tenant: Tenant,
    body: InitiatePaymentRequest,
    caller: Caller = Depends(get_caller),
) -> PaymentSessionResponse:
    _owned_or_admin(OrderLifecycle(tenant), body.order_id, caller)
    session = start_payment(
        tenant,
        body.order_id,
        customer=body.customer.model_dump() if body.customer else None,
        payment_method_id=body.payment_method_id,
    )
    return PaymentSessionResponse(
        gateway_payment_id=session.gateway_payment_id,
        payment_url=session.payment_url,
        order_id=session.correlation_token,
    )


def _reconcile(tenant, payment_id) -> ReconciliationResponse:
    result = PaymentReconciler(tenant).verify(payment_id)
    return ReconciliationResponse(
        order_id=result.order_id,
        display_id=result.display_id,
        outcome=result.outcome.value,
        transaction_id=result.transaction_id,
        invoice_number=result.invoice_number,
        requires_refund=result.requires_refund,
    )


@payment_router.post("/verify", response_model=ReconciliationResponse)
async def verify_payment(tenant: Tenant, body: VerifyPaymentRequest) -> ReconciliationResponse:
    """Reconcile a payment; safe to call any number of times for the same id."""
    return _reconcile(tenant, body.payment_id)


@payment_router.get("/verify", response_model=ReconciliationResponse)
async def payment_callback(tenant: Tenant, payment_id: str = Query(alias="paymentId")) -> ReconciliationResponse:
    """Gateway redirect target: the gateway appends ``paymentId`` to the callback URL."""
    return _reconcile(tenant, payment_id)
