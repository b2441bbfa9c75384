"""Pydantic request/response schemas for the commerce API.

These are external contracts, kept apart from the protean commands they are
translated into.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class SelectedConfigSchema(BaseModel):
    ram: str | None = None
    storage: str | None = None


class SelectedWarrantySchema(BaseModel):
    duration: str | None = None
    price: float | None = None


class DeliverySchema(BaseModel):
    recipient_name: str | None = None
    phone: str | None = None
    email: str | None = None
    address_line: str | None = None
    area: str | None = None
    city: str | None = None
    delivery_date: str | None = None
    time_slot: str | None = None
    notes: str | None = Field(default=None, max_length=1000)


class LineItemSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    selected_config: SelectedConfigSchema | None = None
    selected_warranty: SelectedWarrantySchema | None = None


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartItemRequest(LineItemSchema):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 2,
                    "selected_config": {"ram": "16GB", "storage": "512GB"},
                    "selected_warranty": {"duration": "1 Year"},
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)


class CartLineResponse(BaseModel):
    product_id: str
    product_name: str | None = None
    quantity: int
    unit_price: float
    total_price: float
    selected_config: SelectedConfigSchema | None = None
    selected_warranty: SelectedWarrantySchema | None = None


class CartResponse(BaseModel):
    cart_id: str
    tenant: str
    buyer_id: str
    items: list[CartLineResponse]
    total_amount: float


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    items: list[LineItemSchema] = Field(min_length=1)
    payment_method: str
    delivery: DeliverySchema | None = None


class CheckoutRequest(BaseModel):
    payment_method: str
    delivery: DeliverySchema | None = None


class UpdateStatusRequest(BaseModel):
    status: str


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class OrderLineResponse(BaseModel):
    product_id: str
    product_name: str | None = None
    quantity: int
    price_at_purchase: float
    selected_config: SelectedConfigSchema | None = None
    selected_warranty: SelectedWarrantySchema | None = None


class OrderResponse(BaseModel):
    order_id: str
    display_id: str | None = None
    tenant: str
    buyer_id: str
    order_type: str
    status: str
    payment_status: str
    payment_held: bool = False
    payment_method: str
    total_amount: float
    currency: str | None = None
    invoice_number: str | None = None
    items: list[OrderLineResponse]
    delivery: DeliverySchema | None = None
    created_at: str | None = None


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class CustomerSchema(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class InitiatePaymentRequest(BaseModel):
    order_id: str
    payment_method_id: str | None = None
    customer: CustomerSchema | None = None


class PaymentSessionResponse(BaseModel):
    gateway_payment_id: str
    payment_url: str | None = None
    order_id: str


class VerifyPaymentRequest(BaseModel):
    payment_id: str


class ReconciliationResponse(BaseModel):
    order_id: str
    display_id: str | None = None
    outcome: str
    transaction_id: str | None = None
    invoice_number: str | None = None
    requires_refund: bool = False


class PaymentMethodResponse(BaseModel):
    method_id: str
    name: str | None = None
    code: str | None = None
    service_charge: float = 0.0
