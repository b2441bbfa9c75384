"""Request-scoped dependencies: who is calling, and shared components.

Authentication happens upstream. The gateway in front of this service sets
``X-Buyer-Id`` and ``X-Buyer-Role`` after validating the caller's token.
"""

from dataclasses import dataclass

from fastapi import Header, HTTPException, Request

from commerce.payment.initiation import PaymentMethodCatalog
from commerce.tenancy import BuyerRole


@dataclass(frozen=True)
class Caller:
    buyer_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == BuyerRole.ADMIN.value


def get_caller(
    x_buyer_id: str = Header(...),
    x_buyer_role: str = Header(default=BuyerRole.B2C_BUYER.value),
) -> Caller:
    role = x_buyer_role.strip().upper()
    if role not in {r.value for r in BuyerRole}:
        raise HTTPException(status_code=400, detail=f"Unknown buyer role: {x_buyer_role}")
    return Caller(buyer_id=x_buyer_id, role=role)


def require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")


def get_payment_method_catalog(request: Request) -> PaymentMethodCatalog:
    """The catalogue built once by the app factory and kept on ``app.state``."""
    return request.app.state.payment_methods
