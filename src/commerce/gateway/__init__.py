"""Payment gateway factory, one gateway per tenant.

``PAYMENT_GATEWAY=myfatoorah`` selects the real adapter; anything else gets
the in-memory ``FakeGateway``. Tests swap gateways with ``set_gateway``.
"""

from commerce.gateway.fake_adapter import FakeGateway
from commerce.gateway.myfatoorah_adapter import MyFatoorahGateway
from commerce.gateway.port import PaymentGateway
from commerce.settings import get_settings
from commerce.tenancy import Tenant

_gateways: dict[str, PaymentGateway] = {}


def _build_gateway(tenant: Tenant) -> PaymentGateway:
    settings = get_settings()
    base_url = settings.app_base_url.rstrip("/")
    if settings.payment_gateway == "myfatoorah":
        return MyFatoorahGateway(
            base_url=settings.myfatoorah_api_url,
            api_token=settings.myfatoorah_api_token,
            timeout=settings.gateway_timeout_seconds,
            callback_url=f"{base_url}/{tenant.value}/payments/verify",
            error_url=f"{base_url}/{tenant.value}/payments/verify",
        )
    return FakeGateway()


def get_gateway(tenant) -> PaymentGateway:
    """Return the tenant's payment gateway."""
    tenant = Tenant(tenant)
    if tenant.value not in _gateways:
        _gateways[tenant.value] = _build_gateway(tenant)
    return _gateways[tenant.value]


def set_gateway(tenant, gateway: PaymentGateway) -> None:
    """Override a tenant's gateway (useful for tests)."""
    _gateways[Tenant(tenant).value] = gateway


def reset_gateway() -> None:
    """Reset to default gateways."""
    _gateways.clear()
