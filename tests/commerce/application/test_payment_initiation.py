"""Application tests for starting payments and listing payment methods."""

import pytest
from commerce.errors import AlreadyProcessed, GatewayTimeout
from commerce.order.lifecycle import OrderLifecycle
from commerce.payment.initiation import LISTING_AMOUNT, PaymentMethodCatalog, start_payment
from commerce.payment.reconciliation import PaymentReconciler
from commerce.utils.cache import TTLCache
from protean.exceptions import ObjectNotFoundError, ValidationError


@pytest.fixture()
def roses(make_product):
    return make_product(tenant="flowers", name="Red Roses", base_price=12.5, stock=10)


def _order(roses, payment_method="CREDIT_CARD"):
    return OrderLifecycle("flowers").create_order(
        "buyer-1", payment_method, items=[{"product_id": roses.id, "quantity": 2}]
    )


class TestStartPayment:
    def test_session_carries_the_order_id(self, gateway, roses):
        order = _order(roses)
        session = start_payment("flowers", order.id, customer={"name": "Noor", "email": "noor@example.com"})

        assert session.correlation_token == str(order.id)
        assert session.payment_url.endswith(session.gateway_payment_id)
        call = gateway.calls[-1]
        assert call["amount"] == 25.0
        assert call["currency"] == "KWD"

    def test_starting_a_payment_changes_nothing_locally(self, gateway, roses):
        order = _order(roses)
        start_payment("flowers", order.id)

        refreshed = OrderLifecycle("flowers").get(order.id)
        assert refreshed.payment_status == "PENDING"
        assert refreshed.gateway_payment_id is None

    def test_cash_orders_are_not_paid_online(self, gateway, roses):
        with pytest.raises(ValidationError):
            start_payment("flowers", _order(roses, "COD").id)

    def test_cancelled_orders_cannot_be_paid(self, gateway, roses):
        order = _order(roses)
        OrderLifecycle("flowers").cancel(order.id)
        with pytest.raises(ValidationError):
            start_payment("flowers", order.id)

    def test_paid_orders_cannot_be_paid_again(self, gateway, roses):
        order = _order(roses)
        session = start_payment("flowers", order.id)
        gateway.settle(session.gateway_payment_id)
        PaymentReconciler("flowers").verify(session.gateway_payment_id)

        with pytest.raises(AlreadyProcessed):
            start_payment("flowers", order.id)

    def test_order_from_other_tenant_is_not_found(self, gateway, roses):
        with pytest.raises(ObjectNotFoundError):
            start_payment("laptops", _order(roses).id)

    def test_gateway_timeout_propagates(self, gateway, roses):
        order = _order(roses)
        gateway.configure(times_out=True)
        with pytest.raises(GatewayTimeout):
            start_payment("flowers", order.id)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestPaymentMethodCatalog:
    def test_listing_is_cached_per_tenant(self, gateway):
        catalog = PaymentMethodCatalog(TTLCache(300, clock=FakeClock()))

        first = catalog.methods_for("flowers")
        second = catalog.methods_for("flowers")
        catalog.methods_for("laptops")

        assert first == second
        listings = [c for c in gateway.calls if c["method"] == "list_payment_methods"]
        assert [(c["amount"], c["currency"]) for c in listings] == [(LISTING_AMOUNT, "KWD"), (LISTING_AMOUNT, "INR")]

    def test_listing_is_reloaded_after_ttl(self, gateway):
        clock = FakeClock()
        catalog = PaymentMethodCatalog(TTLCache(300, clock=clock))

        catalog.methods_for("flowers")
        clock.now = 301
        catalog.methods_for("flowers")

        assert len([c for c in gateway.calls if c["method"] == "list_payment_methods"]) == 2

    def test_invalidate(self, gateway):
        catalog = PaymentMethodCatalog(TTLCache(300, clock=FakeClock()))
        catalog.methods_for("flowers")
        catalog.invalidate("flowers")
        catalog.methods_for("flowers")

        assert len([c for c in gateway.calls if c["method"] == "list_payment_methods"]) == 2

    def test_failed_listing_is_not_cached(self, gateway):
        catalog = PaymentMethodCatalog(TTLCache(300, clock=FakeClock()))
        gateway.configure(times_out=True)
        with pytest.raises(GatewayTimeout):
            catalog.methods_for("flowers")

        gateway.configure(times_out=False)
        assert [m.name for m in catalog.methods_for("flowers")] == ["KNET", "VISA/MASTER"]
