"""Tests for per-tenant gateway selection."""

from commerce.gateway import get_gateway, set_gateway
from commerce.gateway.fake_adapter import FakeGateway
from commerce.gateway.myfatoorah_adapter import MyFatoorahGateway


def test_fake_gateway_by_default():
    assert isinstance(get_gateway("flowers"), FakeGateway)


def test_each_tenant_gets_its_own_gateway():
    assert get_gateway("flowers") is get_gateway("flowers")
    assert get_gateway("flowers") is not get_gateway("laptops")


def test_myfatoorah_is_selected_from_the_environment(monkeypatch):
    monkeypatch.setenv("PAYMENT_GATEWAY", "MyFatoorah")
    monkeypatch.setenv("APP_BASE_URL", "https://shop.example.com/")

    gateway = get_gateway("laptops")

    assert isinstance(gateway, MyFatoorahGateway)
    assert gateway.callback_url == "https://shop.example.com/laptops/payments/verify"


def test_override():
    fake = FakeGateway()
    set_gateway("flowers", fake)
    assert get_gateway("flowers") is fake
