import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    with commerce_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def make_product():
    """Register a product straight through the repository and return it."""
    from protean import current_domain

    from commerce.catalogue.product import Product

    def _make(tenant="laptops", name="ThinkPad X1", base_price=100.0, stock=10, **attrs):
        product = Product.register(tenant=tenant, name=name, base_price=base_price, stock=stock, **attrs)
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def gateway():
    """The fake gateway both tenants use for the duration of a test."""
    from commerce.gateway import set_gateway
    from commerce.gateway.fake_adapter import FakeGateway
    from commerce.tenancy import Tenant

    fake = FakeGateway()
    for tenant in Tenant:
        set_gateway(tenant, fake)
    return fake


@pytest.fixture()
def in_app():
    """The in-app notification channel, for asserting on what was sent."""
    from commerce.notification import get_channel

    return get_channel("in_app")


@pytest.fixture()
def email():
    from commerce.notification import get_channel

    return get_channel("email")
