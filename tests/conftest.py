import os
from pathlib import Path

import pytest

# Test layer by directory name; integration tests also count as slow
_LAYER_MARKERS = {
    "domain": ("domain",),
    "application": ("application",),
    "bdd": ("bdd",),
    "integration": ("integration", "slow"),
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="PROTEAN_ENV overlay of commerce/domain.toml to run against",
    )


def pytest_sessionstart(session):
    """Select the domain configuration overlay.

    The domain reads PROTEAN_ENV when it is first imported, so it has to be set
    before any test module pulls in ``commerce.domain``.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    for item in items:
        parts = Path(str(item.fspath)).parts
        layer = next((part for part in parts if part in _LAYER_MARKERS), None)
        for name in _LAYER_MARKERS.get(layer, ()):
            item.add_marker(getattr(pytest.mark, name))


@pytest.fixture(autouse=True)
def reset_adapters():
    """Fresh fake gateways, notification channels and settings for every test."""
    from commerce.gateway import reset_gateway
    from commerce.notification import reset_channels
    from commerce.settings import reset_settings

    reset_gateway()
    reset_channels()
    reset_settings()

    yield

    reset_gateway()
    reset_channels()
    reset_settings()
