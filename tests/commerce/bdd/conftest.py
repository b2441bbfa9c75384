"""Shared BDD fixtures for the commerce pipeline."""

import pytest


@pytest.fixture()
def error():
    """Container for an exception raised by a When step."""
    return {"exc": None}


@pytest.fixture()
def catalogue():
    """Products created by Given steps, by name."""
    return {}
