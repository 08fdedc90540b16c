"""Pytest configuration and fixtures."""

import pytest


@pytest.fixture
def access_token() -> str:
    """Bearer token handed over by the session layer."""
    return "test-access-token"
