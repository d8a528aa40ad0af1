from __future__ import annotations

import pytest
from fakes import FakeClient

from fan_alert.config import Settings


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def settings() -> Settings:
    """Fully configured settings: credentials, sender number and default destination."""
    return Settings(
        account_id="AC0123456789abcdef",
        auth_secret="secret-token-value",
        sender_number="+15550001111",
        default_destination="+15557778888",
    )
