"""Shared fixtures: required settings and a controllable clock."""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Settings are read at import time by the application modules.
os.environ.setdefault("GATEWAY_BASE_URL", "https://gateway.test")
os.environ.setdefault("GATEWAY_USERNAME", "relay-user")
os.environ.setdefault("GATEWAY_PASSWORD", "relay-pass")
os.environ.setdefault("INTERNAL_SERVICE_URL", "http://internal.test")
os.environ.setdefault("TRACING_ENABLED", "false")

from billrelay.common.config import RelaySettings  # noqa: E402


class FakeClock:
    """Clock whose current instant only moves when a test advances it."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_settings():
    """Build a settings snapshot with test defaults plus overrides."""

    def _make(**overrides) -> RelaySettings:
        values = {
            "gateway_base_url": "https://gateway.test",
            "gateway_username": "relay-user",
            "gateway_password": "relay-pass",
            "internal_service_url": "http://internal.test",
            "tracing_enabled": False,
        }
        values.update(overrides)
        return RelaySettings(_env_file=None, **values)

    return _make
