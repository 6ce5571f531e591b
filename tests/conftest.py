"""
Shared test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during tests, clears Turnstile/Redis env vars, and provides an in-memory
async Redis double with a controllable clock for TTL tests.
"""

from __future__ import annotations

from typing import Optional

import pytest

_GATE_ENV_VARS = (
    "TURNSTILE_SECRET_KEY",
    "TURNSTILE_VERIFY_URL",
    "TURNSTILE_TIMEOUT_SECONDS",
    "TURNSTILE_TOKEN_TTL_SECONDS",
    "TURNSTILE_EXEMPT_PATHS",
    "REDIS_URL",
    "REDIS_CONNECT_TIMEOUT_SECONDS",
    "SENTRY_DSN",
    "ENV",
)


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})
    for var in _GATE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the token cache: GET / SETEX / PING."""

    def __init__(self) -> None:
        self.now = 0.0
        self._data: dict[str, tuple[str, float]] = {}
        self.setex_calls: list[tuple[str, int, str]] = []

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.now >= expires_at:
            del self._data[key]
            return None
        return value

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.setex_calls.append((key, ttl, value))
        self._data[key] = (value, self.now + ttl)
        return True

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
