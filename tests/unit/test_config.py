"""Unit tests for AppSettings and sub-configs."""

import pytest

from config import (
    TURNSTILE_VERIFY_URL,
    AppSettings,
    RedisSettings,
    TurnstileSettings,
)


# ---------------------------------------------------------------------------
# TurnstileSettings
# ---------------------------------------------------------------------------


class TestTurnstileSettings:
    def test_defaults(self):
        s = TurnstileSettings()
        assert s.turnstile_secret_key == ""
        assert s.turnstile_verify_url == TURNSTILE_VERIFY_URL
        assert s.turnstile_timeout_seconds == 5.0
        assert s.turnstile_token_ttl_seconds == 600
        assert s.turnstile_exempt_paths == ["/health"]

    def test_secret_loaded(self, monkeypatch):
        monkeypatch.setenv("TURNSTILE_SECRET_KEY", "0x4AAA-secret")
        assert TurnstileSettings().turnstile_secret_key == "0x4AAA-secret"

    def test_exempt_paths_from_json_env(self, monkeypatch):
        monkeypatch.setenv("TURNSTILE_EXEMPT_PATHS", '["/health", "/public"]')
        assert TurnstileSettings().turnstile_exempt_paths == ["/health", "/public"]


# ---------------------------------------------------------------------------
# RedisSettings
# ---------------------------------------------------------------------------


class TestRedisSettings:
    def test_redis_url_optional(self):
        assert RedisSettings().redis_url is None

    def test_redis_url_loaded(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://localhost:6379")
        assert RedisSettings().redis_url == "redis://localhost:6379"

    def test_default_connect_timeout(self):
        assert RedisSettings().redis_connect_timeout_seconds == 2.0


# ---------------------------------------------------------------------------
# AppSettings
# ---------------------------------------------------------------------------


class TestAppSettings:
    def test_sub_configs_populated(self):
        s = AppSettings()
        assert s.turnstile is not None
        assert s.redis is not None
        assert s.logging is not None
        assert s.sentry is not None

    def test_is_production(self, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        assert AppSettings().is_production is True

    @pytest.mark.parametrize(
        "secret, redis_url, expected",
        [
            ("secret", "redis://localhost:6379", True),
            ("", "redis://localhost:6379", False),
            ("secret", None, False),
            ("", None, False),
        ],
        ids=["both", "no_secret", "no_redis", "neither"],
    )
    def test_turnstile_enabled(self, monkeypatch, secret, redis_url, expected):
        monkeypatch.setenv("TURNSTILE_SECRET_KEY", secret)
        if redis_url:
            monkeypatch.setenv("REDIS_URL", redis_url)
        assert AppSettings().turnstile_enabled is expected

    def test_explicit_sub_configs_kept(self):
        s = AppSettings(
            turnstile=TurnstileSettings(turnstile_secret_key="s"),
            redis=RedisSettings(redis_url="redis://cache:6379"),
        )
        assert s.turnstile_enabled is True
        assert s.redis.redis_url == "redis://cache:6379"
