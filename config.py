"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

The Turnstile gate is only active when both TURNSTILE_SECRET_KEY and
REDIS_URL are set; see AppSettings.turnstile_enabled.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TURNSTILE_VERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"


class TurnstileSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    turnstile_secret_key: str = ""
    turnstile_verify_url: str = TURNSTILE_VERIFY_URL
    turnstile_timeout_seconds: float = 5.0
    turnstile_token_ttl_seconds: int = 600

    # Path prefixes that bypass the gate entirely
    turnstile_exempt_paths: list[str] = ["/health"]


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without it the gate is disabled
    redis_url: Optional[str] = None
    redis_connect_timeout_seconds: float = 2.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    app_name: str = "turnstile-gate"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    turnstile: Optional[TurnstileSettings] = None
    redis: Optional[RedisSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.turnstile is None:
            self.turnstile = TurnstileSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def turnstile_enabled(self) -> bool:
        return bool(self.turnstile.turnstile_secret_key and self.redis.redis_url)
