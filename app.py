"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.redis_client import LazyRedisConnection
from infrastructure.cache.token_cache import TokenCache
from infrastructure.captcha.protocol import CaptchaVerifier
from infrastructure.captcha.turnstile import TurnstileVerifier
from infrastructure.http_client import HttpClient
from middleware.turnstile import TurnstileGateMiddleware
from routes.health_routes import router as health_router
from services.turnstile_gate import TokenGate
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_token_gate(
    settings: AppSettings,
    connection: LazyRedisConnection,
    http_client: HttpClient,
    verifier: Optional[CaptchaVerifier] = None,
) -> TokenGate:
    """Wire the gate's collaborators, or return a pass-through gate when
    the secret or Redis URL is missing."""
    if not settings.turnstile_enabled:
        log.warning(
            "turnstile_gate_disabled",
            siteverify_configured=bool(settings.turnstile.turnstile_secret_key),
            redis_configured=bool(settings.redis.redis_url),
        )
        return TokenGate(cache=None, verifier=None)

    if verifier is None:
        verifier = TurnstileVerifier(
            secret=settings.turnstile.turnstile_secret_key,
            http_client=http_client,
            verify_url=settings.turnstile.turnstile_verify_url,
        )
    cache = TokenCache(
        connection, ttl_seconds=settings.turnstile.turnstile_token_ttl_seconds
    )
    return TokenGate(cache=cache, verifier=verifier)


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    redis_connection: Optional[LazyRedisConnection] = None,
    verifier: Optional[CaptchaVerifier] = None,
) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging, env=settings.env)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
        )

    http_client = HttpClient(timeout=settings.turnstile.turnstile_timeout_seconds)

    # Connects lazily on the first gated request, not at startup
    if redis_connection is None:
        redis_connection = LazyRedisConnection(
            settings.redis.redis_url,
            connect_timeout=settings.redis.redis_connect_timeout_seconds,
        )

    gate = build_token_gate(settings, redis_connection, http_client, verifier)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await http_client.aclose()
        await redis_connection.aclose()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.redis = redis_connection
    app.state.token_gate = gate

    # Added first so CORS wraps it and rejections still carry CORS headers
    app.add_middleware(
        TurnstileGateMiddleware,
        gate=gate,
        exempt_paths=settings.turnstile.turnstile_exempt_paths,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)

    return app
