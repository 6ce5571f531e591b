"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system.
"""

from __future__ import annotations

from fastapi import Depends, Request

from infrastructure.cache.redis_client import LazyRedisConnection
from services.turnstile_gate import GateResult, TokenGate


def get_redis_connection(request: Request) -> LazyRedisConnection:
    """Return the shared lazily-connected Redis handle from app.state."""
    return request.app.state.redis


def get_token_gate(request: Request) -> TokenGate:
    """Return the TokenGate built by create_app()."""
    return request.app.state.token_gate


async def require_turnstile(
    request: Request, gate: TokenGate = Depends(get_token_gate)
) -> GateResult:
    """Route-level gate for apps that do not install TurnstileGateMiddleware.

    Raises TokenMissingError / TokenInvalidError, rendered by the global
    AppError handler.
    """
    platform_ip = request.client.host if request.client else None
    return await gate.enforce(request.headers, platform_ip)
