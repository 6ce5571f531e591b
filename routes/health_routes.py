"""
Health check endpoint.

GET /health: checks Redis connectivity and reports whether the Turnstile
gate is enabled. Exempt from the gate by default (see turnstile_exempt_paths).
Rules:
- Redis failure or absence gives "degraded" (200). Verification still works
  upstream, every request just pays for a siteverify round trip.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dependencies import get_redis_connection, get_token_gate
from infrastructure.cache.redis_client import LazyRedisConnection
from services.turnstile_gate import TokenGate

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    connection: LazyRedisConnection = Depends(get_redis_connection),
    gate: TokenGate = Depends(get_token_gate),
) -> JSONResponse:
    checks: dict[str, str] = {
        "turnstile": "enabled" if gate.enabled else "disabled",
    }
    overall = "healthy"

    if not connection.configured:
        checks["redis"] = "not_configured"
        overall = "degraded"
    else:
        try:
            redis = await connection.get()
            if redis is None:
                raise ConnectionError("redis unavailable")
            await redis.ping()
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "error"
            overall = "degraded"

    return JSONResponse(
        status_code=200,
        content={"status": overall, "checks": checks},
    )
