"""
Turnstile gate middleware.

Runs TokenGate.enforce() in front of every request whose path is neither an
exempt path nor below one. Rejections are rendered here rather than by the
app's exception handlers, which do not wrap user middleware.
"""

from __future__ import annotations

from typing import Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from errors import AppError
from services.turnstile_gate import AllowedVia, TokenGate
from shared.logging import get_logger

log = get_logger(__name__)


class TurnstileGateMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        gate: TokenGate,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self.gate = gate
        self.exempt_paths = tuple(exempt_paths)

    def is_exempt(self, path: str) -> bool:
        # Segment match: "/health" covers "/health/live" but not "/healthcare"
        for prefix in self.exempt_paths:
            base = prefix.rstrip("/")
            if path == prefix or path == base or path.startswith(base + "/"):
                return True
        return False

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self.is_exempt(request.url.path):
            request.state.turnstile = AllowedVia.EXEMPT.value
            return await call_next(request)

        platform_ip = request.client.host if request.client else None
        try:
            result = await self.gate.enforce(request.headers, platform_ip)
        except AppError as exc:
            log.info(
                "turnstile_request_blocked",
                method=request.method,
                path=request.url.path,
                status_code=exc.status_code,
                reason=exc.error,
            )
            return exc.to_response()

        request.state.turnstile = result.via.value
        return await call_next(request)
