"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. Every error renders as the same
``{"error": ..., "message": ...}`` JSON body, whether it is raised inside a
route (global exception handler) or by the Turnstile gate middleware.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error: str = "Internal error"
    message: str = "An internal server error occurred."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        if message is not None:
            self.message = message
        if error is not None:
            self.error = error
        super().__init__(self.message)
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.error, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class AuthenticationError(AppError):
    status_code = 401
    error = "Authentication required"
    message = "Authentication is required to access this resource"


class TokenMissingError(AuthenticationError):
    error = "Authentication required"
    message = "X-Turnstile-Token header is required"


class TokenInvalidError(AuthenticationError):
    error = "Invalid token"
    message = "Turnstile token validation failed"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return exc.to_response()

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        return JSONResponse(
            status_code=500,
            content={
                "error": AppError.error,
                "message": AppError.message,
            },
        )
