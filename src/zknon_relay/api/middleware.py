"""FastAPI middleware for request tracing, error translation, and CORS.

Middleware stack (applied bottom-up):
    1. RequestIDMiddleware: injects X-Request-ID into every request/response
    2. ErrorHandlerMiddleware: turns raised RelayErrors into structured JSON
    3. CORSMiddleware: only the configured frontend origins

``STATUS_BY_ERROR`` is the single table from error kind to HTTP status. It
is used both for raised errors and for FAILED withdrawal results.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from zknon_relay.domain.exceptions import (
    ConfigurationError,
    DuplicateOperationError,
    HashExpiryError,
    InsufficientFundsError,
    NetworkError,
    RateLimitedError,
    RelayError,
    RemoteError,
    ValidationError,
    WithdrawalNotFoundError,
)
from zknon_relay.schemas.withdrawal import ErrorResponse

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = structlog.get_logger(__name__)

# Most specific first: the first isinstance match wins.
STATUS_BY_ERROR: tuple[tuple[type[RelayError], int], ...] = (
    (ValidationError, 400),
    (WithdrawalNotFoundError, 404),
    (RateLimitedError, 409),
    (DuplicateOperationError, 409),
    (HashExpiryError, 409),
    (InsufficientFundsError, 409),
    (RemoteError, 502),
    (NetworkError, 502),
    (ConfigurationError, 500),
)


def status_for(exc: RelayError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def error_response(
    exc: RelayError,
    *,
    signature: str | None = None,
    note: str | None = None,
) -> JSONResponse:
    """Render a RelayError as ``{ok: false, error, code}`` with its mapped status."""
    body = ErrorResponse(error=exc.message, code=exc.code, signature=signature, note=note)
    response = JSONResponse(status_code=status_for(exc), content=body.model_dump(exclude_none=True))
    if isinstance(exc, RateLimitedError):
        response.headers["Retry-After"] = str(max(1, round(exc.window_seconds)))
    return response


# ---------------------------------------------------------------------------
# 1. Request ID Middleware
# ---------------------------------------------------------------------------
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique X-Request-ID into every request for log correlation.

    The id doubles as the withdrawal id, so a client that sends its own
    X-Request-ID can look the outcome up later even if it drops the
    connection.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# 2. Error Handler Middleware
# ---------------------------------------------------------------------------
class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch domain exceptions and return structured JSON error responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except RelayError as exc:
            status = status_for(exc)
            log = logger.error if status >= 500 else logger.warning
            log("request.failed", path=request.url.path, error=exc.message, code=exc.code)
            return error_response(exc)
        except Exception as exc:
            logger.exception("unhandled.error", error=str(exc))
            return JSONResponse(
                status_code=500,
                content={
                    "ok": False,
                    "error": "An unexpected error occurred",
                    "code": "INTERNAL_ERROR",
                },
            )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are caller errors: 400 with the usual error shape."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid request")
    return error_response(
        ValidationError(f"{location}: {message}" if location else str(message))
    )


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI, allowed_origins: list[str]) -> None:
    """Register all middleware on the FastAPI application.

    Order matters: middleware is applied bottom-up, so the last added
    middleware runs first.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(ErrorHandlerMiddleware)

    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(RequestValidationError, request_validation_handler)
