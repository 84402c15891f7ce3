"""API middleware: CORS, request logging, rate limiting and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), per-IP
token-bucket rate limiting, and automatic conversion of
``PsychicHomilyError`` subclasses into JSON ``ErrorResponse`` bodies.

# ─── MIDDLEWARE EXECUTION ORDER (Junior Developer Guide) ───────────────
#
# Starlette middleware is a stack (LIFO: last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)    # added 1st, innermost
#     app.add_middleware(RateLimitMiddleware, ...)   # added 2nd
#     app.add_middleware(RequestLoggingMiddleware)   # added 3rd, outermost
#
#   Request flow:
#     Client → RequestLogging → RateLimit → ErrorHandling → route handler
#   Response flow:
#     Client ← RequestLogging ← RateLimit ← ErrorHandling ← route handler
#
# So RequestLoggingMiddleware sees the *final* status code, including
# 429s produced by RateLimit and JSON errors produced by ErrorHandling,
# and throttled requests never reach a handler or the database.
#
# Each middleware extends BaseHTTPMiddleware and overrides dispatch().
# Inside dispatch(), call_next(request) passes to the next middleware
# or the actual route handler.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import math
import time
from collections.abc import Sequence

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from psychic_homily.api.schemas import ErrorResponse
from psychic_homily.services.rate_limiter import TokenBucketRateLimiter
from psychic_homily.utils.errors import (
    DuplicateShowError,
    PsychicHomilyError,
    RateLimitError,
    ValidationError,
)
from psychic_homily.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

_API_PREFIX = "/api/v1"
_DEFAULT_RETRY_AFTER_SECONDS = 60


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    # JUNIOR DEV NOTE: What is CORS?
    # CORS (Cross-Origin Resource Sharing) controls which domains can
    # make API requests to this server.  The frontend lives on its own
    # origin and sends the auth cookie, so ``allow_credentials`` is on.
    #
    # In development: allow ["*"] (all origins) for convenience.
    # In production: set CORS_ALLOWED_ORIGINS to the deployed frontend.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]``.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Rate Limiting
# ---------------------------------------------------------------------------


def client_ip(request: Request) -> str:
    """First ``X-Forwarded-For`` hop, else the socket peer address."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client is not None:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP token buckets applied by path prefix.

    Credential endpoints (login, register, magic link) share a strict
    bucket; every other ``/api/v1`` path uses the general bucket.  Paths
    outside the API (docs, health checks hitting ``/``) are not limited.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        auth_limiter: TokenBucketRateLimiter,
        api_limiter: TokenBucketRateLimiter,
        auth_paths: Sequence[str] = (),
        enabled: bool = True,
        retry_after_seconds: int = _DEFAULT_RETRY_AFTER_SECONDS,
    ) -> None:
        super().__init__(app)
        self._auth_limiter = auth_limiter
        self._api_limiter = api_limiter
        self._auth_paths = tuple(auth_paths)
        self._enabled = enabled
        self._retry_after = retry_after_seconds

    def _limiter_for(self, path: str) -> tuple[str, TokenBucketRateLimiter] | None:
        if any(path.startswith(prefix) for prefix in self._auth_paths):
            return "auth", self._auth_limiter
        if path.startswith(_API_PREFIX):
            return "api", self._api_limiter
        return None

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if not self._enabled or request.method == "OPTIONS":
            return await call_next(request)

        path = str(request.url.path)
        rule = self._limiter_for(path)
        if rule is None:
            return await call_next(request)

        scope, limiter = rule
        ip = client_ip(request)
        decision = await limiter.acquire(f"{scope}:{ip}")
        if not decision.allowed:
            _logger.warning(
                "rate_limit_exceeded",
                ip=ip,
                path=path,
                method=request.method,
                scope=scope,
                limit=limiter.capacity,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "too_many_requests",
                    "message": (
                        "Rate limit exceeded. Please try again in "
                        f"{self._retry_after} seconds."
                    ),
                },
                headers={"Retry-After": str(self._retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limiter.capacity)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


def error_response(exc: PsychicHomilyError) -> JSONResponse:
    """Build the JSON response for an application error."""
    body = ErrorResponse(error=type(exc).__name__, code=exc.code, detail=exc.message)
    if isinstance(exc, ValidationError) and exc.errors:
        body.errors = exc.errors
    if isinstance(exc, DuplicateShowError):
        body.existing_show_id = exc.existing_show_id

    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(math.ceil(exc.retry_after))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers or None,
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``PsychicHomilyError`` subclasses and return structured JSON errors.

    The HTTP status comes from the exception class (``status_code``), so a
    ``ShowNotFoundError`` becomes a 404 and a ``DuplicateShowError`` a 409
    without any per-route handling.  Stack traces are logged server-side
    only; the client sees the error type, a stable ``code`` and the
    message.

    # JUNIOR DEV NOTE: Security: Error Sanitization
    # Only PsychicHomilyError is converted here.  Generic Python
    # exceptions bubble up to Starlette's default 500 handler, which
    # hides internals from the client.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except PsychicHomilyError as exc:
            log = _logger.error if exc.status_code >= 500 else _logger.info
            log(
                "application_error",
                error_type=type(exc).__name__,
                code=exc.code,
                message=exc.message,
                status=exc.status_code,
                path=str(request.url.path),
            )
            return error_response(exc)
