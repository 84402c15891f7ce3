"""Psychic Homily API layer: routers, schemas, dependencies and middleware."""

from psychic_homily.api.middleware import (
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from psychic_homily.api.routes import ROUTERS
from psychic_homily.api.schemas import ErrorResponse, HealthResponse

__all__ = [
    "ErrorHandlingMiddleware",
    "RateLimitMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "ROUTERS",
    "ErrorResponse",
    "HealthResponse",
]
