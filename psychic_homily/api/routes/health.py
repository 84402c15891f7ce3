"""Health check endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from psychic_homily import __version__
from psychic_homily.api.schemas import HealthResponse

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Report liveness and which providers were wired at startup."""
    state = request.app.state
    settings = getattr(state, "settings", None)
    notifier = getattr(state, "notifier", None)
    providers: dict[str, Any] = {
        "database": getattr(settings, "database_path", None),
        "discord": bool(notifier is not None and notifier.is_configured()),
        "rate_limit": bool(getattr(settings, "rate_limit_enabled", False)),
        "discovery_venues": len(getattr(state, "discovery_venues", {}) or {}),
    }
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=getattr(settings, "app_env", "unknown"),
        providers=providers,
    )
