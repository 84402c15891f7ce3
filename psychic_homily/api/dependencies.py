"""Dependency injection helpers shared by every router.

# ─── DEPENDENCY INJECTION PATTERN (Junior Developer Guide) ────────────
#
# Services are built once in main.py's ``_build_all`` and stored on
# ``app.state``.  Route handlers never import app.state directly:
#
#   1. A helper reads the service from app.state (503 when absent).
#   2. An Annotated alias wraps it: ShowServiceDep =
#      Annotated[ShowService, Depends(_get_show_service)]
#   3. A handler declares ``shows: ShowServiceDep`` and FastAPI calls
#      the helper for it.
#
# Authentication works the same way.  ``CurrentUserDep`` reads the
# session JWT from ``Authorization: Bearer <token>`` first, then from the
# ``auth_token`` cookie, and resolves it to a fresh User (so admin
# demotions apply immediately).  ``AdminUserDep`` adds a 403 check.
# Tokens starting with ``phk_`` are admin API tokens and resolve through
# ApiTokenService instead of the JWT check.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request

from psychic_homily.models.user import User
from psychic_homily.services.admin_stats_service import AdminStatsService
from psychic_homily.services.api_token_service import ApiTokenService, is_api_token
from psychic_homily.services.artist_report_service import ArtistReportService
from psychic_homily.services.artist_service import ArtistService
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.services.auth_service import AuthService
from psychic_homily.services.discovery_service import DiscoveryService
from psychic_homily.services.engagement_service import EngagementService
from psychic_homily.services.jwt_service import JWTService
from psychic_homily.services.show_report_service import ShowReportService
from psychic_homily.services.show_service import ShowService
from psychic_homily.services.venue_service import VenueService
from psychic_homily.utils.errors import AuthenticationError, PermissionDeniedError

_DEFAULT_COOKIE_NAME = "auth_token"


def _service(request: Request, name: str, label: str) -> Any:
    svc = getattr(request.app.state, name, None)
    if svc is None:
        raise HTTPException(status_code=503, detail=f"{label} unavailable")
    return svc


# ── Service accessors ─────────────────────────────────────────────────
def _get_show_service(request: Request) -> ShowService:
    """Retrieve ShowService from app state; raise 503 if unavailable."""
    return _service(request, "show_service", "Show service")


def _get_venue_service(request: Request) -> VenueService:
    return _service(request, "venue_service", "Venue service")


def _get_artist_service(request: Request) -> ArtistService:
    return _service(request, "artist_service", "Artist service")


def _get_auth_service(request: Request) -> AuthService:
    return _service(request, "auth_service", "Auth service")


def _get_jwt_service(request: Request) -> JWTService:
    return _service(request, "jwt_service", "Auth service")


def _get_engagement_service(request: Request) -> EngagementService:
    return _service(request, "engagement_service", "Engagement service")


def _get_report_service(request: Request) -> ShowReportService:
    return _service(request, "report_service", "Report service")


def _get_artist_report_service(request: Request) -> ArtistReportService:
    return _service(request, "artist_report_service", "Report service")


def _get_api_token_service(request: Request) -> ApiTokenService:
    return _service(request, "api_token_service", "API token service")


def _get_audit_log(request: Request) -> AuditLogService:
    return _service(request, "audit_log", "Audit log")


def _get_stats_service(request: Request) -> AdminStatsService:
    return _service(request, "stats_service", "Stats service")


def _get_discovery_service(request: Request) -> DiscoveryService:
    return _service(request, "discovery_service", "Discovery service")


ShowServiceDep = Annotated[ShowService, Depends(_get_show_service)]
VenueServiceDep = Annotated[VenueService, Depends(_get_venue_service)]
ArtistServiceDep = Annotated[ArtistService, Depends(_get_artist_service)]
AuthServiceDep = Annotated[AuthService, Depends(_get_auth_service)]
JWTServiceDep = Annotated[JWTService, Depends(_get_jwt_service)]
EngagementServiceDep = Annotated[EngagementService, Depends(_get_engagement_service)]
ReportServiceDep = Annotated[ShowReportService, Depends(_get_report_service)]
ArtistReportServiceDep = Annotated[ArtistReportService, Depends(_get_artist_report_service)]
ApiTokenServiceDep = Annotated[ApiTokenService, Depends(_get_api_token_service)]
AuditLogDep = Annotated[AuditLogService, Depends(_get_audit_log)]
StatsServiceDep = Annotated[AdminStatsService, Depends(_get_stats_service)]
DiscoveryServiceDep = Annotated[DiscoveryService, Depends(_get_discovery_service)]


# ── Authentication ────────────────────────────────────────────────────
def cookie_name(request: Request) -> str:
    settings = getattr(request.app.state, "settings", None)
    return getattr(settings, "auth_cookie_name", _DEFAULT_COOKIE_NAME)


def extract_token(request: Request) -> str | None:
    """Session token from the Authorization header, else the auth cookie."""
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(cookie_name(request)) or None


async def _resolve_user(request: Request, jwt_service: JWTService, token: str) -> User:
    if is_api_token(token):
        return await _get_api_token_service(request).validate_token(token)
    return await jwt_service.validate_token(token)


async def get_optional_user(request: Request, jwt_service: JWTServiceDep) -> User | None:
    """The caller, or None for anonymous requests and unusable tokens."""
    token = extract_token(request)
    if token is None:
        return None
    try:
        return await _resolve_user(request, jwt_service, token)
    except AuthenticationError:
        return None


async def get_current_user(request: Request, jwt_service: JWTServiceDep) -> User:
    token = extract_token(request)
    if token is None:
        raise AuthenticationError("Authentication required", code="AUTH_REQUIRED")
    return await _resolve_user(request, jwt_service, token)


async def require_admin(user: Annotated[User, Depends(get_current_user)]) -> User:
    if not user.is_admin:
        raise PermissionDeniedError("admin access required", code="ADMIN_REQUIRED")
    return user


OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
AdminUserDep = Annotated[User, Depends(require_admin)]
