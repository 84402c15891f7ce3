"""Psychic Homily FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

# ─── COMPOSITION ROOT (Junior Developer Guide) ────────────────────────
#
#   Settings + config.yaml
#          │
#          ▼
#   _build_all()  ──►  flat dict of providers and services
#          │               (one SQLite file shared by every provider)
#          ▼
#   create_app()  ──►  copies the dict onto app.state, adds middleware
#          │           and routers
#          ▼
#   _lifespan()   ──►  creates the schema and purges stale API tokens on
#                      startup, closes the shared httpx client on shutdown
#
# Tests call ``create_app(settings, components)`` with their own pieces;
# anything not passed in is built from settings.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from psychic_homily import __version__
from psychic_homily.api.middleware import (
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from psychic_homily.api.routes import ROUTERS
from psychic_homily.config.loader import load_config
from psychic_homily.config.settings import Settings
from psychic_homily.providers.artist.sqlite_artist_provider import SQLiteArtistProvider
from psychic_homily.providers.audit.sqlite_audit_provider import (
    SQLiteAuditLogProvider,
    SQLiteStatsProvider,
)
from psychic_homily.providers.cache.memory_cache import MemoryCacheProvider
from psychic_homily.providers.engagement.sqlite_engagement_provider import (
    SQLiteEngagementProvider,
)
from psychic_homily.providers.notification.discord_webhook_provider import DiscordNotifier
from psychic_homily.providers.report.sqlite_report_provider import (
    SQLiteArtistReportProvider,
    SQLiteReportProvider,
)
from psychic_homily.providers.show.sqlite_show_provider import SQLiteShowProvider
from psychic_homily.providers.token.sqlite_api_token_provider import SQLiteApiTokenProvider
from psychic_homily.providers.user.sqlite_user_provider import SQLiteUserProvider
from psychic_homily.providers.venue.sqlite_venue_provider import SQLiteVenueProvider
from psychic_homily.services.admin_stats_service import AdminStatsService
from psychic_homily.services.api_token_service import ApiTokenService
from psychic_homily.services.artist_report_service import ArtistReportService
from psychic_homily.services.artist_service import ArtistService
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.services.auth_service import AuthService
from psychic_homily.services.discovery_service import DiscoveryService, venues_from_config
from psychic_homily.services.engagement_service import EngagementService
from psychic_homily.services.jwt_service import JWTService
from psychic_homily.services.password_validator import PasswordValidator
from psychic_homily.services.rate_limiter import TokenBucketRateLimiter
from psychic_homily.services.show_report_service import ShowReportService
from psychic_homily.services.show_service import ShowService
from psychic_homily.services.venue_service import VenueService
from psychic_homily.utils.concurrency import AdvisoryLockRegistry
from psychic_homily.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Bucket state only needs to outlive one refill window.
_RATE_LIMIT_CACHE_TTL = 120
_RATE_LIMIT_CACHE_SIZE = 50_000
_HTTP_TIMEOUT = 10.0

# Providers whose initialize() creates the shared schema.
_STORE_KEYS = (
    "show_store",
    "venue_store",
    "artist_store",
    "user_store",
    "engagement_store",
    "report_store",
    "artist_report_store",
    "api_token_store",
    "audit_store",
    "stats_store",
)


def _resolve_jwt_secret(app_settings: Settings) -> str:
    if app_settings.jwt_secret_key:
        return app_settings.jwt_secret_key
    if app_settings.is_development:
        # Sessions will not survive a restart.
        _logger.warning("jwt_secret_generated", reason="JWT_SECRET_KEY is not set")
        return secrets.token_urlsafe(32)
    # JWTService raises ConfigurationError for an empty secret.
    return ""


def _build_all(app_settings: Settings, config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    config = config if config is not None else load_config(app_settings.config_path, app_settings)
    db_path = app_settings.database_path
    discovery_config = config.get("discovery", {})
    default_tz = app_settings.default_timezone

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=_HTTP_TIMEOUT)
    locks = AdvisoryLockRegistry()

    # -- Storage (one SQLite file) --
    show_store = SQLiteShowProvider(db_path)
    venue_store = SQLiteVenueProvider(db_path)
    artist_store = SQLiteArtistProvider(db_path)
    user_store = SQLiteUserProvider(db_path)
    engagement_store = SQLiteEngagementProvider(db_path)
    report_store = SQLiteReportProvider(db_path)
    artist_report_store = SQLiteArtistReportProvider(db_path)
    api_token_store = SQLiteApiTokenProvider(db_path)
    audit_store = SQLiteAuditLogProvider(db_path)
    stats_store = SQLiteStatsProvider(db_path)

    # -- Notifications --
    notifier = DiscordNotifier(
        webhook_url=app_settings.discord_webhook_url,
        enabled=app_settings.discord_enabled,
        http_client=http_client,
    )
    audit_log = AuditLogService(audit_store)

    # -- Auth --
    jwt_service = JWTService(
        user_store,
        secret_key=_resolve_jwt_secret(app_settings),
        expiry_hours=app_settings.jwt_expiry_hours,
        issuer=app_settings.jwt_issuer,
        audience=app_settings.jwt_audience,
        magic_link_minutes=app_settings.magic_link_expiry_minutes,
    )
    password_validator = PasswordValidator(
        breach_check_enabled=app_settings.password_breach_check_enabled,
        http_client=http_client,
    )
    auth_service = AuthService(
        user_store,
        jwt_service,
        password_validator,
        notifier=notifier,
        max_failed_attempts=app_settings.max_failed_login_attempts,
        lock_minutes=app_settings.account_lock_minutes,
    )
    api_token_service = ApiTokenService(api_token_store, user_store, audit_log=audit_log)

    # -- Shows, venues, artists --
    show_service = ShowService(
        show_store,
        venue_store,
        user_store=user_store,
        notifier=notifier,
        audit_log=audit_log,
        locks=locks,
        duplicate_fuzzy_threshold=app_settings.duplicate_fuzzy_threshold,
        duplicate_window_days=app_settings.duplicate_window_days,
        default_timezone=default_tz,
    )
    venue_service = VenueService(venue_store, notifier=notifier, audit_log=audit_log)
    artist_service = ArtistService(artist_store, show_store, default_timezone=default_tz)
    engagement_service = EngagementService(
        engagement_store, show_store, venue_store, default_timezone=default_tz
    )
    report_service = ShowReportService(
        report_store, show_store, notifier=notifier, audit_log=audit_log
    )
    artist_report_service = ArtistReportService(
        artist_report_store, artist_store, notifier=notifier, audit_log=audit_log
    )
    stats_service = AdminStatsService(stats_store)

    # -- Discovery import --
    discovery_venues = venues_from_config(config)
    discovery_service = DiscoveryService(
        show_service,
        show_store,
        venues=discovery_venues,
        state_timezones=discovery_config.get("state_timezones", {}),
        default_timezone=discovery_config.get("default_timezone", default_tz),
    )

    # -- Rate limiting --
    rate_limit_cache = MemoryCacheProvider(
        max_size=_RATE_LIMIT_CACHE_SIZE, ttl=_RATE_LIMIT_CACHE_TTL
    )
    auth_limiter = TokenBucketRateLimiter(
        rate_limit_cache, capacity=app_settings.rate_limit_auth_per_minute
    )
    api_limiter = TokenBucketRateLimiter(
        rate_limit_cache, capacity=app_settings.rate_limit_api_per_minute
    )

    return {
        "settings": app_settings,
        "config": config,
        "http_client": http_client,
        "locks": locks,
        "show_store": show_store,
        "venue_store": venue_store,
        "artist_store": artist_store,
        "user_store": user_store,
        "engagement_store": engagement_store,
        "report_store": report_store,
        "artist_report_store": artist_report_store,
        "api_token_store": api_token_store,
        "audit_store": audit_store,
        "stats_store": stats_store,
        "notifier": notifier,
        "audit_log": audit_log,
        "jwt_service": jwt_service,
        "password_validator": password_validator,
        "auth_service": auth_service,
        "api_token_service": api_token_service,
        "show_service": show_service,
        "venue_service": venue_service,
        "artist_service": artist_service,
        "engagement_service": engagement_service,
        "report_service": report_service,
        "artist_report_service": artist_report_service,
        "stats_service": stats_service,
        "discovery_venues": discovery_venues,
        "discovery_service": discovery_service,
        "rate_limit_cache": rate_limit_cache,
        "auth_limiter": auth_limiter,
        "api_limiter": api_limiter,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Create the database schema and purge stale API tokens on startup, clean up on shutdown."""
    state = application.state
    initialized: set[int] = set()
    for key in _STORE_KEYS:
        store = getattr(state, key, None)
        # Shared instances are initialized once.
        if store is not None and id(store) not in initialized:
            await store.initialize()
            initialized.add(id(store))

    api_token_service: ApiTokenService | None = getattr(state, "api_token_service", None)
    if api_token_service is not None:
        await api_token_service.cleanup_expired_tokens()

    settings: Settings = state.settings
    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        database=settings.database_path,
        discord=state.notifier.is_configured() if getattr(state, "notifier", None) else False,
        discovery_venues=len(getattr(state, "discovery_venues", {}) or {}),
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient | None = getattr(state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    settings:
        Application settings; read from the environment when omitted.
    components:
        Entries placed on ``app.state`` over the defaults from
        :func:`_build_all`.  Handlers resolve services from app.state, so
        a replaced service takes effect; services already built from a
        replaced store keep the original store.
    """
    app_settings = settings or Settings()
    configure_logging(app_settings.log_level)

    built = _build_all(app_settings)
    built.update(components or {})

    application = FastAPI(
        title="Psychic Homily API",
        version=__version__,
        description=(
            "Live-music show listings: submissions, duplicate detection, "
            "moderation queues and discovery imports."
        ),
        lifespan=_lifespan,
    )
    for key, value in built.items():
        setattr(application.state, key, value)

    rate_limit_config = built["config"].get("rate_limit", {})

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(
        RateLimitMiddleware,
        auth_limiter=built["auth_limiter"],
        api_limiter=built["api_limiter"],
        auth_paths=rate_limit_config.get("auth_paths", []),
        enabled=app_settings.rate_limit_enabled,
        retry_after_seconds=int(rate_limit_config.get("retry_after_seconds", 60)),
    )
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.get_cors_origins())

    # -- API routes --
    for router in ROUTERS:
        application.include_router(router)

    return application


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    uvicorn.run(
        "psychic_homily.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
