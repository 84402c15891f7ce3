"""Shared pytest fixtures for the Psychic Homily test suite."""

from __future__ import annotations

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest

from psychic_homily.config.settings import Settings
from psychic_homily.interfaces.notification_provider import INotificationProvider
from psychic_homily.models.user import User
from psychic_homily.providers.artist.sqlite_artist_provider import SQLiteArtistProvider
from psychic_homily.providers.audit.sqlite_audit_provider import (
    SQLiteAuditLogProvider,
    SQLiteStatsProvider,
)
from psychic_homily.providers.engagement.sqlite_engagement_provider import (
    SQLiteEngagementProvider,
)
from psychic_homily.providers.report.sqlite_report_provider import (
    SQLiteArtistReportProvider,
    SQLiteReportProvider,
)
from psychic_homily.providers.show.sqlite_show_provider import SQLiteShowProvider
from psychic_homily.providers.token.sqlite_api_token_provider import SQLiteApiTokenProvider
from psychic_homily.providers.user.sqlite_user_provider import SQLiteUserProvider
from psychic_homily.providers.venue.sqlite_venue_provider import SQLiteVenueProvider
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.services.show_service import ShowService
from psychic_homily.utils.concurrency import AdvisoryLockRegistry

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_db():
    """Path to a throwaway SQLite file, removed after the test."""
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    yield tmp.name
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(tmp.name + suffix):
            os.unlink(tmp.name + suffix)


@pytest.fixture
async def show_store(tmp_db):
    store = SQLiteShowProvider(db_path=tmp_db)
    await store.initialize()
    return store


@pytest.fixture
async def venue_store(tmp_db, show_store):
    return SQLiteVenueProvider(db_path=tmp_db)


@pytest.fixture
async def artist_store(tmp_db, show_store):
    return SQLiteArtistProvider(db_path=tmp_db)


@pytest.fixture
async def user_store(tmp_db, show_store):
    return SQLiteUserProvider(db_path=tmp_db)


@pytest.fixture
async def engagement_store(tmp_db, show_store):
    return SQLiteEngagementProvider(db_path=tmp_db)


@pytest.fixture
async def report_store(tmp_db, show_store):
    return SQLiteReportProvider(db_path=tmp_db)


@pytest.fixture
async def artist_report_store(tmp_db, show_store):
    return SQLiteArtistReportProvider(db_path=tmp_db)


@pytest.fixture
async def api_token_store(tmp_db, show_store):
    return SQLiteApiTokenProvider(db_path=tmp_db)


@pytest.fixture
async def audit_store(tmp_db, show_store):
    return SQLiteAuditLogProvider(db_path=tmp_db)


@pytest.fixture
async def stats_store(tmp_db, show_store):
    return SQLiteStatsProvider(db_path=tmp_db)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(user_store):
    """Factory creating persisted users: ``await make_user("a@b.com", is_admin=True)``."""
    counter = {"n": 0}

    async def _make(email: str | None = None, *, is_admin: bool = False, **kwargs) -> User:
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        return await user_store.create_user(email, None, is_admin=is_admin, **kwargs)

    return _make


@pytest.fixture
async def regular_user(make_user) -> User:
    return await make_user("fan@example.com")


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user("admin@example.com", is_admin=True)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_notifier():
    """Notifier whose every ``notify_*`` coroutine is an AsyncMock."""
    notifier = AsyncMock(spec=INotificationProvider)
    notifier.is_configured = MagicMock(return_value=True)
    return notifier


@pytest.fixture
def audit_log(audit_store):
    return AuditLogService(audit_store)


@pytest.fixture
def show_service(show_store, venue_store, user_store, mock_notifier, audit_log):
    return ShowService(
        show_store,
        venue_store,
        user_store=user_store,
        notifier=mock_notifier,
        audit_log=audit_log,
        locks=AdvisoryLockRegistry(),
        duplicate_fuzzy_threshold=1.0,
    )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_db) -> Settings:
    """Settings isolated from the developer's .env and network."""
    return Settings(
        _env_file=None,
        database_path=tmp_db,
        jwt_secret_key="test-secret-key-with-enough-length-for-hs256",
        app_env="development",
        log_level="WARNING",
        rate_limit_enabled=False,
        password_breach_check_enabled=False,
        discord_enabled=False,
        discord_webhook_url="",
        config_path="config/config.yaml",
    )
