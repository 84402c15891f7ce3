"""SQLite-backed audit log and admin dashboard counters.

The audit log is append-only: rows are inserted by the admin services and
never updated.  ``metadata`` is stored as a JSON object string.

SQLiteStatsProvider lives here too because the dashboard counters are
read-only aggregates over the same moderation tables the audit log
describes.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from psychic_homily.interfaces.report_provider import IAuditLogProvider, IStatsProvider
from psychic_homily.models.report import AuditLogEntry, DashboardStats
from psychic_homily.providers.database import (
    DEFAULT_DB_PATH,
    fetch_count,
    initialize_schema,
    open_db,
)
from psychic_homily.utils.dates import from_db, to_db, utc_now

logger = structlog.get_logger(logger_name=__name__)


def _row_to_entry(row: aiosqlite.Row) -> AuditLogEntry:
    return AuditLogEntry(
        id=row["id"],
        actor_id=row["actor_id"],
        action=row["action"],
        entity_type=row["entity_type"],
        entity_id=row["entity_id"],
        metadata=json.loads(row["metadata"] or "{}"),
        created_at=from_db(row["created_at"]),
        actor_email=row["actor_email"],
    )


class SQLiteAuditLogProvider(IAuditLogProvider):
    """SQLite-backed append-only audit log."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the schema (idempotent)."""
        await initialize_schema(self._db_path)
        logger.info("audit_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_audit"

    async def log_action(
        self,
        actor_id: int | None,
        action: str,
        entity_type: str,
        entity_id: int,
        metadata: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        now = to_db(utc_now())
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "INSERT INTO audit_logs (actor_id, action, entity_type, entity_id, metadata, "
                "created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (actor_id, action, entity_type, entity_id, json.dumps(metadata or {}), now),
            )
            await db.commit()
            entry_id = cursor.lastrowid
            cursor = await db.execute(
                "SELECT a.*, u.email AS actor_email FROM audit_logs a "
                "LEFT JOIN users u ON u.id = a.actor_id WHERE a.id = ?",
                (entry_id,),
            )
            row = await cursor.fetchone()
        return _row_to_entry(row)

    async def list_actions(
        self,
        *,
        limit: int = 50,
        offset: int = 0,
        entity_type: str | None = None,
        action: str | None = None,
        actor_id: int | None = None,
    ) -> tuple[list[AuditLogEntry], int]:
        clauses: list[str] = []
        params: list[Any] = []
        if entity_type:
            clauses.append("a.entity_type = ?")
            params.append(entity_type)
        if action:
            clauses.append("a.action = ?")
            params.append(action)
        if actor_id is not None:
            clauses.append("a.actor_id = ?")
            params.append(actor_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        async with open_db(self._db_path) as db:
            total = await fetch_count(db, f"SELECT COUNT(*) FROM audit_logs a {where}", params)
            cursor = await db.execute(
                "SELECT a.*, u.email AS actor_email FROM audit_logs a "
                f"LEFT JOIN users u ON u.id = a.actor_id {where} "
                "ORDER BY a.created_at DESC, a.id DESC LIMIT ? OFFSET ?",
                [*params, limit, offset],
            )
            rows = await cursor.fetchall()
        return [_row_to_entry(r) for r in rows], total


class SQLiteStatsProvider(IStatsProvider):
    """Admin dashboard counters computed with COUNT queries."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        await initialize_schema(self._db_path)

    async def get_dashboard_stats(self, since: datetime) -> DashboardStats:
        since_db = to_db(since)
        queries: dict[str, tuple[str, tuple]] = {
            "pending_shows": ("SELECT COUNT(*) FROM shows WHERE status = 'pending'", ()),
            "pending_venue_edits": (
                "SELECT COUNT(*) FROM pending_venue_edits WHERE status = 'pending'", (),
            ),
            "pending_reports": ("SELECT COUNT(*) FROM show_reports WHERE status = 'pending'", ()),
            "pending_artist_reports": (
                "SELECT COUNT(*) FROM artist_reports WHERE status = 'pending'", (),
            ),
            "unverified_venues": ("SELECT COUNT(*) FROM venues WHERE verified = 0", ()),
            "total_shows": ("SELECT COUNT(*) FROM shows WHERE status = 'approved'", ()),
            "total_venues": ("SELECT COUNT(*) FROM venues WHERE verified = 1", ()),
            "total_artists": ("SELECT COUNT(*) FROM artists", ()),
            "total_users": ("SELECT COUNT(*) FROM users", ()),
            "shows_submitted_last_7_days": (
                "SELECT COUNT(*) FROM shows WHERE created_at >= ?", (since_db,),
            ),
            "users_registered_last_7_days": (
                "SELECT COUNT(*) FROM users WHERE created_at >= ?", (since_db,),
            ),
        }
        counts: dict[str, int] = {}
        async with open_db(self._db_path) as db:
            for key, (sql, params) in queries.items():
                counts[key] = await fetch_count(db, sql, params)
        return DashboardStats(**counts)
