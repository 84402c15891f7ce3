"""SQLite-backed saved shows and favorite venues.

Both tables are plain (user_id, entity_id) join tables with a timestamp.
Saving is an upsert, so re-saving a show moves it to the top of the
user's list instead of failing.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import structlog

from psychic_homily.interfaces.engagement_provider import IEngagementProvider
from psychic_homily.providers.database import (
    DEFAULT_DB_PATH,
    fetch_count,
    initialize_schema,
    open_db,
    placeholders,
)
from psychic_homily.utils.dates import from_db, to_db, utc_now

logger = structlog.get_logger(logger_name=__name__)


class SQLiteEngagementProvider(IEngagementProvider):
    """SQLite-backed per-user lists."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the schema (idempotent)."""
        await initialize_schema(self._db_path)
        logger.info("engagement_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_engagement"

    # ── Saved shows ────────────────────────────────────────────────────

    async def save_show(self, user_id: int, show_id: int) -> datetime:
        saved_at = utc_now()
        async with open_db(self._db_path) as db:
            await db.execute(
                "INSERT INTO user_saved_shows (user_id, show_id, saved_at) VALUES (?, ?, ?) "
                "ON CONFLICT(user_id, show_id) DO UPDATE SET saved_at = excluded.saved_at",
                (user_id, show_id, to_db(saved_at)),
            )
            await db.commit()
        return saved_at

    async def unsave_show(self, user_id: int, show_id: int) -> bool:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "DELETE FROM user_saved_shows WHERE user_id = ? AND show_id = ?",
                (user_id, show_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def list_saved_shows(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> tuple[list[tuple[int, datetime]], int]:
        async with open_db(self._db_path) as db:
            total = await fetch_count(
                db, "SELECT COUNT(*) FROM user_saved_shows WHERE user_id = ?", (user_id,)
            )
            cursor = await db.execute(
                "SELECT show_id, saved_at FROM user_saved_shows WHERE user_id = ? "
                "ORDER BY saved_at DESC, show_id DESC LIMIT ? OFFSET ?",
                (user_id, limit, offset),
            )
            rows = await cursor.fetchall()
        return [(r["show_id"], from_db(r["saved_at"])) for r in rows], total

    async def is_show_saved(self, user_id: int, show_id: int) -> bool:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT 1 FROM user_saved_shows WHERE user_id = ? AND show_id = ?",
                (user_id, show_id),
            )
            return await cursor.fetchone() is not None

    async def get_saved_show_ids(self, user_id: int, show_ids: list[int]) -> set[int]:
        if not show_ids:
            return set()
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT show_id FROM user_saved_shows WHERE user_id = ? "
                f"AND show_id IN ({placeholders(show_ids)})",
                [user_id, *show_ids],
            )
            rows = await cursor.fetchall()
        return {r["show_id"] for r in rows}

    # ── Favorite venues ────────────────────────────────────────────────

    async def favorite_venue(self, user_id: int, venue_id: int) -> datetime:
        favorited_at = utc_now()
        async with open_db(self._db_path) as db:
            await db.execute(
                "INSERT INTO user_favorite_venues (user_id, venue_id, favorited_at) "
                "VALUES (?, ?, ?) ON CONFLICT(user_id, venue_id) "
                "DO UPDATE SET favorited_at = excluded.favorited_at",
                (user_id, venue_id, to_db(favorited_at)),
            )
            await db.commit()
        return favorited_at

    async def unfavorite_venue(self, user_id: int, venue_id: int) -> bool:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "DELETE FROM user_favorite_venues WHERE user_id = ? AND venue_id = ?",
                (user_id, venue_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def list_favorite_venues(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> tuple[list[tuple[int, datetime]], int]:
        async with open_db(self._db_path) as db:
            total = await fetch_count(
                db, "SELECT COUNT(*) FROM user_favorite_venues WHERE user_id = ?", (user_id,)
            )
            cursor = await db.execute(
                "SELECT venue_id, favorited_at FROM user_favorite_venues WHERE user_id = ? "
                "ORDER BY favorited_at DESC, venue_id DESC LIMIT ? OFFSET ?",
                (user_id, limit, offset),
            )
            rows = await cursor.fetchall()
        return [(r["venue_id"], from_db(r["favorited_at"])) for r in rows], total

    async def is_venue_favorited(self, user_id: int, venue_id: int) -> bool:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT 1 FROM user_favorite_venues WHERE user_id = ? AND venue_id = ?",
                (user_id, venue_id),
            )
            return await cursor.fetchone() is not None

    async def get_favorite_venue_ids(self, user_id: int) -> list[int]:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT venue_id FROM user_favorite_venues WHERE user_id = ? ORDER BY venue_id",
                (user_id,),
            )
            rows = await cursor.fetchall()
        return [r["venue_id"] for r in rows]
