"""SQLite-backed artist provider.

Artist names are unique case-insensitively (NOCASE unique index).
Find-or-create runs inside an IMMEDIATE transaction, so the lookup and
the insert cannot interleave with another writer.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from psychic_homily.interfaces.artist_provider import IArtistProvider
from psychic_homily.models.artist import Artist
from psychic_homily.models.venue import SOCIAL_FIELDS, SocialLinks
from psychic_homily.providers.database import (
    DEFAULT_DB_PATH,
    immediate_transaction,
    initialize_schema,
    like_pattern,
    open_db,
)
from psychic_homily.utils.dates import from_db, to_db, utc_now
from psychic_homily.utils.errors import ArtistNotFoundError
from psychic_homily.utils.slugs import generate_slug, generate_unique_slug

logger = structlog.get_logger(logger_name=__name__)


def row_to_artist(row: aiosqlite.Row) -> Artist:
    return Artist(
        id=row["id"],
        name=row["name"],
        slug=row["slug"],
        city=row["city"],
        state=row["state"],
        social=SocialLinks(**{f: row[f] for f in SOCIAL_FIELDS}),
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )


async def _artist_slug_taken(db: aiosqlite.Connection, slug: str) -> bool:
    cursor = await db.execute("SELECT 1 FROM artists WHERE slug = ?", (slug,))
    return await cursor.fetchone() is not None


async def find_or_create_artist_in(db: aiosqlite.Connection, name: str) -> tuple[int, bool]:
    """Find an artist by case-insensitive name or insert it, on an open connection."""
    name = name.strip()
    cursor = await db.execute("SELECT id FROM artists WHERE name = ? COLLATE NOCASE", (name,))
    row = await cursor.fetchone()
    if row is not None:
        return row["id"], False

    slug = await generate_unique_slug(
        generate_slug(name), lambda candidate: _artist_slug_taken(db, candidate)
    )
    now = to_db(utc_now())
    cursor = await db.execute(
        "INSERT INTO artists (name, slug, created_at, updated_at) VALUES (?, ?, ?, ?)",
        (name, slug, now, now),
    )
    return cursor.lastrowid, True


class SQLiteArtistProvider(IArtistProvider):
    """SQLite-backed artist storage."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the schema (idempotent)."""
        await initialize_schema(self._db_path)
        logger.info("artist_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_artist"

    async def get_artist(self, artist_id: int) -> Artist | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute("SELECT * FROM artists WHERE id = ?", (artist_id,))
            row = await cursor.fetchone()
        return row_to_artist(row) if row else None

    async def get_artist_by_slug(self, slug: str) -> Artist | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute("SELECT * FROM artists WHERE slug = ?", (slug,))
            row = await cursor.fetchone()
        return row_to_artist(row) if row else None

    async def find_artist_by_name(self, name: str) -> Artist | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM artists WHERE name = ? COLLATE NOCASE", (name.strip(),)
            )
            row = await cursor.fetchone()
        return row_to_artist(row) if row else None

    async def find_or_create_artist(self, name: str) -> tuple[Artist, bool]:
        async with open_db(self._db_path) as db:
            async with immediate_transaction(db):
                artist_id, created = await find_or_create_artist_in(db, name)
        if created:
            logger.info("artist_created", artist_id=artist_id, name=name)
        artist = await self.get_artist(artist_id)
        if artist is None:
            raise ArtistNotFoundError(artist_id)
        return artist, created

    async def search_artists(self, query: str, limit: int = 20) -> list[Artist]:
        query = query.strip()
        if not query:
            return []
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM artists WHERE name LIKE ? ESCAPE '\\' "
                "ORDER BY CASE WHEN name LIKE ? ESCAPE '\\' THEN 0 ELSE 1 END, "
                "name COLLATE NOCASE LIMIT ?",
                (like_pattern(query), like_pattern(query, prefix_only=True), limit),
            )
            rows = await cursor.fetchall()
        return [row_to_artist(r) for r in rows]
