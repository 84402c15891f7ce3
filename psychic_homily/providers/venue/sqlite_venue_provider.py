"""SQLite-backed venue provider with the pending venue edit queue.

# ─── ARCHITECTURE ────────────────────────────────────────────────────
#
# Venues are unique on (name, city), compared case-insensitively through
# a NOCASE unique index.  Non-admin edits never touch the venue row; they
# land in pending_venue_edits and are applied by approve_edit(), which
# guards on status='pending' inside one IMMEDIATE transaction so an edit
# can only be applied once.
#
# find_or_create_venue_in() works on an already-open connection so the
# show provider can create venues inside its own show transaction.
#
# Layer: Providers (implements IVenueProvider interface)
# Depends on: aiosqlite, structlog
# ─────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from psychic_homily.interfaces.venue_provider import IVenueProvider
from psychic_homily.models.venue import (
    SOCIAL_FIELDS,
    VENUE_EDITABLE_FIELDS,
    PendingVenueEdit,
    SocialLinks,
    Venue,
    VenueChanges,
    VenueCity,
    VenueCreate,
    VenueEditStatus,
)
from psychic_homily.providers.database import (
    DEFAULT_DB_PATH,
    fetch_count,
    immediate_transaction,
    initialize_schema,
    like_pattern,
    open_db,
)
from psychic_homily.utils.dates import from_db, to_db, utc_now
from psychic_homily.utils.errors import ConflictError, VenueEditNotFoundError, VenueNotFoundError
from psychic_homily.utils.slugs import generate_unique_slug, generate_venue_slug

logger = structlog.get_logger(logger_name=__name__)

_SELECT_EDIT_SQL = """\
SELECT e.*, v.name AS venue_name
FROM pending_venue_edits e
JOIN venues v ON v.id = e.venue_id
"""


# ── Row mapping ───────────────────────────────────────────────────────

def row_to_venue(row: aiosqlite.Row) -> Venue:
    return Venue(
        id=row["id"],
        name=row["name"],
        slug=row["slug"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        zipcode=row["zipcode"],
        social=SocialLinks(**{f: row[f] for f in SOCIAL_FIELDS}),
        verified=bool(row["verified"]),
        submitted_by=row["submitted_by"],
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )


def _row_to_edit(row: aiosqlite.Row) -> PendingVenueEdit:
    return PendingVenueEdit(
        id=row["id"],
        venue_id=row["venue_id"],
        submitted_by=row["submitted_by"],
        changes=VenueChanges(**{f: row[f] for f in VENUE_EDITABLE_FIELDS}),
        status=VenueEditStatus(row["status"]),
        rejection_reason=row["rejection_reason"],
        reviewed_by=row["reviewed_by"],
        reviewed_at=from_db(row["reviewed_at"]),
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
        venue_name=row["venue_name"],
    )


# ── Connection-level helpers (shared with the show provider) ──────────

async def _venue_slug_taken(db: aiosqlite.Connection, slug: str, exclude_id: int | None = None) -> bool:
    cursor = await db.execute(
        "SELECT 1 FROM venues WHERE slug = ? AND id != ?",
        (slug, exclude_id if exclude_id is not None else -1),
    )
    return await cursor.fetchone() is not None


async def find_or_create_venue_in(
    db: aiosqlite.Connection,
    name: str,
    city: str,
    state: str,
    *,
    address: str | None = None,
    zipcode: str | None = None,
    submitted_by: int | None = None,
    verified: bool = False,
) -> tuple[int, bool]:
    """Find a venue by (name, city) or insert it, on an open connection.

    Returns ``(venue_id, created)``.  When *verified* is True an existing
    unverified venue is promoted, matching what an admin reference implies.
    """
    name, city, state = name.strip(), city.strip(), state.strip()
    cursor = await db.execute(
        "SELECT id, verified FROM venues WHERE name = ? COLLATE NOCASE AND city = ? COLLATE NOCASE",
        (name, city),
    )
    row = await cursor.fetchone()
    now = to_db(utc_now())
    if row is not None:
        if verified and not row["verified"]:
            await db.execute(
                "UPDATE venues SET verified = 1, updated_at = ? WHERE id = ?",
                (now, row["id"]),
            )
        return row["id"], False

    slug = await generate_unique_slug(
        generate_venue_slug(name, city, state),
        lambda candidate: _venue_slug_taken(db, candidate),
    )
    cursor = await db.execute(
        "INSERT INTO venues (name, slug, address, city, state, zipcode, verified, "
        "submitted_by, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (name, slug, address, city, state, zipcode, int(verified), submitted_by, now, now),
    )
    return cursor.lastrowid, True


async def apply_venue_fields_in(
    db: aiosqlite.Connection, venue_id: int, fields: dict[str, Any]
) -> bool:
    """Update venue columns on an open connection; the slug follows name/city/state."""
    fields = {k: v for k, v in fields.items() if k in VENUE_EDITABLE_FIELDS}
    if not fields:
        return False
    cursor = await db.execute("SELECT name, city, state FROM venues WHERE id = ?", (venue_id,))
    current = await cursor.fetchone()
    if current is None:
        return False

    if {"name", "city", "state"} & fields.keys():
        slug = await generate_unique_slug(
            generate_venue_slug(
                fields.get("name", current["name"]),
                fields.get("city", current["city"]),
                fields.get("state", current["state"]),
            ),
            lambda candidate: _venue_slug_taken(db, candidate, exclude_id=venue_id),
        )
        fields["slug"] = slug

    assignments = ", ".join(f"{column} = ?" for column in fields)
    await db.execute(
        f"UPDATE venues SET {assignments}, updated_at = ? WHERE id = ?",
        [*fields.values(), to_db(utc_now()), venue_id],
    )
    return True


class SQLiteVenueProvider(IVenueProvider):
    """SQLite-backed venues and venue edit review queue."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the schema (idempotent)."""
        await initialize_schema(self._db_path)
        logger.info("venue_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_venue"

    # ── Venues ─────────────────────────────────────────────────────────

    async def get_venue(self, venue_id: int) -> Venue | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute("SELECT * FROM venues WHERE id = ?", (venue_id,))
            row = await cursor.fetchone()
        return row_to_venue(row) if row else None

    async def get_venue_by_slug(self, slug: str) -> Venue | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute("SELECT * FROM venues WHERE slug = ?", (slug,))
            row = await cursor.fetchone()
        return row_to_venue(row) if row else None

    async def find_venue_by_name(self, name: str, city: str) -> Venue | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM venues WHERE name = ? COLLATE NOCASE AND city = ? COLLATE NOCASE",
                (name.strip(), city.strip()),
            )
            row = await cursor.fetchone()
        return row_to_venue(row) if row else None

    async def create_venue(
        self, data: VenueCreate, *, submitted_by: int | None, verified: bool
    ) -> Venue:
        try:
            async with open_db(self._db_path) as db:
                async with immediate_transaction(db):
                    cursor = await db.execute(
                        "SELECT id FROM venues WHERE name = ? COLLATE NOCASE AND city = ? COLLATE NOCASE",
                        (data.name.strip(), data.city.strip()),
                    )
                    if await cursor.fetchone() is not None:
                        raise ConflictError(
                            f"venue '{data.name}' already exists in {data.city}",
                            code="VENUE_EXISTS",
                        )
                    venue_id, _ = await find_or_create_venue_in(
                        db,
                        data.name,
                        data.city,
                        data.state,
                        address=data.address,
                        zipcode=data.zipcode,
                        submitted_by=submitted_by,
                        verified=verified,
                    )
                    social = {k: v for k, v in data.social.model_dump().items() if v}
                    if social:
                        await apply_venue_fields_in(db, venue_id, social)
        except aiosqlite.IntegrityError as exc:
            raise ConflictError(
                f"venue '{data.name}' already exists in {data.city}", code="VENUE_EXISTS"
            ) from exc

        logger.info("venue_created", venue_id=venue_id, name=data.name, verified=verified)
        venue = await self.get_venue(venue_id)
        if venue is None:
            raise VenueNotFoundError(venue_id)
        return venue

    async def find_or_create_venue(
        self,
        name: str,
        city: str,
        state: str,
        *,
        address: str | None = None,
        zipcode: str | None = None,
        submitted_by: int | None = None,
        verified: bool = False,
    ) -> tuple[Venue, bool]:
        async with open_db(self._db_path) as db:
            async with immediate_transaction(db):
                venue_id, created = await find_or_create_venue_in(
                    db,
                    name,
                    city,
                    state,
                    address=address,
                    zipcode=zipcode,
                    submitted_by=submitted_by,
                    verified=verified,
                )
        venue = await self.get_venue(venue_id)
        if venue is None:
            raise VenueNotFoundError(venue_id)
        return venue, created

    async def update_venue(self, venue_id: int, fields: dict[str, Any]) -> Venue | None:
        try:
            async with open_db(self._db_path) as db:
                async with immediate_transaction(db):
                    await apply_venue_fields_in(db, venue_id, dict(fields))
        except aiosqlite.IntegrityError as exc:
            raise ConflictError("a venue with that name already exists in the city") from exc
        return await self.get_venue(venue_id)

    async def list_venues(
        self,
        *,
        city: str | None = None,
        state: str | None = None,
        verified: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Venue], int]:
        clauses: list[str] = []
        params: list[Any] = []
        if city:
            clauses.append("city = ? COLLATE NOCASE")
            params.append(city)
        if state:
            clauses.append("state = ? COLLATE NOCASE")
            params.append(state)
        if verified is not None:
            clauses.append("verified = ?")
            params.append(int(verified))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        async with open_db(self._db_path) as db:
            total = await fetch_count(db, f"SELECT COUNT(*) FROM venues {where}", params)
            cursor = await db.execute(
                f"SELECT * FROM venues {where} ORDER BY name COLLATE NOCASE LIMIT ? OFFSET ?",
                [*params, limit, offset],
            )
            rows = await cursor.fetchall()
        return [row_to_venue(r) for r in rows], total

    async def search_venues(self, query: str, limit: int = 20) -> list[Venue]:
        query = query.strip()
        if not query:
            return []
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM venues WHERE name LIKE ? ESCAPE '\\' "
                "ORDER BY CASE WHEN name LIKE ? ESCAPE '\\' THEN 0 ELSE 1 END, "
                "name COLLATE NOCASE LIMIT ?",
                (like_pattern(query), like_pattern(query, prefix_only=True), limit),
            )
            rows = await cursor.fetchall()
        return [row_to_venue(r) for r in rows]

    async def get_venue_cities(self) -> list[VenueCity]:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT city, state, COUNT(*) AS cnt FROM venues "
                "WHERE city != '' AND state != '' "
                "GROUP BY city, state ORDER BY cnt DESC, city ASC"
            )
            rows = await cursor.fetchall()
        return [VenueCity(city=r["city"], state=r["state"], venue_count=r["cnt"]) for r in rows]

    async def verify_venue(self, venue_id: int) -> bool:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE venues SET verified = 1, updated_at = ? WHERE id = ? AND verified = 0",
                (to_db(utc_now()), venue_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info("venue_verified", venue_id=venue_id)
        return updated

    # ── Pending edits ──────────────────────────────────────────────────

    async def upsert_pending_edit(
        self, venue_id: int, user_id: int, changes: VenueChanges
    ) -> PendingVenueEdit:
        proposed = changes.model_dump()
        columns = list(VENUE_EDITABLE_FIELDS)
        now = to_db(utc_now())
        async with open_db(self._db_path) as db:
            async with immediate_transaction(db):
                await db.execute(
                    "DELETE FROM pending_venue_edits "
                    "WHERE venue_id = ? AND submitted_by = ? AND status = 'pending'",
                    (venue_id, user_id),
                )
                cursor = await db.execute(
                    f"INSERT INTO pending_venue_edits (venue_id, submitted_by, "
                    f"{', '.join(columns)}, status, created_at, updated_at) "
                    f"VALUES (?, ?, {', '.join('?' for _ in columns)}, 'pending', ?, ?)",
                    [venue_id, user_id, *(proposed[c] for c in columns), now, now],
                )
                edit_id = cursor.lastrowid

        logger.info("venue_edit_submitted", edit_id=edit_id, venue_id=venue_id, user_id=user_id)
        edit = await self.get_pending_edit(edit_id)
        if edit is None:
            raise VenueEditNotFoundError(edit_id)
        return edit

    async def get_pending_edit(self, edit_id: int) -> PendingVenueEdit | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(f"{_SELECT_EDIT_SQL} WHERE e.id = ?", (edit_id,))
            row = await cursor.fetchone()
        return _row_to_edit(row) if row else None

    async def get_pending_edit_for_venue(
        self, venue_id: int, user_id: int
    ) -> PendingVenueEdit | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                f"{_SELECT_EDIT_SQL} WHERE e.venue_id = ? AND e.submitted_by = ? "
                "AND e.status = 'pending' ORDER BY e.created_at DESC LIMIT 1",
                (venue_id, user_id),
            )
            row = await cursor.fetchone()
        return _row_to_edit(row) if row else None

    async def list_pending_edits(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[PendingVenueEdit], int]:
        async with open_db(self._db_path) as db:
            total = await fetch_count(
                db, "SELECT COUNT(*) FROM pending_venue_edits WHERE status = 'pending'"
            )
            cursor = await db.execute(
                f"{_SELECT_EDIT_SQL} WHERE e.status = 'pending' "
                "ORDER BY e.created_at DESC, e.id DESC LIMIT ? OFFSET ?",
                (limit, offset),
            )
            rows = await cursor.fetchall()
        return [_row_to_edit(r) for r in rows], total

    async def approve_edit(self, edit_id: int, reviewer_id: int) -> Venue | None:
        now = to_db(utc_now())
        try:
            async with open_db(self._db_path) as db:
                async with immediate_transaction(db):
                    cursor = await db.execute(
                        "SELECT * FROM pending_venue_edits WHERE id = ? AND status = 'pending'",
                        (edit_id,),
                    )
                    row = await cursor.fetchone()
                    if row is None:
                        return None
                    venue_id = row["venue_id"]
                    changes = {f: row[f] for f in VENUE_EDITABLE_FIELDS if row[f] is not None}
                    await apply_venue_fields_in(db, venue_id, changes)
                    await db.execute(
                        "UPDATE pending_venue_edits SET status = 'approved', reviewed_by = ?, "
                        "reviewed_at = ?, updated_at = ? WHERE id = ?",
                        (reviewer_id, now, now, edit_id),
                    )
        except aiosqlite.IntegrityError as exc:
            raise ConflictError("a venue with that name already exists in the city") from exc

        logger.info("venue_edit_approved", edit_id=edit_id, venue_id=venue_id)
        return await self.get_venue(venue_id)

    async def reject_edit(self, edit_id: int, reviewer_id: int, reason: str) -> bool:
        now = to_db(utc_now())
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE pending_venue_edits SET status = 'rejected', rejection_reason = ?, "
                "reviewed_by = ?, reviewed_at = ?, updated_at = ? "
                "WHERE id = ? AND status = 'pending'",
                (reason, reviewer_id, now, now, edit_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info("venue_edit_rejected", edit_id=edit_id, reason=reason)
        return updated

    async def delete_pending_edit(self, edit_id: int, user_id: int) -> bool:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "DELETE FROM pending_venue_edits "
                "WHERE id = ? AND submitted_by = ? AND status = 'pending'",
                (edit_id, user_id),
            )
            await db.commit()
            return cursor.rowcount > 0
