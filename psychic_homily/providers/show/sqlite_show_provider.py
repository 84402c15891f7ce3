"""SQLite-backed show provider.

# ─── ARCHITECTURE ────────────────────────────────────────────────────
#
# A show row is always read together with its venues (show_venues) and
# its ordered bill (show_artists).  _hydrate() batches both lookups for a
# whole page of shows: two queries per page, not two per show.
#
# create_show() is the one place where several tables are written at
# once.  It runs inside BEGIN IMMEDIATE:
#
#   1. resolve venues   (find-or-create by name+city, or by id)
#   2. duplicate check  (same headliner, same venue, same date window)
#   3. resolve artists  (find-or-create, case-insensitive)
#   4. insert show, show_venues, show_artists with a unique slug
#
# Because the duplicate check and the insert share one write-locked
# transaction, two processes cannot both pass step 2 for the same show.
# The service layer additionally serialises same-venue/same-day requests
# in-process with an advisory lock (utils/concurrency.py).
#
# Layer: Providers (implements IShowProvider interface)
# Depends on: aiosqlite, structlog
# ─────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from psychic_homily.interfaces.show_provider import HeadlinerMatcher, IShowProvider
from psychic_homily.models.show import (
    SetType,
    Show,
    ShowArtist,
    ShowCity,
    ShowDraft,
    ShowSource,
    ShowStatus,
    ShowVenue,
)
from psychic_homily.providers.artist.sqlite_artist_provider import find_or_create_artist_in
from psychic_homily.providers.database import (
    DEFAULT_DB_PATH,
    fetch_count,
    immediate_transaction,
    initialize_schema,
    like_pattern,
    open_db,
    placeholders,
)
from psychic_homily.providers.venue.sqlite_venue_provider import find_or_create_venue_in
from psychic_homily.utils.dates import from_db, to_db, utc_now
from psychic_homily.utils.errors import (
    ArtistNotFoundError,
    ConflictError,
    DuplicateShowError,
    ValidationError,
    VenueNotFoundError,
)
from psychic_homily.utils.slugs import generate_show_slug, generate_unique_slug
from psychic_homily.utils.text_normalizer import headliners_match

logger = structlog.get_logger(logger_name=__name__)

# Columns update_show() may touch.
_UPDATABLE_COLUMNS = frozenset(
    {"title", "event_date", "city", "state", "price", "age_requirement", "description"}
)
_FLAG_COLUMNS = frozenset({"is_sold_out", "is_cancelled"})

# Statuses that never block a new submission as a duplicate.
_NON_BLOCKING_STATUSES = (ShowStatus.REJECTED.value, ShowStatus.PRIVATE.value)


def _exact_match(a: str, b: str) -> bool:
    return headliners_match(a, b)


def _status_values(statuses: list[ShowStatus] | None) -> list[str]:
    return [ShowStatus(s).value for s in statuses or []]


# ── Row mapping ───────────────────────────────────────────────────────

def _row_to_show(
    row: aiosqlite.Row, venues: list[ShowVenue], artists: list[ShowArtist]
) -> Show:
    return Show(
        id=row["id"],
        title=row["title"],
        slug=row["slug"],
        event_date=from_db(row["event_date"]),
        city=row["city"],
        state=row["state"],
        price=row["price"],
        age_requirement=row["age_requirement"],
        description=row["description"],
        status=ShowStatus(row["status"]),
        submitted_by=row["submitted_by"],
        rejection_reason=row["rejection_reason"],
        source=ShowSource(row["source"]),
        source_venue=row["source_venue"],
        source_event_id=row["source_event_id"],
        scraped_at=from_db(row["scraped_at"]),
        duplicate_of_show_id=row["duplicate_of_show_id"],
        is_sold_out=bool(row["is_sold_out"]),
        is_cancelled=bool(row["is_cancelled"]),
        venues=venues,
        artists=artists,
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )


async def _hydrate(db: aiosqlite.Connection, rows: list[aiosqlite.Row]) -> list[Show]:
    """Attach venues and artists to a batch of show rows, preserving row order."""
    if not rows:
        return []
    ids = [row["id"] for row in rows]
    in_clause = placeholders(ids)

    venues_by_show: dict[int, list[ShowVenue]] = defaultdict(list)
    cursor = await db.execute(
        "SELECT sv.show_id, v.id, v.name, v.slug, v.city, v.state, v.address, v.verified "
        "FROM show_venues sv JOIN venues v ON v.id = sv.venue_id "
        f"WHERE sv.show_id IN ({in_clause}) ORDER BY v.name COLLATE NOCASE",
        ids,
    )
    for r in await cursor.fetchall():
        venues_by_show[r["show_id"]].append(
            ShowVenue(
                id=r["id"],
                name=r["name"],
                slug=r["slug"],
                city=r["city"],
                state=r["state"],
                address=r["address"],
                verified=bool(r["verified"]),
            )
        )

    artists_by_show: dict[int, list[ShowArtist]] = defaultdict(list)
    cursor = await db.execute(
        "SELECT sa.show_id, a.id, a.name, a.slug, sa.position, sa.set_type "
        "FROM show_artists sa JOIN artists a ON a.id = sa.artist_id "
        f"WHERE sa.show_id IN ({in_clause}) ORDER BY sa.position",
        ids,
    )
    for r in await cursor.fetchall():
        artists_by_show[r["show_id"]].append(
            ShowArtist(
                id=r["id"],
                name=r["name"],
                slug=r["slug"],
                position=r["position"],
                set_type=SetType(r["set_type"]),
            )
        )

    return [_row_to_show(r, venues_by_show[r["id"]], artists_by_show[r["id"]]) for r in rows]


async def _shows_at_venues(
    db: aiosqlite.Connection,
    *,
    start: datetime,
    end: datetime,
    venue_ids: list[int] | None = None,
    venue_names: list[str] | None = None,
    statuses: list[str] | None = None,
    exclude_statuses: tuple[str, ...] | None = None,
) -> list[Show]:
    """Shows linked to any of the given venues with ``start <= event_date < end``."""
    clauses = ["s.event_date >= ?", "s.event_date < ?"]
    params: list[Any] = [to_db(start), to_db(end)]
    if venue_ids:
        clauses.append(f"sv.venue_id IN ({placeholders(venue_ids)})")
        params.extend(venue_ids)
    elif venue_names:
        names = [n.strip() for n in venue_names]
        clauses.append(f"v.name COLLATE NOCASE IN ({placeholders(names)})")
        params.extend(names)
    else:
        return []
    if statuses:
        clauses.append(f"s.status IN ({placeholders(statuses)})")
        params.extend(statuses)
    if exclude_statuses:
        clauses.append(f"s.status NOT IN ({placeholders(exclude_statuses)})")
        params.extend(exclude_statuses)

    cursor = await db.execute(
        "SELECT DISTINCT s.* FROM shows s "
        "JOIN show_venues sv ON sv.show_id = s.id "
        "JOIN venues v ON v.id = sv.venue_id "
        f"WHERE {' AND '.join(clauses)} ORDER BY s.id",
        params,
    )
    return await _hydrate(db, list(await cursor.fetchall()))


def _first_headliner_match(
    shows: list[Show], headliner: str, matcher: HeadlinerMatcher
) -> Show | None:
    for show in shows:
        existing = show.headliner
        if existing is not None and matcher(existing.name, headliner):
            return show
    return None


class SQLiteShowProvider(IShowProvider):
    """SQLite-backed shows with their venues and bill."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the schema (idempotent)."""
        await initialize_schema(self._db_path)
        logger.info("show_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_show"

    # ── Create ─────────────────────────────────────────────────────────

    async def create_show(
        self,
        draft: ShowDraft,
        status: ShowStatus,
        *,
        duplicate_window: tuple[datetime, datetime] | None = None,
        headliner_matcher: HeadlinerMatcher | None = None,
    ) -> Show:
        if not draft.venues:
            raise ValidationError("at least one venue is required", code="VENUE_REQUIRED")
        if not draft.artists:
            raise ValidationError("at least one artist is required", code="ARTIST_REQUIRED")

        headliner_index = draft.headliner_index()
        now = to_db(utc_now())

        try:
            async with open_db(self._db_path) as db:
                async with immediate_transaction(db):
                    venue_ids, venue_names = await self._resolve_venues(db, draft)

                    if duplicate_window is not None:
                        existing_shows = await _shows_at_venues(
                            db,
                            start=duplicate_window[0],
                            end=duplicate_window[1],
                            venue_ids=venue_ids,
                            exclude_statuses=_NON_BLOCKING_STATUSES,
                        )
                        headliner_name = await self._artist_name(db, draft, headliner_index)
                        duplicate = _first_headliner_match(
                            existing_shows, headliner_name, headliner_matcher or _exact_match
                        )
                        if duplicate is not None:
                            raise DuplicateShowError(
                                headliner=headliner_name,
                                venue=duplicate.venues[0].name if duplicate.venues else venue_names[0],
                                event_date=duplicate.event_date.strftime("%Y-%m-%d"),
                                existing_show_id=duplicate.id,
                            )

                    artist_ids = await self._resolve_artists(db, draft)
                    headliner_name = await self._artist_name(db, draft, headliner_index, artist_ids)

                    slug = await generate_unique_slug(
                        generate_show_slug(draft.event_date, headliner_name, venue_names[0]),
                        lambda candidate: self._slug_taken(db, candidate),
                    )

                    city = draft.city
                    state = draft.state
                    if not city or not state:
                        cursor = await db.execute(
                            "SELECT city, state FROM venues WHERE id = ?", (venue_ids[0],)
                        )
                        first_venue = await cursor.fetchone()
                        city = city or first_venue["city"]
                        state = state or first_venue["state"]

                    scraped_at = None
                    if draft.source == ShowSource.DISCOVERY:
                        scraped_at = to_db(draft.scraped_at) if draft.scraped_at else now

                    cursor = await db.execute(
                        "INSERT INTO shows (title, slug, event_date, city, state, price, "
                        "age_requirement, description, status, submitted_by, source, "
                        "source_venue, source_event_id, scraped_at, duplicate_of_show_id, "
                        "created_at, updated_at) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            draft.title,
                            slug,
                            to_db(draft.event_date),
                            city,
                            state,
                            draft.price,
                            draft.age_requirement,
                            draft.description,
                            status.value,
                            draft.submitted_by,
                            draft.source.value,
                            draft.source_venue,
                            draft.source_event_id,
                            scraped_at,
                            draft.duplicate_of_show_id,
                            now,
                            now,
                        ),
                    )
                    show_id = cursor.lastrowid

                    await db.executemany(
                        "INSERT OR IGNORE INTO show_venues (show_id, venue_id) VALUES (?, ?)",
                        [(show_id, vid) for vid in venue_ids],
                    )
                    seen: set[int] = set()
                    rows: list[tuple[int, int, int, str]] = []
                    for position, artist_id in enumerate(artist_ids):
                        if artist_id in seen:
                            continue
                        seen.add(artist_id)
                        set_type = SetType.HEADLINER if position == headliner_index else SetType.OPENER
                        rows.append((show_id, artist_id, len(rows), set_type.value))
                    await db.executemany(
                        "INSERT INTO show_artists (show_id, artist_id, position, set_type) "
                        "VALUES (?, ?, ?, ?)",
                        rows,
                    )
        except aiosqlite.IntegrityError as exc:
            # Only the (source_venue, source_event_id) index can fire here.
            raise ConflictError(
                "this event has already been imported", code="SHOW_EXISTS"
            ) from exc

        logger.info(
            "show_created",
            show_id=show_id,
            slug=slug,
            status=status.value,
            source=draft.source.value,
            venues=len(venue_ids),
            artists=len(rows),
        )
        show = await self.get_show(show_id)
        assert show is not None
        return show

    async def _resolve_venues(
        self, db: aiosqlite.Connection, draft: ShowDraft
    ) -> tuple[list[int], list[str]]:
        venue_ids: list[int] = []
        venue_names: list[str] = []
        for venue in draft.venues:
            if venue.id is not None:
                cursor = await db.execute(
                    "SELECT id, name, verified FROM venues WHERE id = ?", (venue.id,)
                )
                row = await cursor.fetchone()
                if row is None:
                    raise VenueNotFoundError(venue.id)
                if draft.submitter_is_admin and not row["verified"]:
                    await db.execute(
                        "UPDATE venues SET verified = 1, updated_at = ? WHERE id = ?",
                        (to_db(utc_now()), row["id"]),
                    )
                venue_id, name = row["id"], row["name"]
            else:
                city = venue.city or draft.city or ""
                state = venue.state or draft.state or ""
                if not venue.name.strip() or not city.strip():
                    raise ValidationError(
                        "venue name and city are required", code="VENUE_REQUIRED"
                    )
                venue_id, _ = await find_or_create_venue_in(
                    db,
                    venue.name,
                    city,
                    state,
                    address=venue.address,
                    zipcode=venue.zipcode,
                    submitted_by=draft.submitted_by,
                    verified=draft.submitter_is_admin,
                )
                name = venue.name.strip()
            if venue_id not in venue_ids:
                venue_ids.append(venue_id)
                venue_names.append(name)
        return venue_ids, venue_names

    async def _resolve_artists(self, db: aiosqlite.Connection, draft: ShowDraft) -> list[int]:
        artist_ids: list[int] = []
        for artist in draft.artists:
            if artist.id is not None:
                cursor = await db.execute("SELECT id FROM artists WHERE id = ?", (artist.id,))
                if await cursor.fetchone() is None:
                    raise ArtistNotFoundError(artist.id)
                artist_ids.append(artist.id)
            else:
                if not artist.name.strip():
                    raise ValidationError("artist name is required", code="ARTIST_REQUIRED")
                artist_id, _ = await find_or_create_artist_in(db, artist.name)
                artist_ids.append(artist_id)
        return artist_ids

    @staticmethod
    async def _artist_name(
        db: aiosqlite.Connection,
        draft: ShowDraft,
        index: int,
        artist_ids: list[int] | None = None,
    ) -> str:
        artist = draft.artists[index]
        if artist.name.strip():
            return artist.name.strip()
        artist_id = artist.id if artist_ids is None else artist_ids[index]
        cursor = await db.execute("SELECT name FROM artists WHERE id = ?", (artist_id,))
        row = await cursor.fetchone()
        return row["name"] if row else ""

    @staticmethod
    async def _slug_taken(db: aiosqlite.Connection, slug: str) -> bool:
        cursor = await db.execute("SELECT 1 FROM shows WHERE slug = ?", (slug,))
        return await cursor.fetchone() is not None

    async def find_headliner_duplicate(
        self,
        venue_names: list[str],
        headliner: str,
        start: datetime,
        end: datetime,
        matcher: HeadlinerMatcher | None = None,
    ) -> Show | None:
        async with open_db(self._db_path) as db:
            shows = await _shows_at_venues(
                db,
                start=start,
                end=end,
                venue_names=venue_names,
                exclude_statuses=_NON_BLOCKING_STATUSES,
            )
        return _first_headliner_match(shows, headliner, matcher or _exact_match)

    async def find_show_at_venue(
        self,
        venue_name: str,
        start: datetime,
        end: datetime,
        status: ShowStatus,
    ) -> Show | None:
        async with open_db(self._db_path) as db:
            shows = await _shows_at_venues(
                db,
                start=start,
                end=end,
                venue_names=[venue_name],
                statuses=[ShowStatus(status).value],
            )
        return shows[0] if shows else None

    # ── Read ───────────────────────────────────────────────────────────

    async def _get_one(self, where: str, params: tuple) -> Show | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(f"SELECT * FROM shows WHERE {where}", params)
            row = await cursor.fetchone()
            if row is None:
                return None
            shows = await _hydrate(db, [row])
        return shows[0]

    async def get_show(self, show_id: int) -> Show | None:
        return await self._get_one("id = ?", (show_id,))

    async def get_show_by_slug(self, slug: str) -> Show | None:
        return await self._get_one("slug = ?", (slug,))

    async def get_show_by_source(self, source_venue: str, source_event_id: str) -> Show | None:
        return await self._get_one(
            "source_venue = ? AND source_event_id = ?", (source_venue, source_event_id)
        )

    async def get_shows_by_ids(self, show_ids: list[int]) -> list[Show]:
        if not show_ids:
            return []
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                f"SELECT * FROM shows WHERE id IN ({placeholders(show_ids)})", list(show_ids)
            )
            shows = await _hydrate(db, list(await cursor.fetchall()))
        by_id = {show.id: show for show in shows}
        return [by_id[sid] for sid in show_ids if sid in by_id]

    async def list_shows(
        self,
        *,
        statuses: list[ShowStatus] | None = None,
        exclude_statuses: list[ShowStatus] | None = None,
        submitted_by: int | None = None,
        city: str | None = None,
        state: str | None = None,
        search: str | None = None,
        starts_after: datetime | None = None,
        newest_first: bool = True,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Show], int]:
        clauses: list[str] = []
        params: list[Any] = []
        if statuses:
            values = _status_values(statuses)
            clauses.append(f"status IN ({placeholders(values)})")
            params.extend(values)
        if exclude_statuses:
            values = _status_values(exclude_statuses)
            clauses.append(f"status NOT IN ({placeholders(values)})")
            params.extend(values)
        if submitted_by is not None:
            clauses.append("submitted_by = ?")
            params.append(submitted_by)
        if city:
            clauses.append("city = ? COLLATE NOCASE")
            params.append(city)
        if state:
            clauses.append("state = ? COLLATE NOCASE")
            params.append(state)
        if search:
            pattern = like_pattern(search.strip())
            clauses.append(
                "(title LIKE ? ESCAPE '\\' OR rejection_reason LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern])
        if starts_after is not None:
            clauses.append("event_date >= ?")
            params.append(to_db(starts_after))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order = "created_at DESC, id DESC" if newest_first else "event_date ASC, id ASC"

        async with open_db(self._db_path) as db:
            total = await fetch_count(db, f"SELECT COUNT(*) FROM shows {where}", params)
            cursor = await db.execute(
                f"SELECT * FROM shows {where} ORDER BY {order} LIMIT ? OFFSET ?",
                [*params, limit, offset],
            )
            shows = await _hydrate(db, list(await cursor.fetchall()))
        return shows, total

    async def get_upcoming_shows(
        self,
        *,
        start: datetime,
        statuses: list[ShowStatus] | None,
        exclude_statuses: list[ShowStatus] | None,
        after: tuple[datetime, int] | None,
        limit: int,
        city: str | None = None,
        state: str | None = None,
        venue_ids: list[int] | None = None,
    ) -> list[Show]:
        clauses: list[str] = []
        params: list[Any] = []
        if after is not None:
            cursor_date = to_db(after[0])
            clauses.append("((s.event_date = ? AND s.id > ?) OR s.event_date > ?)")
            params.extend([cursor_date, after[1], cursor_date])
        else:
            clauses.append("s.event_date >= ?")
            params.append(to_db(start))
        if statuses:
            values = _status_values(statuses)
            clauses.append(f"s.status IN ({placeholders(values)})")
            params.extend(values)
        if exclude_statuses:
            values = _status_values(exclude_statuses)
            clauses.append(f"s.status NOT IN ({placeholders(values)})")
            params.extend(values)
        if city:
            clauses.append("s.city = ? COLLATE NOCASE")
            params.append(city)
        if state:
            clauses.append("s.state = ? COLLATE NOCASE")
            params.append(state)
        if venue_ids is not None:
            if not venue_ids:
                return []
            clauses.append(
                "s.id IN (SELECT show_id FROM show_venues "
                f"WHERE venue_id IN ({placeholders(venue_ids)}))"
            )
            params.extend(venue_ids)

        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                f"SELECT s.* FROM shows s WHERE {' AND '.join(clauses)} "
                "ORDER BY s.event_date ASC, s.id ASC LIMIT ?",
                [*params, limit],
            )
            return await _hydrate(db, list(await cursor.fetchall()))

    async def count_upcoming_at_venues(
        self, venue_ids: list[int], start: datetime, statuses: list[ShowStatus]
    ) -> int:
        if not venue_ids:
            return 0
        values = _status_values(statuses)
        async with open_db(self._db_path) as db:
            return await fetch_count(
                db,
                "SELECT COUNT(DISTINCT s.id) FROM shows s "
                "JOIN show_venues sv ON sv.show_id = s.id "
                f"WHERE sv.venue_id IN ({placeholders(venue_ids)}) "
                f"AND s.event_date >= ? AND s.status IN ({placeholders(values)})",
                [*venue_ids, to_db(start), *values],
            )

    async def get_show_cities(self, start: datetime) -> list[ShowCity]:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT city, state, COUNT(*) AS cnt FROM shows "
                "WHERE status = 'approved' AND event_date >= ? "
                "AND city IS NOT NULL AND city != '' AND state IS NOT NULL AND state != '' "
                "GROUP BY city, state ORDER BY cnt DESC, city ASC",
                (to_db(start),),
            )
            rows = await cursor.fetchall()
        return [ShowCity(city=r["city"], state=r["state"], show_count=r["cnt"]) for r in rows]

    async def get_shows_for_artist(
        self,
        artist_id: int,
        *,
        statuses: list[ShowStatus],
        starts_after: datetime | None = None,
        ends_before: datetime | None = None,
        limit: int = 50,
    ) -> list[Show]:
        values = _status_values(statuses)
        clauses = ["sa.artist_id = ?", f"s.status IN ({placeholders(values)})"]
        params: list[Any] = [artist_id, *values]
        if starts_after is not None:
            clauses.append("s.event_date >= ?")
            params.append(to_db(starts_after))
        if ends_before is not None:
            clauses.append("s.event_date < ?")
            params.append(to_db(ends_before))
        # Past listings read most recent first.
        order = "DESC" if ends_before is not None and starts_after is None else "ASC"

        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT s.* FROM shows s JOIN show_artists sa ON sa.show_id = s.id "
                f"WHERE {' AND '.join(clauses)} "
                f"ORDER BY s.event_date {order}, s.id {order} LIMIT ?",
                [*params, limit],
            )
            return await _hydrate(db, list(await cursor.fetchall()))

    # ── Update ─────────────────────────────────────────────────────────

    async def update_show(self, show_id: int, fields: dict[str, Any]) -> Show | None:
        updates = {k: v for k, v in fields.items() if k in _UPDATABLE_COLUMNS}
        if "event_date" in updates and isinstance(updates["event_date"], datetime):
            updates["event_date"] = to_db(updates["event_date"])
        if updates:
            assignments = ", ".join(f"{column} = ?" for column in updates)
            async with open_db(self._db_path) as db:
                await db.execute(
                    f"UPDATE shows SET {assignments}, updated_at = ? WHERE id = ?",
                    [*updates.values(), to_db(utc_now()), show_id],
                )
                await db.commit()
            logger.info("show_updated", show_id=show_id, fields=sorted(updates))
        return await self.get_show(show_id)

    async def transition_status(
        self,
        show_id: int,
        from_statuses: list[ShowStatus],
        to_status: ShowStatus,
        *,
        rejection_reason: str | None = None,
        clear_rejection_reason: bool = False,
    ) -> bool:
        values = _status_values(from_statuses)
        assignments = ["status = ?", "updated_at = ?"]
        params: list[Any] = [ShowStatus(to_status).value, to_db(utc_now())]
        if rejection_reason is not None:
            assignments.append("rejection_reason = ?")
            params.append(rejection_reason)
        elif clear_rejection_reason:
            assignments.append("rejection_reason = NULL")

        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                f"UPDATE shows SET {', '.join(assignments)} "
                f"WHERE id = ? AND status IN ({placeholders(values)})",
                [*params, show_id, *values],
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info("show_status_changed", show_id=show_id, to_status=ShowStatus(to_status).value)
        return updated

    async def verify_show_venues(self, show_id: int) -> int:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE venues SET verified = 1, updated_at = ? "
                "WHERE verified = 0 AND id IN (SELECT venue_id FROM show_venues WHERE show_id = ?)",
                (to_db(utc_now()), show_id),
            )
            await db.commit()
            return cursor.rowcount

    async def set_flag(self, show_id: int, flag: str, value: bool) -> bool:
        if flag not in _FLAG_COLUMNS:
            raise ValueError(f"unknown show flag: {flag}")
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                f"UPDATE shows SET {flag} = ?, updated_at = ? WHERE id = ?",
                (int(value), to_db(utc_now()), show_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_show(self, show_id: int) -> bool:
        async with open_db(self._db_path) as db:
            cursor = await db.execute("DELETE FROM shows WHERE id = ?", (show_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("show_deleted", show_id=show_id)
        return deleted
