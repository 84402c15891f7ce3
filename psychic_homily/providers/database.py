"""Shared SQLite schema and connection helpers.

# ─── ARCHITECTURE ────────────────────────────────────────────────────
#
# Every SQLite provider follows the same pattern:
#   - aiosqlite for async I/O, one short-lived connection per call
#   - WAL mode for concurrent reads during writes
#   - Parameterized queries throughout (no string interpolation of values)
#   - idempotent initialize() with CREATE TABLE IF NOT EXISTS
#
# Unlike a per-feature database file, all tables live in ONE file: show
# creation writes shows, venues, artists and both join tables in a single
# transaction, which SQLite can only do within one database.  Each
# provider's initialize() calls initialize_schema(), so whichever provider
# starts first creates everything.
#
# Layer: Providers (shared infrastructure, no business rules)
# Depends on: aiosqlite, structlog
# ─────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite
import structlog

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_DB_PATH = Path("data/psychic_homily.db")

_SOCIAL_COLUMNS = """\
    instagram    TEXT,
    facebook     TEXT,
    twitter      TEXT,
    youtube      TEXT,
    spotify      TEXT,
    soundcloud   TEXT,
    bandcamp     TEXT,
    website      TEXT,"""

_CREATE_TABLES_SQL: list[str] = [
    """\
CREATE TABLE IF NOT EXISTS users (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    email                 TEXT NOT NULL,
    username              TEXT,
    password_hash         TEXT,
    first_name            TEXT,
    last_name             TEXT,
    is_active             INTEGER NOT NULL DEFAULT 1,
    is_admin              INTEGER NOT NULL DEFAULT 0,
    email_verified        INTEGER NOT NULL DEFAULT 0,
    failed_login_attempts INTEGER NOT NULL DEFAULT 0,
    locked_until          TEXT,
    created_at            TEXT NOT NULL,
    updated_at            TEXT NOT NULL
);""",
    f"""\
CREATE TABLE IF NOT EXISTS venues (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    slug         TEXT UNIQUE,
    address      TEXT,
    city         TEXT NOT NULL,
    state        TEXT NOT NULL,
    zipcode      TEXT,
{_SOCIAL_COLUMNS}
    verified     INTEGER NOT NULL DEFAULT 0,
    submitted_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);""",
    f"""\
CREATE TABLE IF NOT EXISTS artists (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    slug         TEXT UNIQUE,
    city         TEXT,
    state        TEXT,
{_SOCIAL_COLUMNS}
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);""",
    """\
CREATE TABLE IF NOT EXISTS shows (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    title                TEXT NOT NULL,
    slug                 TEXT UNIQUE,
    event_date           TEXT NOT NULL,
    city                 TEXT,
    state                TEXT,
    price                REAL,
    age_requirement      TEXT,
    description          TEXT,
    status               TEXT NOT NULL DEFAULT 'pending',
    submitted_by         INTEGER REFERENCES users(id) ON DELETE SET NULL,
    rejection_reason     TEXT,
    source               TEXT NOT NULL DEFAULT 'user',
    source_venue         TEXT,
    source_event_id      TEXT,
    scraped_at           TEXT,
    duplicate_of_show_id INTEGER REFERENCES shows(id) ON DELETE SET NULL,
    is_sold_out          INTEGER NOT NULL DEFAULT 0,
    is_cancelled         INTEGER NOT NULL DEFAULT 0,
    created_at           TEXT NOT NULL,
    updated_at           TEXT NOT NULL
);""",
    """\
CREATE TABLE IF NOT EXISTS show_venues (
    show_id  INTEGER NOT NULL REFERENCES shows(id) ON DELETE CASCADE,
    venue_id INTEGER NOT NULL REFERENCES venues(id) ON DELETE CASCADE,
    PRIMARY KEY (show_id, venue_id)
);""",
    """\
CREATE TABLE IF NOT EXISTS show_artists (
    show_id   INTEGER NOT NULL REFERENCES shows(id) ON DELETE CASCADE,
    artist_id INTEGER NOT NULL REFERENCES artists(id) ON DELETE CASCADE,
    position  INTEGER NOT NULL DEFAULT 0,
    set_type  TEXT NOT NULL DEFAULT 'opener',
    PRIMARY KEY (show_id, artist_id)
);""",
    f"""\
CREATE TABLE IF NOT EXISTS pending_venue_edits (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    venue_id         INTEGER NOT NULL REFERENCES venues(id) ON DELETE CASCADE,
    submitted_by     INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    name             TEXT,
    address          TEXT,
    city             TEXT,
    state            TEXT,
    zipcode          TEXT,
{_SOCIAL_COLUMNS}
    status           TEXT NOT NULL DEFAULT 'pending',
    rejection_reason TEXT,
    reviewed_by      INTEGER REFERENCES users(id) ON DELETE SET NULL,
    reviewed_at      TEXT,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);""",
    """\
CREATE TABLE IF NOT EXISTS user_saved_shows (
    user_id  INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    show_id  INTEGER NOT NULL REFERENCES shows(id) ON DELETE CASCADE,
    saved_at TEXT NOT NULL,
    PRIMARY KEY (user_id, show_id)
);""",
    """\
CREATE TABLE IF NOT EXISTS user_favorite_venues (
    user_id      INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    venue_id     INTEGER NOT NULL REFERENCES venues(id) ON DELETE CASCADE,
    favorited_at TEXT NOT NULL,
    PRIMARY KEY (user_id, venue_id)
);""",
    """\
CREATE TABLE IF NOT EXISTS show_reports (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    show_id      INTEGER NOT NULL REFERENCES shows(id) ON DELETE CASCADE,
    reported_by  INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    report_type  TEXT NOT NULL,
    details      TEXT,
    status       TEXT NOT NULL DEFAULT 'pending',
    admin_notes  TEXT,
    reviewed_by  INTEGER REFERENCES users(id) ON DELETE SET NULL,
    reviewed_at  TEXT,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL,
    UNIQUE (show_id, reported_by)
);""",
    """\
CREATE TABLE IF NOT EXISTS artist_reports (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    artist_id    INTEGER NOT NULL REFERENCES artists(id) ON DELETE CASCADE,
    reported_by  INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    report_type  TEXT NOT NULL,
    details      TEXT,
    status       TEXT NOT NULL DEFAULT 'pending',
    admin_notes  TEXT,
    reviewed_by  INTEGER REFERENCES users(id) ON DELETE SET NULL,
    reviewed_at  TEXT,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL,
    UNIQUE (artist_id, reported_by)
);""",
    """\
CREATE TABLE IF NOT EXISTS api_tokens (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id      INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    token_hash   TEXT NOT NULL UNIQUE,
    description  TEXT,
    scope        TEXT NOT NULL DEFAULT 'admin',
    expires_at   TEXT NOT NULL,
    last_used_at TEXT,
    revoked_at   TEXT,
    created_at   TEXT NOT NULL
);""",
    """\
CREATE TABLE IF NOT EXISTS audit_logs (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    actor_id    INTEGER REFERENCES users(id) ON DELETE SET NULL,
    action      TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id   INTEGER NOT NULL,
    metadata    TEXT NOT NULL DEFAULT '{}',
    created_at  TEXT NOT NULL
);""",
]

_CREATE_INDICES_SQL: list[str] = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users(email COLLATE NOCASE);",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_venues_name_city "
    "ON venues(name COLLATE NOCASE, city COLLATE NOCASE);",
    "CREATE INDEX IF NOT EXISTS idx_venues_verified ON venues(verified);",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_artists_name ON artists(name COLLATE NOCASE);",
    "CREATE INDEX IF NOT EXISTS idx_shows_event_date ON shows(event_date, id);",
    "CREATE INDEX IF NOT EXISTS idx_shows_status ON shows(status);",
    "CREATE INDEX IF NOT EXISTS idx_shows_submitted_by ON shows(submitted_by);",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_shows_source "
    "ON shows(source_venue, source_event_id) WHERE source_event_id IS NOT NULL;",
    "CREATE INDEX IF NOT EXISTS idx_show_venues_venue ON show_venues(venue_id);",
    "CREATE INDEX IF NOT EXISTS idx_show_artists_artist ON show_artists(artist_id);",
    "CREATE INDEX IF NOT EXISTS idx_venue_edits_status ON pending_venue_edits(status);",
    "CREATE INDEX IF NOT EXISTS idx_reports_status ON show_reports(status);",
    "CREATE INDEX IF NOT EXISTS idx_artist_reports_status ON artist_reports(status);",
    "CREATE INDEX IF NOT EXISTS idx_api_tokens_user ON api_tokens(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_audit_created ON audit_logs(created_at);",
]


async def initialize_schema(db_path: str | Path) -> None:
    """Create every table and index (idempotent)."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(str(path)) as db:
        await db.execute("PRAGMA journal_mode=WAL;")
        for table_sql in _CREATE_TABLES_SQL:
            await db.execute(table_sql)
        for idx_sql in _CREATE_INDICES_SQL:
            await db.execute(idx_sql)
        await db.commit()
    logger.debug("schema_initialized", path=str(path))


@asynccontextmanager
async def open_db(db_path: str | Path) -> AsyncIterator[aiosqlite.Connection]:
    """Open a connection with row access by name and foreign keys enforced."""
    async with aiosqlite.connect(str(db_path)) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON;")
        await db.execute("PRAGMA busy_timeout=5000;")
        yield db


@asynccontextmanager
async def immediate_transaction(db: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Run a block inside ``BEGIN IMMEDIATE``; commit on success, roll back on error.

    IMMEDIATE takes the database write lock up front, so a read-check-write
    sequence inside the block cannot interleave with another writer.
    """
    await db.execute("BEGIN IMMEDIATE;")
    try:
        yield db
    except BaseException:
        await db.rollback()
        raise
    else:
        await db.commit()


def placeholders(values: list | tuple) -> str:
    """``?,?,?`` for an ``IN (...)`` clause with one slot per value."""
    return ",".join("?" for _ in values)


def like_pattern(query: str, *, prefix_only: bool = False) -> str:
    """Escape LIKE wildcards in *query* for use with ``ESCAPE '\\'``."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%" if prefix_only else f"%{escaped}%"


async def fetch_count(db: aiosqlite.Connection, sql: str, params: list | tuple = ()) -> int:
    cursor = await db.execute(sql, params)
    row = await cursor.fetchone()
    return int(row[0]) if row else 0
