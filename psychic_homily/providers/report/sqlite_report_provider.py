"""SQLite-backed show and artist report providers.

Reports follow the same queue pattern as every moderation table here:
rows start 'pending' and every review is a guarded
``UPDATE ... WHERE id = ? AND status = 'pending'`` so a report can only
be reviewed once, whichever admin gets there first.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from psychic_homily.interfaces.report_provider import IArtistReportProvider, IReportProvider
from psychic_homily.models.report import (
    ArtistReport,
    ArtistReportType,
    ReportStatus,
    ReportType,
    ShowReport,
)
from psychic_homily.providers.database import (
    DEFAULT_DB_PATH,
    fetch_count,
    immediate_transaction,
    initialize_schema,
    open_db,
)
from psychic_homily.utils.dates import from_db, to_db, utc_now
from psychic_homily.utils.errors import ConflictError, ReportNotFoundError

logger = structlog.get_logger(logger_name=__name__)

_SELECT_REPORT_SQL = """\
SELECT r.*, s.title AS show_title
FROM show_reports r
LEFT JOIN shows s ON s.id = r.show_id
"""

_SHOW_FLAGS = frozenset({"is_cancelled", "is_sold_out"})


def _row_to_report(row: aiosqlite.Row) -> ShowReport:
    return ShowReport(
        id=row["id"],
        show_id=row["show_id"],
        reported_by=row["reported_by"],
        report_type=ReportType(row["report_type"]),
        details=row["details"],
        status=ReportStatus(row["status"]),
        admin_notes=row["admin_notes"],
        reviewed_by=row["reviewed_by"],
        reviewed_at=from_db(row["reviewed_at"]),
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
        show_title=row["show_title"],
    )


class SQLiteReportProvider(IReportProvider):
    """SQLite-backed show report queue."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the schema (idempotent)."""
        await initialize_schema(self._db_path)
        logger.info("report_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_report"

    async def create_report(
        self, show_id: int, user_id: int, report_type: ReportType, details: str | None
    ) -> ShowReport:
        now = to_db(utc_now())
        try:
            async with open_db(self._db_path) as db:
                cursor = await db.execute(
                    "INSERT INTO show_reports (show_id, reported_by, report_type, details, "
                    "status, created_at, updated_at) VALUES (?, ?, ?, ?, 'pending', ?, ?)",
                    (show_id, user_id, ReportType(report_type).value, details, now, now),
                )
                await db.commit()
                report_id = cursor.lastrowid
        except aiosqlite.IntegrityError as exc:
            raise ConflictError(
                "you have already reported this show", code="REPORT_EXISTS"
            ) from exc

        logger.info("show_reported", report_id=report_id, show_id=show_id, type=report_type)
        report = await self.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    async def get_report(self, report_id: int) -> ShowReport | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(f"{_SELECT_REPORT_SQL} WHERE r.id = ?", (report_id,))
            row = await cursor.fetchone()
        return _row_to_report(row) if row else None

    async def get_user_report_for_show(self, user_id: int, show_id: int) -> ShowReport | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                f"{_SELECT_REPORT_SQL} WHERE r.reported_by = ? AND r.show_id = ?",
                (user_id, show_id),
            )
            row = await cursor.fetchone()
        return _row_to_report(row) if row else None

    async def list_pending_reports(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[ShowReport], int]:
        async with open_db(self._db_path) as db:
            total = await fetch_count(
                db, "SELECT COUNT(*) FROM show_reports WHERE status = 'pending'"
            )
            cursor = await db.execute(
                f"{_SELECT_REPORT_SQL} WHERE r.status = 'pending' "
                "ORDER BY r.created_at DESC, r.id DESC LIMIT ? OFFSET ?",
                (limit, offset),
            )
            rows = await cursor.fetchall()
        return [_row_to_report(r) for r in rows], total

    async def dismiss_report(self, report_id: int, admin_id: int, notes: str | None) -> bool:
        now = to_db(utc_now())
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE show_reports SET status = 'dismissed', admin_notes = ?, "
                "reviewed_by = ?, reviewed_at = ?, updated_at = ? "
                "WHERE id = ? AND status = 'pending'",
                (notes, admin_id, now, now, report_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info("report_dismissed", report_id=report_id)
        return updated

    async def resolve_report(
        self,
        report_id: int,
        admin_id: int,
        notes: str | None,
        show_flag: str | None = None,
    ) -> bool:
        if show_flag is not None and show_flag not in _SHOW_FLAGS:
            raise ValueError(f"unknown show flag: {show_flag}")
        now = to_db(utc_now())
        async with open_db(self._db_path) as db:
            async with immediate_transaction(db):
                cursor = await db.execute(
                    "UPDATE show_reports SET status = 'resolved', admin_notes = ?, "
                    "reviewed_by = ?, reviewed_at = ?, updated_at = ? "
                    "WHERE id = ? AND status = 'pending'",
                    (notes, admin_id, now, now, report_id),
                )
                updated = cursor.rowcount > 0
                if updated and show_flag is not None:
                    await db.execute(
                        f"UPDATE shows SET {show_flag} = 1, updated_at = ? "
                        "WHERE id = (SELECT show_id FROM show_reports WHERE id = ?)",
                        (now, report_id),
                    )
        if updated:
            logger.info("report_resolved", report_id=report_id, show_flag=show_flag)
        return updated


# ---------------------------------------------------------------------------
# Artist reports
# ---------------------------------------------------------------------------

_SELECT_ARTIST_REPORT_SQL = """\
SELECT r.*, a.name AS artist_name, a.slug AS artist_slug
FROM artist_reports r
LEFT JOIN artists a ON a.id = r.artist_id
"""

_REVIEWED_STATUSES = frozenset({ReportStatus.DISMISSED, ReportStatus.RESOLVED})


def _row_to_artist_report(row: aiosqlite.Row) -> ArtistReport:
    return ArtistReport(
        id=row["id"],
        artist_id=row["artist_id"],
        reported_by=row["reported_by"],
        report_type=ArtistReportType(row["report_type"]),
        details=row["details"],
        status=ReportStatus(row["status"]),
        admin_notes=row["admin_notes"],
        reviewed_by=row["reviewed_by"],
        reviewed_at=from_db(row["reviewed_at"]),
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
        artist_name=row["artist_name"],
        artist_slug=row["artist_slug"],
    )


class SQLiteArtistReportProvider(IArtistReportProvider):
    """SQLite-backed artist report queue, reviewed the same way as show reports."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        await initialize_schema(self._db_path)
        logger.info("artist_report_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_artist_report"

    async def create_report(
        self, artist_id: int, user_id: int, report_type: ArtistReportType, details: str | None
    ) -> ArtistReport:
        now = to_db(utc_now())
        try:
            async with open_db(self._db_path) as db:
                cursor = await db.execute(
                    "INSERT INTO artist_reports (artist_id, reported_by, report_type, details, "
                    "status, created_at, updated_at) VALUES (?, ?, ?, ?, 'pending', ?, ?)",
                    (artist_id, user_id, ArtistReportType(report_type).value, details, now, now),
                )
                await db.commit()
                report_id = cursor.lastrowid
        except aiosqlite.IntegrityError as exc:
            raise ConflictError(
                "you have already reported this artist", code="REPORT_EXISTS"
            ) from exc

        logger.info("artist_reported", report_id=report_id, artist_id=artist_id, type=report_type)
        report = await self.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    async def get_report(self, report_id: int) -> ArtistReport | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(f"{_SELECT_ARTIST_REPORT_SQL} WHERE r.id = ?", (report_id,))
            row = await cursor.fetchone()
        return _row_to_artist_report(row) if row else None

    async def get_user_report_for_artist(
        self, user_id: int, artist_id: int
    ) -> ArtistReport | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                f"{_SELECT_ARTIST_REPORT_SQL} WHERE r.reported_by = ? AND r.artist_id = ?",
                (user_id, artist_id),
            )
            row = await cursor.fetchone()
        return _row_to_artist_report(row) if row else None

    async def list_pending_reports(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[ArtistReport], int]:
        async with open_db(self._db_path) as db:
            total = await fetch_count(
                db, "SELECT COUNT(*) FROM artist_reports WHERE status = 'pending'"
            )
            cursor = await db.execute(
                f"{_SELECT_ARTIST_REPORT_SQL} WHERE r.status = 'pending' "
                "ORDER BY r.created_at DESC, r.id DESC LIMIT ? OFFSET ?",
                (limit, offset),
            )
            rows = await cursor.fetchall()
        return [_row_to_artist_report(r) for r in rows], total

    async def review_report(
        self, report_id: int, status: ReportStatus, admin_id: int, notes: str | None
    ) -> bool:
        status = ReportStatus(status)
        if status not in _REVIEWED_STATUSES:
            raise ValueError(f"cannot review a report into status {status.value}")
        now = to_db(utc_now())
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE artist_reports SET status = ?, admin_notes = ?, "
                "reviewed_by = ?, reviewed_at = ?, updated_at = ? "
                "WHERE id = ? AND status = 'pending'",
                (status.value, notes, admin_id, now, now, report_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if updated:
            logger.info("artist_report_reviewed", report_id=report_id, status=status.value)
        return updated
