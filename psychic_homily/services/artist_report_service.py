"""User reports about artist pages and their admin review.

Works like ShowReportService, except that resolving an artist report never
changes the artist.  The admin fixes the page or removes it separately, and
the report only records that it was handled.
"""

from __future__ import annotations

import structlog

from psychic_homily.interfaces.artist_provider import IArtistProvider
from psychic_homily.interfaces.notification_provider import INotificationProvider
from psychic_homily.interfaces.report_provider import IArtistReportProvider
from psychic_homily.models.report import ArtistReport, ArtistReportType, ReportStatus
from psychic_homily.models.user import User
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.utils.errors import (
    ArtistNotFoundError,
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    ReportNotFoundError,
    ValidationError,
)

logger = structlog.get_logger(logger_name=__name__)

_MAX_DETAILS_LENGTH = 2000


class ArtistReportService:
    def __init__(
        self,
        report_store: IArtistReportProvider,
        artist_store: IArtistProvider,
        *,
        notifier: INotificationProvider | None = None,
        audit_log: AuditLogService | None = None,
    ) -> None:
        self._report_store = report_store
        self._artist_store = artist_store
        self._notifier = notifier
        self._audit_log = audit_log

    async def create_report(
        self,
        user: User,
        artist_id: int,
        report_type: ArtistReportType | str,
        details: str | None = None,
    ) -> ArtistReport:
        try:
            report_type = ArtistReportType(report_type)
        except ValueError as exc:
            raise ValidationError(
                f"report type must be one of: {', '.join(t.value for t in ArtistReportType)}",
                code="INVALID_REPORT_TYPE",
            ) from exc
        details = (details or "").strip() or None
        if details is not None and len(details) > _MAX_DETAILS_LENGTH:
            raise ValidationError(
                f"details must be at most {_MAX_DETAILS_LENGTH} characters", code="DETAILS_TOO_LONG"
            )

        artist = await self._artist_store.get_artist(artist_id)
        if artist is None:
            raise ArtistNotFoundError(artist_id)
        if await self._report_store.get_user_report_for_artist(user.id, artist_id) is not None:
            raise ConflictError("you have already reported this artist", code="REPORT_EXISTS")

        report = await self._report_store.create_report(artist_id, user.id, report_type, details)
        if self._notifier is not None:
            await self._notifier.notify_artist_report(report, artist, user.email)
        return report

    async def get_user_report_for_artist(self, user_id: int, artist_id: int) -> ArtistReport | None:
        return await self._report_store.get_user_report_for_artist(user_id, artist_id)

    async def get_pending_reports(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[ArtistReport], int]:
        limit = 50 if limit <= 0 else min(limit, 100)
        return await self._report_store.list_pending_reports(limit, max(0, offset))

    async def dismiss_report(
        self, report_id: int, admin: User, notes: str | None = None
    ) -> ArtistReport:
        return await self._review(report_id, admin, ReportStatus.DISMISSED, notes)

    async def resolve_report(
        self, report_id: int, admin: User, notes: str | None = None
    ) -> ArtistReport:
        return await self._review(report_id, admin, ReportStatus.RESOLVED, notes)

    async def _review(
        self, report_id: int, admin: User, status: ReportStatus, notes: str | None
    ) -> ArtistReport:
        if not admin.is_admin:
            raise PermissionDeniedError("admin access required", code="ADMIN_REQUIRED")
        report = await self._report_store.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        if report.status != ReportStatus.PENDING:
            raise InvalidTransitionError(
                f"report is already {report.status.value}", current_status=report.status.value
            )
        if not await self._report_store.review_report(report_id, status, admin.id, notes):
            raise InvalidTransitionError("report is no longer pending")

        verb = "dismiss" if status == ReportStatus.DISMISSED else "resolve"
        if self._audit_log is not None:
            await self._audit_log.log_action(
                admin.id,
                f"{verb}_artist_report",
                "artist_report",
                report_id,
                {
                    "artist_id": report.artist_id,
                    "report_type": report.report_type.value,
                    "notes": notes,
                },
            )

        reviewed = await self._report_store.get_report(report_id)
        if reviewed is None:
            raise ReportNotFoundError(report_id)
        return reviewed
