"""User reports about show listings and their admin review."""

from __future__ import annotations

import structlog

from psychic_homily.interfaces.notification_provider import INotificationProvider
from psychic_homily.interfaces.report_provider import IReportProvider
from psychic_homily.interfaces.show_provider import IShowProvider
from psychic_homily.models.report import ReportStatus, ReportType, ShowReport
from psychic_homily.models.user import User
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.utils.errors import (
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    ReportNotFoundError,
    ShowNotFoundError,
    ValidationError,
)

logger = structlog.get_logger(logger_name=__name__)

# Which show flag a resolved report sets.  Inaccurate-listing reports are
# fixed by editing the show, so they map to no flag.
_FLAG_FOR_TYPE: dict[ReportType, str] = {
    ReportType.CANCELLED: "is_cancelled",
    ReportType.SOLD_OUT: "is_sold_out",
}
_MAX_DETAILS_LENGTH = 2000


class ShowReportService:
    def __init__(
        self,
        report_store: IReportProvider,
        show_store: IShowProvider,
        *,
        notifier: INotificationProvider | None = None,
        audit_log: AuditLogService | None = None,
    ) -> None:
        self._report_store = report_store
        self._show_store = show_store
        self._notifier = notifier
        self._audit_log = audit_log

    async def create_report(
        self, user: User, show_id: int, report_type: ReportType | str, details: str | None = None
    ) -> ShowReport:
        try:
            report_type = ReportType(report_type)
        except ValueError as exc:
            raise ValidationError(
                f"report type must be one of: {', '.join(t.value for t in ReportType)}",
                code="INVALID_REPORT_TYPE",
            ) from exc
        details = (details or "").strip() or None
        if details is not None and len(details) > _MAX_DETAILS_LENGTH:
            raise ValidationError(
                f"details must be at most {_MAX_DETAILS_LENGTH} characters", code="DETAILS_TOO_LONG"
            )

        show = await self._show_store.get_show(show_id)
        if show is None:
            raise ShowNotFoundError(show_id)
        if await self._report_store.get_user_report_for_show(user.id, show_id) is not None:
            raise ConflictError("you have already reported this show", code="REPORT_EXISTS")

        report = await self._report_store.create_report(show_id, user.id, report_type, details)
        if self._notifier is not None:
            await self._notifier.notify_show_report(report, show, user.email)
        return report

    async def get_user_report_for_show(self, user_id: int, show_id: int) -> ShowReport | None:
        return await self._report_store.get_user_report_for_show(user_id, show_id)

    async def get_pending_reports(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[ShowReport], int]:
        limit = 50 if limit <= 0 else min(limit, 200)
        return await self._report_store.list_pending_reports(limit, max(0, offset))

    async def _require_pending(self, report_id: int) -> ShowReport:
        report = await self._report_store.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        if report.status != ReportStatus.PENDING:
            raise InvalidTransitionError(
                f"report is already {report.status.value}", current_status=report.status.value
            )
        return report

    async def dismiss_report(self, report_id: int, admin: User, notes: str | None = None) -> ShowReport:
        _require_admin(admin)
        report = await self._require_pending(report_id)
        if not await self._report_store.dismiss_report(report_id, admin.id, notes):
            raise InvalidTransitionError("report is no longer pending")
        await self._audit(admin, "dismiss_report", report, {"notes": notes})
        return await self._reload(report_id)

    async def resolve_report(
        self,
        report_id: int,
        admin: User,
        notes: str | None = None,
        set_show_flag: bool = False,
    ) -> ShowReport:
        """Resolve a report, optionally flagging the show in the same transaction."""
        _require_admin(admin)
        report = await self._require_pending(report_id)
        flag = _FLAG_FOR_TYPE.get(report.report_type) if set_show_flag else None
        if not await self._report_store.resolve_report(report_id, admin.id, notes, flag):
            raise InvalidTransitionError("report is no longer pending")
        await self._audit(admin, "resolve_report", report, {"notes": notes, "show_flag": flag})
        return await self._reload(report_id)

    async def _reload(self, report_id: int) -> ShowReport:
        report = await self._report_store.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    async def _audit(self, admin: User, action: str, report: ShowReport, metadata: dict) -> None:
        if self._audit_log is not None:
            await self._audit_log.log_action(
                admin.id,
                action,
                "show_report",
                report.id,
                {"show_id": report.show_id, "report_type": report.report_type.value, **metadata},
            )


def _require_admin(actor: User) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError("admin access required", code="ADMIN_REQUIRED")
