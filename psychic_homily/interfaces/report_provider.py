"""Abstract base classes for show and artist reports, the audit log, and admin stats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from psychic_homily.models.report import (
    ArtistReport,
    ArtistReportType,
    AuditLogEntry,
    DashboardStats,
    ReportStatus,
    ReportType,
    ShowReport,
)


class IReportProvider(ABC):
    """Contract for user-submitted show reports and their review."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def create_report(
        self, show_id: int, user_id: int, report_type: ReportType, details: str | None
    ) -> ShowReport:
        """Insert a report.

        Raises
        ------
        ConflictError
            The user has already reported this show.
        """

    @abstractmethod
    async def get_report(self, report_id: int) -> ShowReport | None: ...

    @abstractmethod
    async def get_user_report_for_show(self, user_id: int, show_id: int) -> ShowReport | None: ...

    @abstractmethod
    async def list_pending_reports(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[ShowReport], int]: ...

    @abstractmethod
    async def dismiss_report(self, report_id: int, admin_id: int, notes: str | None) -> bool:
        """Mark a pending report dismissed.  False if it was already reviewed."""

    @abstractmethod
    async def resolve_report(
        self,
        report_id: int,
        admin_id: int,
        notes: str | None,
        show_flag: str | None = None,
    ) -> bool:
        """Mark a pending report resolved, optionally setting a show flag.

        Parameters
        ----------
        show_flag:
            ``"is_cancelled"`` or ``"is_sold_out"`` to set on the reported
            show in the same transaction, or None.
        """



class IArtistReportProvider(ABC):
    """Contract for user reports about artist pages."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def create_report(
        self, artist_id: int, user_id: int, report_type: ArtistReportType, details: str | None
    ) -> ArtistReport:
        """Insert a report.

        Raises
        ------
        ConflictError
            The user has already reported this artist.
        """

    @abstractmethod
    async def get_report(self, report_id: int) -> ArtistReport | None: ...

    @abstractmethod
    async def get_user_report_for_artist(
        self, user_id: int, artist_id: int
    ) -> ArtistReport | None: ...

    @abstractmethod
    async def list_pending_reports(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[ArtistReport], int]: ...

    @abstractmethod
    async def review_report(
        self, report_id: int, status: ReportStatus, admin_id: int, notes: str | None
    ) -> bool:
        """Move a pending report to *status*.  False if it was already reviewed."""

class IAuditLogProvider(ABC):
    """Contract for the append-only admin audit log."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def log_action(
        self,
        actor_id: int | None,
        action: str,
        entity_type: str,
        entity_id: int,
        metadata: dict[str, Any] | None = None,
    ) -> AuditLogEntry: ...

    @abstractmethod
    async def list_actions(
        self,
        *,
        limit: int = 50,
        offset: int = 0,
        entity_type: str | None = None,
        action: str | None = None,
        actor_id: int | None = None,
    ) -> tuple[list[AuditLogEntry], int]: ...


class IStatsProvider(ABC):
    """Contract for the admin dashboard counters."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def get_dashboard_stats(self, since: datetime) -> DashboardStats:
        """Queue sizes, totals, and activity since *since*."""
