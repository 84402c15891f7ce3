"""Show and artist report, audit log and dashboard models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ReportType(str, Enum):
    CANCELLED = "cancelled"
    SOLD_OUT = "sold_out"
    INACCURATE = "inaccurate"


class ReportStatus(str, Enum):
    PENDING = "pending"
    DISMISSED = "dismissed"
    RESOLVED = "resolved"


class ShowReport(BaseModel):
    """A user's report that a show listing is wrong or out of date."""

    model_config = ConfigDict(frozen=True)

    id: int
    show_id: int
    reported_by: int
    report_type: ReportType
    details: str | None = None
    status: ReportStatus = ReportStatus.PENDING
    admin_notes: str | None = None
    reviewed_by: int | None = None
    reviewed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    show_title: str | None = None


class ArtistReportType(str, Enum):
    INACCURATE = "inaccurate"
    REMOVAL_REQUEST = "removal_request"


class ArtistReport(BaseModel):
    """A user's report that an artist page is wrong or should be taken down."""

    model_config = ConfigDict(frozen=True)

    id: int
    artist_id: int
    reported_by: int
    report_type: ArtistReportType
    details: str | None = None
    status: ReportStatus = ReportStatus.PENDING
    admin_notes: str | None = None
    reviewed_by: int | None = None
    reviewed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    artist_name: str | None = None
    artist_slug: str | None = None


class AuditLogEntry(BaseModel):
    """One admin action recorded for accountability."""

    model_config = ConfigDict(frozen=True)

    id: int
    actor_id: int | None = None
    action: str
    entity_type: str
    entity_id: int
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    actor_email: str | None = None


class DashboardStats(BaseModel):
    """Counts shown on the admin dashboard."""

    model_config = ConfigDict(frozen=True)

    pending_shows: int = 0
    pending_venue_edits: int = 0
    pending_reports: int = 0
    pending_artist_reports: int = 0
    unverified_venues: int = 0
    total_shows: int = 0
    total_venues: int = 0
    total_artists: int = 0
    total_users: int = 0
    shows_submitted_last_7_days: int = 0
    users_registered_last_7_days: int = 0
