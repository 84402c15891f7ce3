"""Psychic Homily domain models: re-exports all public model classes.

Import from ``psychic_homily.models`` rather than the individual modules:

    - show.py       Shows, their venues/bill, drafts and pages
    - venue.py      Venues and pending venue edits
    - artist.py     Artists
    - user.py       User accounts
    - report.py     Show and artist reports, audit log entries, dashboard stats
    - discovery.py  Scraped events and import results
    - api_token.py  Admin API tokens
"""

from __future__ import annotations

from psychic_homily.models.api_token import ApiToken, CreatedApiToken
from psychic_homily.models.artist import Artist
from psychic_homily.models.discovery import (
    CheckEventInput,
    CheckEventStatus,
    DiscoveredEvent,
    DiscoveryVenue,
    ImportResult,
)
from psychic_homily.models.report import (
    ArtistReport,
    ArtistReportType,
    AuditLogEntry,
    DashboardStats,
    ReportStatus,
    ReportType,
    ShowReport,
)
from psychic_homily.models.show import (
    ArtistInput,
    SavedShow,
    SetType,
    Show,
    ShowArtist,
    ShowCity,
    ShowDraft,
    ShowSource,
    ShowStatus,
    ShowUpdate,
    ShowVenue,
    UpcomingShowsPage,
    VenueInput,
)
from psychic_homily.models.user import User
from psychic_homily.models.venue import (
    FavoriteVenue,
    PendingVenueEdit,
    SocialLinks,
    Venue,
    VenueChanges,
    VenueCity,
    VenueCreate,
    VenueEditStatus,
)

__all__ = [
    "ApiToken",
    "Artist",
    "ArtistInput",
    "ArtistReport",
    "ArtistReportType",
    "AuditLogEntry",
    "CheckEventInput",
    "CheckEventStatus",
    "CreatedApiToken",
    "DashboardStats",
    "DiscoveredEvent",
    "DiscoveryVenue",
    "ImportResult",
    "FavoriteVenue",
    "PendingVenueEdit",
    "ReportStatus",
    "ReportType",
    "SavedShow",
    "SetType",
    "Show",
    "ShowArtist",
    "ShowCity",
    "ShowDraft",
    "ShowReport",
    "ShowSource",
    "ShowStatus",
    "ShowUpdate",
    "ShowVenue",
    "SocialLinks",
    "UpcomingShowsPage",
    "User",
    "Venue",
    "VenueChanges",
    "VenueCity",
    "VenueCreate",
    "VenueEditStatus",
    "VenueInput",
]
