"""Pydantic request/response schemas for the Psychic Homily API.

# ─── HOW SCHEMAS WORK (Junior Developer Guide) ────────────────────────
#
# These models define the *shape* of every HTTP request and response
# body.  FastAPI uses them for:
#
#   1. **Validation**: incoming JSON is checked against the schema and
#      malformed requests get a 422 before any handler runs.
#   2. **Serialization**: ``response_model=...`` turns domain models
#      into JSON with exactly these fields.
#   3. **Documentation**: the OpenAPI page at /docs is generated from
#      them.
#
# Domain models (Show, Venue...) are embedded directly in responses;
# they are frozen pydantic models already.  Request schemas only carry
# what a client may set: ``submitted_by``, ``status`` and ``source`` are
# never accepted from the body.
#
# Convention: request schemas end with "Request", response schemas with
# "Response".
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from psychic_homily.models import (
    ApiToken,
    Artist,
    ArtistReport,
    AuditLogEntry,
    CheckEventInput,
    CheckEventStatus,
    DiscoveredEvent,
    FavoriteVenue,
    PendingVenueEdit,
    SavedShow,
    Show,
    ShowCity,
    ShowReport,
    SocialLinks,
    User,
    Venue,
    VenueCity,
)


# ── Errors ────────────────────────────────────────────────────────────
class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    code: str
    detail: str | None = None
    errors: list[str] | None = None
    existing_show_id: int | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# ── Auth ──────────────────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=1024)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str


class MagicLinkRequest(BaseModel):
    email: str


class TokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class RecoverAccountRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str


class AuthResponse(BaseModel):
    """Returned by every endpoint that starts a session."""

    success: bool = True
    user: User
    token: str
    expires_in_hours: int


class TokenIssuedResponse(BaseModel):
    """Acknowledges a token-by-email request.

    ``token`` is only filled in development, where no mail is sent.
    """

    success: bool = True
    message: str
    token: str | None = None


class UserResponse(BaseModel):
    user: User


# ── Shows ─────────────────────────────────────────────────────────────
class ShowVenueRequest(BaseModel):
    id: int | None = None
    name: str = Field(default="", max_length=255)
    city: str = Field(default="", max_length=100)
    state: str = Field(default="", max_length=100)
    address: str | None = None
    zipcode: str | None = None


class ShowArtistRequest(BaseModel):
    id: int | None = None
    name: str = Field(default="", max_length=255)
    is_headliner: bool | None = None


class CreateShowRequest(BaseModel):
    title: str = Field(default="", max_length=255)
    event_date: datetime
    city: str | None = None
    state: str | None = None
    price: float | None = Field(default=None, ge=0)
    age_requirement: str | None = None
    description: str | None = Field(default=None, max_length=5000)
    venues: list[ShowVenueRequest] = Field(..., min_length=1)
    artists: list[ShowArtistRequest] = Field(..., min_length=1)
    is_private: bool = False


class UpdateShowRequest(BaseModel):
    title: str | None = Field(default=None, max_length=255)
    event_date: datetime | None = None
    city: str | None = None
    state: str | None = None
    price: float | None = Field(default=None, ge=0)
    age_requirement: str | None = None
    description: str | None = Field(default=None, max_length=5000)


class ShowResponse(BaseModel):
    show: Show
    is_saved: bool | None = None


class ShowListResponse(BaseModel):
    shows: list[Show]
    total: int
    limit: int
    offset: int


class UpcomingShowsResponse(BaseModel):
    shows: list[Show]
    timezone: str
    next_cursor: str | None = None
    has_more: bool = False


class ShowCitiesResponse(BaseModel):
    cities: list[ShowCity]


class SaveShowResponse(BaseModel):
    success: bool = True
    show_id: int
    saved_at: datetime


class ReportShowRequest(BaseModel):
    report_type: str
    details: str | None = Field(default=None, max_length=2000)


class ReportResponse(BaseModel):
    report: ShowReport | None


# ── Venues ────────────────────────────────────────────────────────────
class CreateVenueRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    address: str | None = None
    zipcode: str | None = None
    social: SocialLinks = Field(default_factory=SocialLinks)


class VenueEditRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    address: str | None = None
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    zipcode: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    twitter: str | None = None
    youtube: str | None = None
    spotify: str | None = None
    soundcloud: str | None = None
    bandcamp: str | None = None
    website: str | None = None


class VenueResponse(BaseModel):
    venue: Venue
    is_favorited: bool | None = None


class VenueListResponse(BaseModel):
    venues: list[Venue]
    total: int
    limit: int
    offset: int


class VenueSearchResponse(BaseModel):
    venues: list[Venue]


class VenueCitiesResponse(BaseModel):
    cities: list[VenueCity]


class VenueEditResponse(BaseModel):
    """``status`` is ``applied`` for admin edits and ``pending`` otherwise."""

    status: str
    venue: Venue
    pending_edit: PendingVenueEdit | None = None


class PendingEditResponse(BaseModel):
    pending_edit: PendingVenueEdit | None


class FavoriteVenueResponse(BaseModel):
    success: bool = True
    venue_id: int
    favorited_at: datetime


# ── Artists ───────────────────────────────────────────────────────────
class ArtistResponse(BaseModel):
    artist: Artist


class ArtistSearchResponse(BaseModel):
    artists: list[Artist]


class ArtistShowsResponse(BaseModel):
    artist_id: int
    time_filter: str
    shows: list[Show]


class ReportArtistRequest(BaseModel):
    report_type: str
    details: str | None = Field(default=None, max_length=2000)


class ArtistReportResponse(BaseModel):
    report: ArtistReport | None


# ── Me ────────────────────────────────────────────────────────────────
class SavedShowsResponse(BaseModel):
    shows: list[SavedShow]
    total: int
    limit: int
    offset: int


class FavoriteVenuesResponse(BaseModel):
    venues: list[FavoriteVenue]
    total: int
    limit: int
    offset: int


# ── Admin ─────────────────────────────────────────────────────────────
class ApproveShowRequest(BaseModel):
    verify_venues: bool = False


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class FlagRequest(BaseModel):
    value: bool = True


class ReviewReportRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)
    set_show_flag: bool = False


class PendingEditsResponse(BaseModel):
    edits: list[PendingVenueEdit]
    total: int
    limit: int
    offset: int


class ReportListResponse(BaseModel):
    reports: list[ShowReport]
    total: int
    limit: int
    offset: int


class ArtistReportListResponse(BaseModel):
    reports: list[ArtistReport]
    total: int
    limit: int
    offset: int


class ReviewArtistReportRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class CreateApiTokenRequest(BaseModel):
    description: str | None = Field(default=None, max_length=255)
    # Zero or omitted means the 90 day default.
    expiration_days: int | None = Field(default=None, ge=0)


class ApiTokenCreatedResponse(BaseModel):
    token: str
    api_token: ApiToken
    warning: str = "Store this token now.  It will not be shown again."


class ApiTokenListResponse(BaseModel):
    tokens: list[ApiToken]


class AuditLogResponse(BaseModel):
    logs: list[AuditLogEntry]
    total: int
    limit: int
    offset: int


class DiscoveryImportRequest(BaseModel):
    events: list[DiscoveredEvent] = Field(..., max_length=500)
    dry_run: bool = False


class DiscoveryCheckRequest(BaseModel):
    events: list[CheckEventInput] = Field(..., max_length=500)


class DiscoveryCheckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    events: dict[str, CheckEventStatus]


# ── Health ────────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    environment: str
    providers: dict[str, Any]
