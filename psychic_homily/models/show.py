"""Show domain models: listings, their bill, and the moderation status.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph, no imports from upper layers).
#
# A ``Show`` is one event on one date.  It links to one or more venues and
# an ordered bill of artists; exactly one artist on the bill is the
# headliner (``set_type == HEADLINER``), which is what duplicate detection
# compares.
#
# Key design decisions:
#   - **Immutable state**: All models use ``frozen=True``.  Status changes
#     are persisted by the provider and the show is re-read, never mutated.
#   - **UTC everywhere**: ``event_date`` is always timezone-aware UTC.
#     Local-time interpretation (discovery imports, "today" filters)
#     happens in the services, never in the models.
#   - **Draft vs. Show**: ``ShowDraft`` is the creation input.  It carries
#     names rather than IDs for venues and artists because submissions
#     find-or-create both inside the same transaction as the show.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ─── Enums ───────────────────────────────────────────────────────────
class ShowStatus(str, Enum):
    """Moderation states for a show."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PRIVATE = "private"


class ShowSource(str, Enum):
    """Where a show came from."""

    USER = "user"
    DISCOVERY = "discovery"


class SetType(str, Enum):
    HEADLINER = "headliner"
    OPENER = "opener"


# ─── Relations ───────────────────────────────────────────────────────
class ShowVenue(BaseModel):
    """Summary of a venue as it appears on a show."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str | None = None
    city: str = ""
    state: str = ""
    address: str | None = None
    verified: bool = False


class ShowArtist(BaseModel):
    """An artist's slot on a show's bill."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str | None = None
    position: int = Field(default=0, ge=0, description="0-based order on the bill.")
    set_type: SetType = SetType.OPENER


# ─── Show ────────────────────────────────────────────────────────────
class Show(BaseModel):
    """A persisted show with its venues and ordered bill."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    slug: str | None = None
    event_date: datetime
    city: str | None = None
    state: str | None = None
    price: float | None = None
    age_requirement: str | None = None
    description: str | None = None
    status: ShowStatus = ShowStatus.PENDING
    submitted_by: int | None = None
    rejection_reason: str | None = None
    source: ShowSource = ShowSource.USER
    source_venue: str | None = None
    source_event_id: str | None = None
    scraped_at: datetime | None = None
    duplicate_of_show_id: int | None = None
    is_sold_out: bool = False
    is_cancelled: bool = False
    venues: list[ShowVenue] = Field(default_factory=list)
    artists: list[ShowArtist] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def headliner(self) -> ShowArtist | None:
        """The billed headliner, falling back to the first artist."""
        for artist in self.artists:
            if artist.set_type == SetType.HEADLINER:
                return artist
        ordered = sorted(self.artists, key=lambda a: a.position)
        return ordered[0] if ordered else None

    def is_owned_by(self, user_id: int | None) -> bool:
        return user_id is not None and self.submitted_by == user_id


# ─── Creation input ──────────────────────────────────────────────────
class VenueInput(BaseModel):
    """A venue referenced by a submission: an existing id or a name to find-or-create."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    name: str = ""
    city: str = ""
    state: str = ""
    address: str | None = None
    zipcode: str | None = None


class ArtistInput(BaseModel):
    """An artist referenced by a submission."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    name: str = ""
    is_headliner: bool | None = None


class ShowDraft(BaseModel):
    """Everything needed to create a show in one transaction."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    event_date: datetime
    city: str | None = None
    state: str | None = None
    price: float | None = None
    age_requirement: str | None = None
    description: str | None = None
    venues: list[VenueInput] = Field(default_factory=list)
    artists: list[ArtistInput] = Field(default_factory=list)
    submitted_by: int | None = None
    submitter_is_admin: bool = False
    is_private: bool = False
    source: ShowSource = ShowSource.USER
    source_venue: str | None = None
    source_event_id: str | None = None
    scraped_at: datetime | None = None
    duplicate_of_show_id: int | None = None

    def headliner_index(self) -> int:
        """Index of the headliner in ``artists``: explicit flag first, else 0."""
        for index, artist in enumerate(self.artists):
            if artist.is_headliner:
                return index
        return 0

    def headliner_name(self) -> str:
        if not self.artists:
            return ""
        return self.artists[self.headliner_index()].name


class ShowUpdate(BaseModel):
    """Editable show fields; ``None`` leaves a field untouched."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    event_date: datetime | None = None
    city: str | None = None
    state: str | None = None
    price: float | None = None
    age_requirement: str | None = None
    description: str | None = None


# ─── Query results ───────────────────────────────────────────────────
class UpcomingShowsPage(BaseModel):
    """One cursor page of upcoming shows."""

    model_config = ConfigDict(frozen=True)

    shows: list[Show] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


class ShowCity(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str
    state: str
    show_count: int


class SavedShow(BaseModel):
    """A show on a user's saved list."""

    model_config = ConfigDict(frozen=True)

    show: Show
    saved_at: datetime
