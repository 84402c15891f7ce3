"""Venue and pending venue edit models.

Venues start unverified when a non-admin submits them and move to verified
once an admin confirms the venue exists.  Non-admin edits to a venue never
touch the venue row directly; they are stored as a ``PendingVenueEdit``
holding only the proposed fields, and applied when an admin approves.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Social link columns shared by venues, venue edits and artists.
SOCIAL_FIELDS: tuple[str, ...] = (
    "instagram",
    "facebook",
    "twitter",
    "youtube",
    "spotify",
    "soundcloud",
    "bandcamp",
    "website",
)

# Venue columns a pending edit may propose.
VENUE_EDITABLE_FIELDS: tuple[str, ...] = (
    "name",
    "address",
    "city",
    "state",
    "zipcode",
    *SOCIAL_FIELDS,
)


class VenueEditStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SocialLinks(BaseModel):
    model_config = ConfigDict(frozen=True)

    instagram: str | None = None
    facebook: str | None = None
    twitter: str | None = None
    youtube: str | None = None
    spotify: str | None = None
    soundcloud: str | None = None
    bandcamp: str | None = None
    website: str | None = None


class Venue(BaseModel):
    """A venue; ``name`` is unique within its city."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str | None = None
    address: str | None = None
    city: str
    state: str
    zipcode: str | None = None
    social: SocialLinks = Field(default_factory=SocialLinks)
    verified: bool = False
    submitted_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class VenueCreate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    address: str | None = None
    zipcode: str | None = None
    social: SocialLinks = Field(default_factory=SocialLinks)


class VenueChanges(BaseModel):
    """Proposed venue changes; ``None`` means "leave as is"."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    twitter: str | None = None
    youtube: str | None = None
    spotify: str | None = None
    soundcloud: str | None = None
    bandcamp: str | None = None
    website: str | None = None

    def non_null(self) -> dict[str, str]:
        """The proposed fields that actually change something."""
        return {k: v for k, v in self.model_dump().items() if v is not None}


class PendingVenueEdit(BaseModel):
    """A user's proposed changes to a venue, awaiting admin review."""

    model_config = ConfigDict(frozen=True)

    id: int
    venue_id: int
    submitted_by: int
    changes: VenueChanges
    status: VenueEditStatus = VenueEditStatus.PENDING
    rejection_reason: str | None = None
    reviewed_by: int | None = None
    reviewed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    venue_name: str | None = None


class VenueCity(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str
    state: str
    venue_count: int


class FavoriteVenue(BaseModel):
    """A venue on a user's favorites list, with its upcoming show count."""

    model_config = ConfigDict(frozen=True)

    venue: Venue
    favorited_at: datetime
    upcoming_show_count: int = 0
