"""Models exchanged with the discovery scraper's import endpoint.

Field aliases match the camelCase JSON the scraper posts
(``venueSlug``, ``showTime``...), while Python code uses snake_case.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DiscoveredEvent(BaseModel):
    """One event scraped from a venue calendar."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    title: str = ""
    date: str = Field(default="", description="YYYY-MM-DD or RFC3339.")
    venue: str = ""
    venue_slug: str = Field(default="", alias="venueSlug")
    image_url: str | None = Field(default=None, alias="imageUrl")
    doors_time: str | None = Field(default=None, alias="doorsTime")
    show_time: str | None = Field(default=None, alias="showTime", description='e.g. "7:00 pm".')
    ticket_url: str | None = Field(default=None, alias="ticketUrl")
    artists: list[str] = Field(default_factory=list)
    scraped_at: datetime | None = Field(default=None, alias="scrapedAt")


class DiscoveryVenue(BaseModel):
    """A venue the scraper knows about, keyed by slug in config.yaml."""

    model_config = ConfigDict(frozen=True)

    slug: str
    name: str
    city: str
    state: str
    address: str | None = None


class ImportResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    imported: int = 0
    duplicates: int = 0
    rejected: int = 0
    pending_review: int = 0
    errors: int = 0
    messages: list[str] = Field(default_factory=list)


class CheckEventInput(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    venue_slug: str = Field(alias="venueSlug")


class CheckEventStatus(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    exists: bool
    show_id: int | None = Field(default=None, serialization_alias="showId")
    status: str | None = None
