"""Artist lookups and per-artist show listings."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

import structlog

from psychic_homily.interfaces.artist_provider import IArtistProvider
from psychic_homily.interfaces.show_provider import IShowProvider
from psychic_homily.models.artist import Artist
from psychic_homily.models.show import Show, ShowStatus
from psychic_homily.utils.dates import start_of_today
from psychic_homily.utils.errors import ArtistNotFoundError, ValidationError

logger = structlog.get_logger(logger_name=__name__)


class TimeFilter(str, Enum):
    UPCOMING = "upcoming"
    PAST = "past"
    ALL = "all"


class ArtistService:
    def __init__(
        self,
        artist_store: IArtistProvider,
        show_store: IShowProvider,
        *,
        default_timezone: str = "America/Phoenix",
    ) -> None:
        self._artist_store = artist_store
        self._show_store = show_store
        self._default_timezone = default_timezone

    async def find_or_create_artist(self, name: str) -> tuple[Artist, bool]:
        if not name or not name.strip():
            raise ValidationError("artist name is required", code="ARTIST_REQUIRED")
        artist, created = await self._artist_store.find_or_create_artist(name)
        if created:
            logger.info("artist_created", artist_id=artist.id, slug=artist.slug)
        return artist, created

    async def get_artist(self, artist_id: int) -> Artist:
        artist = await self._artist_store.get_artist(artist_id)
        if artist is None:
            raise ArtistNotFoundError(artist_id)
        return artist

    async def get_artist_by_slug(self, slug: str) -> Artist:
        artist = await self._artist_store.get_artist_by_slug(slug)
        if artist is None:
            raise ArtistNotFoundError(slug)
        return artist

    async def search_artists(self, query: str, limit: int = 20) -> list[Artist]:
        query = (query or "").strip()
        if not query:
            return []
        return await self._artist_store.search_artists(query, max(1, min(limit, 100)))

    async def get_shows_for_artist(
        self,
        artist_id: int,
        time_filter: TimeFilter | str = TimeFilter.UPCOMING,
        *,
        timezone_name: str | None = None,
        limit: int = 50,
        now: datetime | None = None,
    ) -> list[Show]:
        """Approved shows on the artist's bill.

        ``past`` lists most recent first; ``upcoming`` and ``all`` list in
        date order.  The upcoming/past boundary is midnight today in
        ``timezone_name``.
        """
        try:
            time_filter = TimeFilter(time_filter)
        except ValueError as exc:
            raise ValidationError(
                f"time filter must be one of: {', '.join(t.value for t in TimeFilter)}",
                code="INVALID_TIME_FILTER",
            ) from exc
        await self.get_artist(artist_id)

        boundary = start_of_today(timezone_name or self._default_timezone, now)
        starts_after = boundary if time_filter == TimeFilter.UPCOMING else None
        ends_before = boundary if time_filter == TimeFilter.PAST else None
        return await self._show_store.get_shows_for_artist(
            artist_id,
            statuses=[ShowStatus.APPROVED],
            starts_after=starts_after,
            ends_before=ends_before,
            limit=max(1, min(limit, 200)),
        )
