"""Saved shows and favorite venues for signed-in users."""

from __future__ import annotations

from datetime import datetime

import structlog

from psychic_homily.interfaces.engagement_provider import IEngagementProvider
from psychic_homily.interfaces.show_provider import IShowProvider
from psychic_homily.interfaces.venue_provider import IVenueProvider
from psychic_homily.models.show import SavedShow, Show, ShowStatus
from psychic_homily.models.venue import FavoriteVenue
from psychic_homily.utils.dates import start_of_today
from psychic_homily.utils.errors import NotFoundError, ShowNotFoundError, VenueNotFoundError

logger = structlog.get_logger(logger_name=__name__)

_MAX_PAGE_SIZE = 100


def _clamp(limit: int) -> int:
    return 20 if limit <= 0 else min(limit, _MAX_PAGE_SIZE)


class EngagementService:
    """Per-user saved-show and favorite-venue lists.

    Lists are hydrated here: the engagement provider only knows ids and
    timestamps, the show and venue providers supply the records.
    """

    def __init__(
        self,
        engagement_store: IEngagementProvider,
        show_store: IShowProvider,
        venue_store: IVenueProvider,
        *,
        default_timezone: str = "America/Phoenix",
    ) -> None:
        self._engagement = engagement_store
        self._show_store = show_store
        self._venue_store = venue_store
        self._default_timezone = default_timezone

    # ── Saved shows ────────────────────────────────────────────────────

    async def save_show(self, user_id: int, show_id: int) -> datetime:
        show = await self._show_store.get_show(show_id)
        if show is None or (show.status != ShowStatus.APPROVED and not show.is_owned_by(user_id)):
            raise ShowNotFoundError(show_id)
        saved_at = await self._engagement.save_show(user_id, show_id)
        logger.info("show_saved", user_id=user_id, show_id=show_id)
        return saved_at

    async def unsave_show(self, user_id: int, show_id: int) -> None:
        if not await self._engagement.unsave_show(user_id, show_id):
            raise NotFoundError("show is not in your saved list", code="SHOW_NOT_SAVED")
        logger.info("show_unsaved", user_id=user_id, show_id=show_id)

    async def get_saved_shows(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> tuple[list[SavedShow], int]:
        entries, total = await self._engagement.list_saved_shows(
            user_id, _clamp(limit), max(0, offset)
        )
        shows = await self._show_store.get_shows_by_ids([show_id for show_id, _ in entries])
        by_id = {show.id: show for show in shows}
        saved = [
            SavedShow(show=by_id[show_id], saved_at=saved_at)
            for show_id, saved_at in entries
            if show_id in by_id
        ]
        return saved, total

    async def is_show_saved(self, user_id: int, show_id: int) -> bool:
        return await self._engagement.is_show_saved(user_id, show_id)

    async def get_saved_show_ids(self, user_id: int, show_ids: list[int]) -> set[int]:
        return await self._engagement.get_saved_show_ids(user_id, show_ids)

    # ── Favorite venues ────────────────────────────────────────────────

    async def favorite_venue(self, user_id: int, venue_id: int) -> datetime:
        if await self._venue_store.get_venue(venue_id) is None:
            raise VenueNotFoundError(venue_id)
        favorited_at = await self._engagement.favorite_venue(user_id, venue_id)
        logger.info("venue_favorited", user_id=user_id, venue_id=venue_id)
        return favorited_at

    async def unfavorite_venue(self, user_id: int, venue_id: int) -> None:
        if not await self._engagement.unfavorite_venue(user_id, venue_id):
            raise NotFoundError("venue is not in your favorites", code="VENUE_NOT_FAVORITED")
        logger.info("venue_unfavorited", user_id=user_id, venue_id=venue_id)

    async def is_venue_favorited(self, user_id: int, venue_id: int) -> bool:
        return await self._engagement.is_venue_favorited(user_id, venue_id)

    async def get_favorite_venues(
        self,
        user_id: int,
        limit: int = 20,
        offset: int = 0,
        *,
        timezone_name: str | None = None,
        now: datetime | None = None,
    ) -> tuple[list[FavoriteVenue], int]:
        entries, total = await self._engagement.list_favorite_venues(
            user_id, _clamp(limit), max(0, offset)
        )
        start = start_of_today(timezone_name or self._default_timezone, now)
        favorites: list[FavoriteVenue] = []
        for venue_id, favorited_at in entries:
            venue = await self._venue_store.get_venue(venue_id)
            if venue is None:
                continue
            upcoming = await self._show_store.count_upcoming_at_venues(
                [venue_id], start, [ShowStatus.APPROVED]
            )
            favorites.append(
                FavoriteVenue(venue=venue, favorited_at=favorited_at, upcoming_show_count=upcoming)
            )
        return favorites, total

    async def get_upcoming_shows_from_favorites(
        self,
        user_id: int,
        *,
        timezone_name: str | None = None,
        limit: int = 20,
        offset: int = 0,
        now: datetime | None = None,
    ) -> tuple[list[Show], int]:
        """Approved upcoming shows at any favorited venue, soonest first."""
        venue_ids = await self._engagement.get_favorite_venue_ids(user_id)
        if not venue_ids:
            return [], 0
        limit, offset = _clamp(limit), max(0, offset)
        start = start_of_today(timezone_name or self._default_timezone, now)
        total = await self._show_store.count_upcoming_at_venues(
            venue_ids, start, [ShowStatus.APPROVED]
        )
        shows = await self._show_store.get_upcoming_shows(
            start=start,
            statuses=[ShowStatus.APPROVED],
            exclude_statuses=None,
            after=None,
            limit=offset + limit,
            venue_ids=venue_ids,
        )
        return shows[offset:], total
