"""Per-user lists: saved shows, favorite venues and their upcoming shows."""

from __future__ import annotations

from fastapi import APIRouter, Query

from psychic_homily.api.dependencies import CurrentUserDep, EngagementServiceDep
from psychic_homily.api.schemas import (
    FavoriteVenuesResponse,
    SavedShowsResponse,
    ShowListResponse,
)

router = APIRouter(prefix="/api/v1/me", tags=["me"])


@router.get("/saved-shows", response_model=SavedShowsResponse)
async def saved_shows(
    user: CurrentUserDep,
    engagement: EngagementServiceDep,
    limit: int = Query(default=20, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> SavedShowsResponse:
    items, total = await engagement.get_saved_shows(user.id, limit, offset)
    return SavedShowsResponse(shows=items, total=total, limit=limit, offset=offset)


@router.get("/favorite-venues", response_model=FavoriteVenuesResponse)
async def favorite_venues(
    user: CurrentUserDep,
    engagement: EngagementServiceDep,
    limit: int = Query(default=20, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    timezone: str | None = Query(default=None, max_length=64),
) -> FavoriteVenuesResponse:
    items, total = await engagement.get_favorite_venues(
        user.id, limit, offset, timezone_name=timezone
    )
    return FavoriteVenuesResponse(venues=items, total=total, limit=limit, offset=offset)


@router.get("/favorite-venues/shows", response_model=ShowListResponse)
async def favorite_venue_shows(
    user: CurrentUserDep,
    engagement: EngagementServiceDep,
    limit: int = Query(default=20, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    timezone: str | None = Query(default=None, max_length=64),
) -> ShowListResponse:
    shows, total = await engagement.get_upcoming_shows_from_favorites(
        user.id, timezone_name=timezone, limit=limit, offset=offset
    )
    return ShowListResponse(shows=shows, total=total, limit=limit, offset=offset)
