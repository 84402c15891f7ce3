"""Venue routes: directory, submissions, proposed edits and favorites.

Endpoints:
  GET    /api/v1/venues                        Verified venues (paged)
  GET    /api/v1/venues/search?q=              Name search
  GET    /api/v1/venues/cities                 Cities with verified venues
  GET    /api/v1/venues/slug/{slug}            Venue by slug
  POST   /api/v1/venues                        Submit a venue
  DELETE /api/v1/venues/edits/{edit_id}        Cancel own pending edit
  GET    /api/v1/venues/{id}                   Venue by id
  PUT    /api/v1/venues/{id}                   Propose (or, for admins, apply) edits
  GET    /api/v1/venues/{id}/my-pending-edit   Caller's pending edit
  POST   /api/v1/venues/{id}/favorite          Favorite
  DELETE /api/v1/venues/{id}/favorite          Unfavorite
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Response

from psychic_homily.api.dependencies import (
    CurrentUserDep,
    EngagementServiceDep,
    OptionalUserDep,
    VenueServiceDep,
)
from psychic_homily.api.schemas import (
    CreateVenueRequest,
    FavoriteVenueResponse,
    PendingEditResponse,
    VenueCitiesResponse,
    VenueEditRequest,
    VenueEditResponse,
    VenueListResponse,
    VenueResponse,
    VenueSearchResponse,
)
from psychic_homily.models.venue import VenueChanges, VenueCreate

router = APIRouter(prefix="/api/v1/venues", tags=["venues"])


@router.get("", response_model=VenueListResponse)
async def list_venues(
    venues: VenueServiceDep,
    city: str | None = None,
    state: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> VenueListResponse:
    items, total = await venues.list_venues(city=city, state=state, limit=limit, offset=offset)
    return VenueListResponse(venues=items, total=total, limit=limit, offset=offset)


@router.get("/search", response_model=VenueSearchResponse)
async def search_venues(
    venues: VenueServiceDep,
    q: str = Query(default="", max_length=100),
    limit: int = Query(default=20, ge=1, le=100),
) -> VenueSearchResponse:
    return VenueSearchResponse(venues=await venues.search_venues(q, limit))


@router.get("/cities", response_model=VenueCitiesResponse)
async def venue_cities(venues: VenueServiceDep) -> VenueCitiesResponse:
    return VenueCitiesResponse(cities=await venues.get_venue_cities())


@router.get("/slug/{slug}", response_model=VenueResponse)
async def get_venue_by_slug(
    slug: str, venues: VenueServiceDep, engagement: EngagementServiceDep, user: OptionalUserDep
) -> VenueResponse:
    venue = await venues.get_venue_by_slug(slug)
    favorited = await engagement.is_venue_favorited(user.id, venue.id) if user else None
    return VenueResponse(venue=venue, is_favorited=favorited)


@router.post("", response_model=VenueResponse, status_code=201)
async def create_venue(
    body: CreateVenueRequest, user: CurrentUserDep, venues: VenueServiceDep
) -> VenueResponse:
    venue = await venues.create_venue(VenueCreate(**body.model_dump()), user)
    return VenueResponse(venue=venue)


@router.delete("/edits/{edit_id}", status_code=204)
async def cancel_venue_edit(edit_id: int, user: CurrentUserDep, venues: VenueServiceDep) -> Response:
    await venues.cancel_edit(edit_id, user)
    return Response(status_code=204)


@router.get("/{venue_id}", response_model=VenueResponse)
async def get_venue(
    venue_id: int, venues: VenueServiceDep, engagement: EngagementServiceDep, user: OptionalUserDep
) -> VenueResponse:
    venue = await venues.get_venue(venue_id)
    favorited = await engagement.is_venue_favorited(user.id, venue.id) if user else None
    return VenueResponse(venue=venue, is_favorited=favorited)


@router.put("/{venue_id}", response_model=VenueEditResponse)
async def edit_venue(
    venue_id: int, body: VenueEditRequest, user: CurrentUserDep, venues: VenueServiceDep
) -> VenueEditResponse:
    changes = VenueChanges(**body.model_dump(exclude_unset=True))
    venue, edit = await venues.create_pending_edit(venue_id, user, changes)
    return VenueEditResponse(
        status="applied" if edit is None else "pending", venue=venue, pending_edit=edit
    )


@router.get("/{venue_id}/my-pending-edit", response_model=PendingEditResponse)
async def my_pending_edit(
    venue_id: int, user: CurrentUserDep, venues: VenueServiceDep
) -> PendingEditResponse:
    await venues.get_venue(venue_id)
    return PendingEditResponse(
        pending_edit=await venues.get_pending_edit_for_venue(venue_id, user.id)
    )


@router.post("/{venue_id}/favorite", response_model=FavoriteVenueResponse)
async def favorite_venue(
    venue_id: int, user: CurrentUserDep, engagement: EngagementServiceDep
) -> FavoriteVenueResponse:
    favorited_at = await engagement.favorite_venue(user.id, venue_id)
    return FavoriteVenueResponse(venue_id=venue_id, favorited_at=favorited_at)


@router.delete("/{venue_id}/favorite", status_code=204)
async def unfavorite_venue(
    venue_id: int, user: CurrentUserDep, engagement: EngagementServiceDep
) -> Response:
    await engagement.unfavorite_venue(user.id, venue_id)
    return Response(status_code=204)
