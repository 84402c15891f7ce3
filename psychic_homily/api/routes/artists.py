"""Artist routes: search, lookup, an artist's shows and reports.

# Endpoints (literal routes before the ``{artist_id}`` catch-all):
#   GET  /api/v1/artists/search              Name search
#   GET  /api/v1/artists/slug/{slug}         Artist by slug
#   GET  /api/v1/artists/{id}                Artist by id
#   GET  /api/v1/artists/{id}/shows          upcoming | past | all
#   POST /api/v1/artists/{id}/report         Report an artist page
#   GET  /api/v1/artists/{id}/my-report      Caller's report, if any
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from psychic_homily.api.dependencies import (
    ArtistReportServiceDep,
    ArtistServiceDep,
    CurrentUserDep,
)
from psychic_homily.api.schemas import (
    ArtistReportResponse,
    ArtistResponse,
    ArtistSearchResponse,
    ArtistShowsResponse,
    ReportArtistRequest,
)
from psychic_homily.services.artist_service import TimeFilter

router = APIRouter(prefix="/api/v1/artists", tags=["artists"])


@router.get("/search", response_model=ArtistSearchResponse)
async def search_artists(
    artists: ArtistServiceDep,
    q: str = Query(default="", max_length=100),
    limit: int = Query(default=20, ge=1, le=100),
) -> ArtistSearchResponse:
    return ArtistSearchResponse(artists=await artists.search_artists(q, limit))


@router.get("/slug/{slug}", response_model=ArtistResponse)
async def get_artist_by_slug(slug: str, artists: ArtistServiceDep) -> ArtistResponse:
    return ArtistResponse(artist=await artists.get_artist_by_slug(slug))


@router.get("/{artist_id}", response_model=ArtistResponse)
async def get_artist(artist_id: int, artists: ArtistServiceDep) -> ArtistResponse:
    return ArtistResponse(artist=await artists.get_artist(artist_id))


@router.get("/{artist_id}/shows", response_model=ArtistShowsResponse)
async def artist_shows(
    artist_id: int,
    artists: ArtistServiceDep,
    time_filter: str = Query(default=TimeFilter.UPCOMING.value),
    timezone: str | None = Query(default=None, max_length=64),
    limit: int = Query(default=50, ge=1, le=200),
) -> ArtistShowsResponse:
    shows = await artists.get_shows_for_artist(
        artist_id, time_filter, timezone_name=timezone, limit=limit
    )
    return ArtistShowsResponse(artist_id=artist_id, time_filter=time_filter, shows=shows)


# ── Reports ───────────────────────────────────────────────────────────
@router.post("/{artist_id}/report", response_model=ArtistReportResponse, status_code=201)
async def report_artist(
    artist_id: int,
    body: ReportArtistRequest,
    user: CurrentUserDep,
    reports: ArtistReportServiceDep,
) -> ArtistReportResponse:
    report = await reports.create_report(user, artist_id, body.report_type, body.details)
    return ArtistReportResponse(report=report)


@router.get("/{artist_id}/my-report", response_model=ArtistReportResponse)
async def my_artist_report(
    artist_id: int, user: CurrentUserDep, reports: ArtistReportServiceDep
) -> ArtistReportResponse:
    return ArtistReportResponse(
        report=await reports.get_user_report_for_artist(user.id, artist_id)
    )
