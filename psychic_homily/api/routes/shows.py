"""Show routes: submission, listings, owner edits, saves and reports.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: API (FastAPI route handlers).
#
# Endpoints (literal routes before the ``{show_id}`` catch-all):
#   POST   /api/v1/shows                       Submit a show
#   GET    /api/v1/shows/upcoming              Cursor-paged upcoming feed
#   GET    /api/v1/shows/cities                Cities with upcoming shows
#   GET    /api/v1/shows/mine                  Caller's submissions
#   GET    /api/v1/shows/slug/{slug}           Show by slug
#   GET    /api/v1/shows/{id}                  Show by id
#   PUT    /api/v1/shows/{id}                  Owner/admin edit
#   DELETE /api/v1/shows/{id}                  Owner/admin delete
#   POST   /api/v1/shows/{id}/unpublish        approved -> private
#   POST   /api/v1/shows/{id}/make-private     pending  -> private
#   POST   /api/v1/shows/{id}/publish          private  -> approved
#   POST   /api/v1/shows/{id}/save             Add to saved list
#   DELETE /api/v1/shows/{id}/save             Remove from saved list
#   POST   /api/v1/shows/{id}/report           Report a listing problem
#   GET    /api/v1/shows/{id}/my-report        Caller's report, if any
#
# Handlers translate HTTP into service calls and nothing else; every
# rule (status choice, duplicate detection, visibility) lives in the
# services.  Errors propagate to ErrorHandlingMiddleware.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Response

from psychic_homily.api.dependencies import (
    CurrentUserDep,
    EngagementServiceDep,
    OptionalUserDep,
    ReportServiceDep,
    ShowServiceDep,
)
from psychic_homily.api.schemas import (
    CreateShowRequest,
    ReportResponse,
    ReportShowRequest,
    SaveShowResponse,
    ShowCitiesResponse,
    ShowListResponse,
    ShowResponse,
    UpcomingShowsResponse,
    UpdateShowRequest,
)
from psychic_homily.models.show import ArtistInput, ShowDraft, ShowUpdate, VenueInput
from psychic_homily.utils.errors import PermissionDeniedError

router = APIRouter(prefix="/api/v1/shows", tags=["shows"])


@router.post("", response_model=ShowResponse, status_code=201)
async def create_show(
    body: CreateShowRequest, user: CurrentUserDep, shows: ShowServiceDep
) -> ShowResponse:
    draft = ShowDraft(
        title=body.title,
        event_date=body.event_date,
        city=body.city,
        state=body.state,
        price=body.price,
        age_requirement=body.age_requirement,
        description=body.description,
        venues=[VenueInput(**v.model_dump()) for v in body.venues],
        artists=[ArtistInput(**a.model_dump()) for a in body.artists],
        submitted_by=user.id,
        submitter_is_admin=user.is_admin,
        is_private=body.is_private,
    )
    return ShowResponse(show=await shows.create_show(draft))


@router.get("/upcoming", response_model=UpcomingShowsResponse)
async def upcoming_shows(
    shows: ShowServiceDep,
    user: OptionalUserDep,
    timezone: str | None = Query(default=None, max_length=64),
    cursor: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    city: str | None = None,
    state: str | None = None,
    include_non_approved: bool = False,
) -> UpcomingShowsResponse:
    if include_non_approved and (user is None or not user.is_admin):
        raise PermissionDeniedError("admin access required", code="ADMIN_REQUIRED")
    page = await shows.get_upcoming_shows(
        timezone_name=timezone,
        cursor=cursor,
        limit=limit,
        include_non_approved=include_non_approved,
        city=city,
        state=state,
    )
    return UpcomingShowsResponse(
        shows=page.shows,
        timezone=timezone or shows.default_timezone,
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/cities", response_model=ShowCitiesResponse)
async def show_cities(
    shows: ShowServiceDep, timezone: str | None = Query(default=None, max_length=64)
) -> ShowCitiesResponse:
    return ShowCitiesResponse(cities=await shows.get_show_cities(timezone))


@router.get("/mine", response_model=ShowListResponse)
async def my_submissions(
    user: CurrentUserDep,
    shows: ShowServiceDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ShowListResponse:
    items, total = await shows.list_user_submissions(user.id, limit, offset)
    return ShowListResponse(shows=items, total=total, limit=limit, offset=offset)


@router.get("/slug/{slug}", response_model=ShowResponse)
async def get_show_by_slug(
    slug: str, shows: ShowServiceDep, engagement: EngagementServiceDep, user: OptionalUserDep
) -> ShowResponse:
    show = await shows.get_show_by_slug(slug, viewer=user)
    is_saved = await engagement.is_show_saved(user.id, show.id) if user else None
    return ShowResponse(show=show, is_saved=is_saved)


@router.get("/{show_id}", response_model=ShowResponse)
async def get_show(
    show_id: int, shows: ShowServiceDep, engagement: EngagementServiceDep, user: OptionalUserDep
) -> ShowResponse:
    show = await shows.get_show(show_id, viewer=user)
    is_saved = await engagement.is_show_saved(user.id, show.id) if user else None
    return ShowResponse(show=show, is_saved=is_saved)


@router.put("/{show_id}", response_model=ShowResponse)
async def update_show(
    show_id: int, body: UpdateShowRequest, user: CurrentUserDep, shows: ShowServiceDep
) -> ShowResponse:
    updates = ShowUpdate(**body.model_dump(exclude_unset=True))
    return ShowResponse(show=await shows.update_show(show_id, updates, user))


@router.delete("/{show_id}", status_code=204)
async def delete_show(show_id: int, user: CurrentUserDep, shows: ShowServiceDep) -> Response:
    await shows.delete_show(show_id, user)
    return Response(status_code=204)


# ── Owner transitions ─────────────────────────────────────────────────
@router.post("/{show_id}/unpublish", response_model=ShowResponse)
async def unpublish_show(show_id: int, user: CurrentUserDep, shows: ShowServiceDep) -> ShowResponse:
    return ShowResponse(show=await shows.unpublish_show(show_id, user))


@router.post("/{show_id}/make-private", response_model=ShowResponse)
async def make_show_private(
    show_id: int, user: CurrentUserDep, shows: ShowServiceDep
) -> ShowResponse:
    return ShowResponse(show=await shows.make_private(show_id, user))


@router.post("/{show_id}/publish", response_model=ShowResponse)
async def publish_show(show_id: int, user: CurrentUserDep, shows: ShowServiceDep) -> ShowResponse:
    return ShowResponse(show=await shows.publish_show(show_id, user))


# ── Saved list ────────────────────────────────────────────────────────
@router.post("/{show_id}/save", response_model=SaveShowResponse)
async def save_show(
    show_id: int, user: CurrentUserDep, engagement: EngagementServiceDep
) -> SaveShowResponse:
    saved_at = await engagement.save_show(user.id, show_id)
    return SaveShowResponse(show_id=show_id, saved_at=saved_at)


@router.delete("/{show_id}/save", status_code=204)
async def unsave_show(
    show_id: int, user: CurrentUserDep, engagement: EngagementServiceDep
) -> Response:
    await engagement.unsave_show(user.id, show_id)
    return Response(status_code=204)


# ── Reports ───────────────────────────────────────────────────────────
@router.post("/{show_id}/report", response_model=ReportResponse, status_code=201)
async def report_show(
    show_id: int, body: ReportShowRequest, user: CurrentUserDep, reports: ReportServiceDep
) -> ReportResponse:
    report = await reports.create_report(user, show_id, body.report_type, body.details)
    return ReportResponse(report=report)


@router.get("/{show_id}/my-report", response_model=ReportResponse)
async def my_report(
    show_id: int, user: CurrentUserDep, reports: ReportServiceDep
) -> ReportResponse:
    return ReportResponse(report=await reports.get_user_report_for_show(user.id, show_id))
