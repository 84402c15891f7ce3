"""Admin routes: moderation queues, review actions, audit log and imports.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: API (FastAPI route handlers).
# Every endpoint depends on ``AdminUserDep`` (401 without a session,
# 403 for non-admins) before any service is touched.
#
# Endpoints:
#   GET  /api/v1/admin/shows/pending               Pending queue
#   GET  /api/v1/admin/shows/rejected              Rejected, searchable
#   GET  /api/v1/admin/shows                       All shows, filterable
#   POST /api/v1/admin/shows/{id}/approve          pending|rejected -> approved
#   POST /api/v1/admin/shows/{id}/reject           pending -> rejected
#   POST /api/v1/admin/shows/{id}/sold-out         Toggle sold-out flag
#   POST /api/v1/admin/shows/{id}/cancelled        Toggle cancelled flag
#   GET  /api/v1/admin/venues/unverified           Unverified venues
#   POST /api/v1/admin/venues/{id}/verify          Mark venue verified
#   GET  /api/v1/admin/venue-edits                 Pending venue edits
#   POST /api/v1/admin/venue-edits/{id}/approve    Apply proposed changes
#   POST /api/v1/admin/venue-edits/{id}/reject     Reject with reason
#   GET  /api/v1/admin/reports                     Pending show reports
#   POST /api/v1/admin/reports/{id}/dismiss        Dismiss report
#   POST /api/v1/admin/reports/{id}/resolve        Resolve (optionally flag show)
#   GET  /api/v1/admin/artist-reports              Pending artist reports
#   POST /api/v1/admin/artist-reports/{id}/dismiss Dismiss artist report
#   POST /api/v1/admin/artist-reports/{id}/resolve Resolve artist report
#   GET  /api/v1/admin/audit-logs                  Admin action history
#   GET  /api/v1/admin/stats                       Dashboard counters
#   POST /api/v1/admin/discovery/import            Import scraped events
#   POST /api/v1/admin/discovery/check             Which events exist already
#   POST /api/v1/admin/tokens                      Create API token (shown once)
#   GET  /api/v1/admin/tokens                      Caller's unrevoked tokens
#   DELETE /api/v1/admin/tokens/{id}               Revoke a token
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Response

from psychic_homily.api.dependencies import (
    AdminUserDep,
    ApiTokenServiceDep,
    ArtistReportServiceDep,
    AuditLogDep,
    DiscoveryServiceDep,
    ReportServiceDep,
    ShowServiceDep,
    StatsServiceDep,
    VenueServiceDep,
)
from psychic_homily.api.schemas import (
    ApiTokenCreatedResponse,
    ApiTokenListResponse,
    ApproveShowRequest,
    ArtistReportListResponse,
    ArtistReportResponse,
    AuditLogResponse,
    CreateApiTokenRequest,
    DiscoveryCheckRequest,
    DiscoveryCheckResponse,
    DiscoveryImportRequest,
    FlagRequest,
    PendingEditResponse,
    PendingEditsResponse,
    RejectRequest,
    ReportListResponse,
    ReportResponse,
    ReviewArtistReportRequest,
    ReviewReportRequest,
    ShowListResponse,
    ShowResponse,
    VenueListResponse,
    VenueResponse,
)
from psychic_homily.models.discovery import ImportResult
from psychic_homily.models.report import DashboardStats
from psychic_homily.models.show import ShowStatus

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


# ── Shows ─────────────────────────────────────────────────────────────
@router.get("/shows/pending", response_model=ShowListResponse)
async def pending_shows(
    _admin: AdminUserDep,
    shows: ShowServiceDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ShowListResponse:
    items, total = await shows.get_pending_shows(limit, offset)
    return ShowListResponse(shows=items, total=total, limit=limit, offset=offset)


@router.get("/shows/rejected", response_model=ShowListResponse)
async def rejected_shows(
    _admin: AdminUserDep,
    shows: ShowServiceDep,
    search: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ShowListResponse:
    items, total = await shows.get_rejected_shows(limit, offset, search)
    return ShowListResponse(shows=items, total=total, limit=limit, offset=offset)


@router.get("/shows", response_model=ShowListResponse)
async def all_shows(
    _admin: AdminUserDep,
    shows: ShowServiceDep,
    status: ShowStatus | None = None,
    city: str | None = None,
    state: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ShowListResponse:
    items, total = await shows.list_admin_shows(
        limit, offset, status=status, city=city, state=state
    )
    return ShowListResponse(shows=items, total=total, limit=limit, offset=offset)


@router.post("/shows/{show_id}/approve", response_model=ShowResponse)
async def approve_show(
    show_id: int,
    admin: AdminUserDep,
    shows: ShowServiceDep,
    body: ApproveShowRequest | None = None,
) -> ShowResponse:
    verify = body.verify_venues if body else False
    return ShowResponse(show=await shows.approve_show(show_id, admin, verify_venues=verify))


@router.post("/shows/{show_id}/reject", response_model=ShowResponse)
async def reject_show(
    show_id: int, body: RejectRequest, admin: AdminUserDep, shows: ShowServiceDep
) -> ShowResponse:
    return ShowResponse(show=await shows.reject_show(show_id, body.reason, admin))


@router.post("/shows/{show_id}/sold-out", response_model=ShowResponse)
async def set_sold_out(
    show_id: int, body: FlagRequest, admin: AdminUserDep, shows: ShowServiceDep
) -> ShowResponse:
    return ShowResponse(show=await shows.set_sold_out(show_id, body.value, admin))


@router.post("/shows/{show_id}/cancelled", response_model=ShowResponse)
async def set_cancelled(
    show_id: int, body: FlagRequest, admin: AdminUserDep, shows: ShowServiceDep
) -> ShowResponse:
    return ShowResponse(show=await shows.set_cancelled(show_id, body.value, admin))


# ── Venues ────────────────────────────────────────────────────────────
@router.get("/venues/unverified", response_model=VenueListResponse)
async def unverified_venues(
    _admin: AdminUserDep,
    venues: VenueServiceDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> VenueListResponse:
    items, total = await venues.get_unverified_venues(limit, offset)
    return VenueListResponse(venues=items, total=total, limit=limit, offset=offset)


@router.post("/venues/{venue_id}/verify", response_model=VenueResponse)
async def verify_venue(
    venue_id: int, admin: AdminUserDep, venues: VenueServiceDep
) -> VenueResponse:
    return VenueResponse(venue=await venues.verify_venue(venue_id, admin))


@router.get("/venue-edits", response_model=PendingEditsResponse)
async def pending_venue_edits(
    _admin: AdminUserDep,
    venues: VenueServiceDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> PendingEditsResponse:
    edits, total = await venues.get_pending_edits(limit, offset)
    return PendingEditsResponse(edits=edits, total=total, limit=limit, offset=offset)


@router.post("/venue-edits/{edit_id}/approve", response_model=VenueResponse)
async def approve_venue_edit(
    edit_id: int, admin: AdminUserDep, venues: VenueServiceDep
) -> VenueResponse:
    return VenueResponse(venue=await venues.approve_edit(edit_id, admin))


@router.post("/venue-edits/{edit_id}/reject", response_model=PendingEditResponse)
async def reject_venue_edit(
    edit_id: int, body: RejectRequest, admin: AdminUserDep, venues: VenueServiceDep
) -> PendingEditResponse:
    return PendingEditResponse(pending_edit=await venues.reject_edit(edit_id, admin, body.reason))


# ── Reports ───────────────────────────────────────────────────────────
@router.get("/reports", response_model=ReportListResponse)
async def pending_reports(
    _admin: AdminUserDep,
    reports: ReportServiceDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ReportListResponse:
    items, total = await reports.get_pending_reports(limit, offset)
    return ReportListResponse(reports=items, total=total, limit=limit, offset=offset)


@router.post("/reports/{report_id}/dismiss", response_model=ReportResponse)
async def dismiss_report(
    report_id: int,
    admin: AdminUserDep,
    reports: ReportServiceDep,
    body: ReviewReportRequest | None = None,
) -> ReportResponse:
    notes = body.notes if body else None
    return ReportResponse(report=await reports.dismiss_report(report_id, admin, notes))


@router.post("/reports/{report_id}/resolve", response_model=ReportResponse)
async def resolve_report(
    report_id: int,
    admin: AdminUserDep,
    reports: ReportServiceDep,
    body: ReviewReportRequest | None = None,
) -> ReportResponse:
    body = body or ReviewReportRequest()
    report = await reports.resolve_report(
        report_id, admin, body.notes, set_show_flag=body.set_show_flag
    )
    return ReportResponse(report=report)


@router.get("/artist-reports", response_model=ArtistReportListResponse)
async def pending_artist_reports(
    _admin: AdminUserDep,
    reports: ArtistReportServiceDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ArtistReportListResponse:
    items, total = await reports.get_pending_reports(limit, offset)
    return ArtistReportListResponse(reports=items, total=total, limit=limit, offset=offset)


@router.post("/artist-reports/{report_id}/dismiss", response_model=ArtistReportResponse)
async def dismiss_artist_report(
    report_id: int,
    admin: AdminUserDep,
    reports: ArtistReportServiceDep,
    body: ReviewArtistReportRequest | None = None,
) -> ArtistReportResponse:
    notes = body.notes if body else None
    return ArtistReportResponse(report=await reports.dismiss_report(report_id, admin, notes))


@router.post("/artist-reports/{report_id}/resolve", response_model=ArtistReportResponse)
async def resolve_artist_report(
    report_id: int,
    admin: AdminUserDep,
    reports: ArtistReportServiceDep,
    body: ReviewArtistReportRequest | None = None,
) -> ArtistReportResponse:
    notes = body.notes if body else None
    return ArtistReportResponse(report=await reports.resolve_report(report_id, admin, notes))

# ── Audit log and stats ───────────────────────────────────────────────
@router.get("/audit-logs", response_model=AuditLogResponse)
async def audit_logs(
    _admin: AdminUserDep,
    audit_log: AuditLogDep,
    entity_type: str | None = None,
    action: str | None = None,
    actor_id: int | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> AuditLogResponse:
    logs, total = await audit_log.get_audit_logs(
        limit, offset, entity_type=entity_type, action=action, actor_id=actor_id
    )
    return AuditLogResponse(logs=logs, total=total, limit=limit, offset=offset)


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(_admin: AdminUserDep, stats: StatsServiceDep) -> DashboardStats:
    return await stats.get_dashboard_stats()


# ── Discovery ─────────────────────────────────────────────────────────
@router.post("/discovery/import", response_model=ImportResult)
async def import_discovered_events(
    body: DiscoveryImportRequest, admin: AdminUserDep, discovery: DiscoveryServiceDep
) -> ImportResult:
    return await discovery.import_events(body.events, dry_run=body.dry_run, actor=admin)


@router.post("/discovery/check", response_model=DiscoveryCheckResponse)
async def check_discovered_events(
    body: DiscoveryCheckRequest, _admin: AdminUserDep, discovery: DiscoveryServiceDep
) -> DiscoveryCheckResponse:
    return DiscoveryCheckResponse(events=await discovery.check_events(body.events))


# ── API tokens ────────────────────────────────────────────────────────
@router.post("/tokens", response_model=ApiTokenCreatedResponse, status_code=201)
async def create_api_token(
    admin: AdminUserDep, tokens: ApiTokenServiceDep, body: CreateApiTokenRequest | None = None
) -> ApiTokenCreatedResponse:
    body = body or CreateApiTokenRequest()
    created = await tokens.create_token(admin, body.description, body.expiration_days)
    return ApiTokenCreatedResponse(token=created.token, api_token=created.api_token)


@router.get("/tokens", response_model=ApiTokenListResponse)
async def list_api_tokens(admin: AdminUserDep, tokens: ApiTokenServiceDep) -> ApiTokenListResponse:
    return ApiTokenListResponse(tokens=await tokens.list_tokens(admin))


@router.delete("/tokens/{token_id}", status_code=204)
async def revoke_api_token(
    token_id: int, admin: AdminUserDep, tokens: ApiTokenServiceDep
) -> Response:
    await tokens.revoke_token(admin, token_id)
    return Response(status_code=204)
