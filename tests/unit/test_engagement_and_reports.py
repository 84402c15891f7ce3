"""Unit tests for saved shows, favorite venues, show reports, audit log and stats."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from psychic_homily.interfaces.report_provider import IAuditLogProvider
from psychic_homily.models.report import ReportStatus, ReportType
from psychic_homily.services.admin_stats_service import AdminStatsService
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.services.engagement_service import EngagementService
from psychic_homily.services.show_report_service import ShowReportService
from psychic_homily.utils.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ReportNotFoundError,
    ShowNotFoundError,
    ValidationError,
    VenueNotFoundError,
)
from tests.helpers import FUTURE, make_draft


@pytest.fixture
def engagement(engagement_store, show_store, venue_store):
    return EngagementService(engagement_store, show_store, venue_store)


@pytest.fixture
def reports(report_store, show_store, mock_notifier, audit_log):
    return ShowReportService(report_store, show_store, notifier=mock_notifier, audit_log=audit_log)


@pytest.fixture
async def approved_show(show_service, admin_user):
    return await show_service.create_show(
        make_draft(submitted_by=admin_user.id, submitter_is_admin=True)
    )


@pytest.fixture
async def pending_show(show_service, make_user):
    owner = await make_user("owner@example.com")
    return await show_service.create_show(
        make_draft("Pending Band", venue="The Rebel Lounge", submitted_by=owner.id)
    )


# ─── Saved shows ──────────────────────────────────────────────────

class TestSavedShows:
    async def test_save_and_list(self, engagement, regular_user, approved_show):
        await engagement.save_show(regular_user.id, approved_show.id)
        # Saving again only refreshes the timestamp.
        await engagement.save_show(regular_user.id, approved_show.id)

        saved, total = await engagement.get_saved_shows(regular_user.id)
        assert total == 1
        assert saved[0].show.id == approved_show.id
        assert await engagement.is_show_saved(regular_user.id, approved_show.id)
        assert await engagement.get_saved_show_ids(
            regular_user.id, [approved_show.id, 999]
        ) == {approved_show.id}

    async def test_unsave(self, engagement, regular_user, approved_show):
        await engagement.save_show(regular_user.id, approved_show.id)
        await engagement.unsave_show(regular_user.id, approved_show.id)
        assert not await engagement.is_show_saved(regular_user.id, approved_show.id)

        with pytest.raises(NotFoundError) as exc_info:
            await engagement.unsave_show(regular_user.id, approved_show.id)
        assert exc_info.value.code == "SHOW_NOT_SAVED"

    async def test_cannot_save_someone_elses_pending_show(
        self, engagement, regular_user, pending_show
    ):
        with pytest.raises(ShowNotFoundError):
            await engagement.save_show(regular_user.id, pending_show.id)

    async def test_owner_may_save_own_pending_show(self, engagement, pending_show):
        await engagement.save_show(pending_show.submitted_by, pending_show.id)
        assert await engagement.is_show_saved(pending_show.submitted_by, pending_show.id)

    async def test_missing_show(self, engagement, regular_user):
        with pytest.raises(ShowNotFoundError):
            await engagement.save_show(regular_user.id, 999)


# ─── Favorite venues ──────────────────────────────────────────────

class TestFavoriteVenues:
    async def test_favorites_with_upcoming_counts(
        self, engagement, show_service, regular_user, admin_user, approved_show
    ):
        await show_service.create_show(
            make_draft(
                "Band of Horses",
                event_date=FUTURE + timedelta(days=3),
                submitted_by=admin_user.id,
                submitter_is_admin=True,
            )
        )
        venue_id = approved_show.venues[0].id
        await engagement.favorite_venue(regular_user.id, venue_id)
        assert await engagement.is_venue_favorited(regular_user.id, venue_id)

        favorites, total = await engagement.get_favorite_venues(regular_user.id)
        assert total == 1
        assert favorites[0].venue.name == "Valley Bar"
        assert favorites[0].upcoming_show_count == 2

    async def test_upcoming_from_favorites(
        self, engagement, show_service, regular_user, admin_user, approved_show
    ):
        await show_service.create_show(
            make_draft(
                "Elsewhere Band",
                venue="Crescent Ballroom",
                submitted_by=admin_user.id,
                submitter_is_admin=True,
            )
        )
        assert await engagement.get_upcoming_shows_from_favorites(regular_user.id) == ([], 0)

        await engagement.favorite_venue(regular_user.id, approved_show.venues[0].id)
        shows, total = await engagement.get_upcoming_shows_from_favorites(regular_user.id)
        assert total == 1
        assert [s.id for s in shows] == [approved_show.id]

    async def test_unfavorite(self, engagement, regular_user, approved_show):
        venue_id = approved_show.venues[0].id
        await engagement.favorite_venue(regular_user.id, venue_id)
        await engagement.unfavorite_venue(regular_user.id, venue_id)
        with pytest.raises(NotFoundError):
            await engagement.unfavorite_venue(regular_user.id, venue_id)

    async def test_missing_venue(self, engagement, regular_user):
        with pytest.raises(VenueNotFoundError):
            await engagement.favorite_venue(regular_user.id, 999)


# ─── Reports ──────────────────────────────────────────────────────

class TestReports:
    async def test_create(self, reports, regular_user, approved_show, mock_notifier):
        report = await reports.create_report(
            regular_user, approved_show.id, "sold_out", "  Box office says sold out  "
        )
        assert report.report_type == ReportType.SOLD_OUT
        assert report.details == "Box office says sold out"
        assert report.status == ReportStatus.PENDING
        mock_notifier.notify_show_report.assert_awaited_once()
        assert (await reports.get_user_report_for_show(regular_user.id, approved_show.id)).id == report.id

    async def test_invalid_type(self, reports, regular_user, approved_show):
        with pytest.raises(ValidationError) as exc_info:
            await reports.create_report(regular_user, approved_show.id, "spam")
        assert exc_info.value.code == "INVALID_REPORT_TYPE"

    async def test_details_too_long(self, reports, regular_user, approved_show):
        with pytest.raises(ValidationError):
            await reports.create_report(regular_user, approved_show.id, "inaccurate", "x" * 2001)

    async def test_one_report_per_user_and_show(self, reports, regular_user, approved_show):
        await reports.create_report(regular_user, approved_show.id, ReportType.CANCELLED)
        with pytest.raises(ConflictError) as exc_info:
            await reports.create_report(regular_user, approved_show.id, ReportType.INACCURATE)
        assert exc_info.value.code == "REPORT_EXISTS"

    async def test_missing_show(self, reports, regular_user):
        with pytest.raises(ShowNotFoundError):
            await reports.create_report(regular_user, 999, "cancelled")

    async def test_dismiss(self, reports, regular_user, admin_user, approved_show, audit_log):
        report = await reports.create_report(regular_user, approved_show.id, "cancelled")
        with pytest.raises(PermissionDeniedError):
            await reports.dismiss_report(report.id, regular_user)

        dismissed = await reports.dismiss_report(report.id, admin_user, "still on")
        assert dismissed.status == ReportStatus.DISMISSED
        assert dismissed.admin_notes == "still on"
        assert dismissed.reviewed_by == admin_user.id

        with pytest.raises(InvalidTransitionError):
            await reports.resolve_report(report.id, admin_user)
        logs, _ = await audit_log.get_audit_logs(action="dismiss_report")
        assert logs[0].metadata["show_id"] == approved_show.id

    async def test_resolve_sets_show_flag(
        self, reports, regular_user, admin_user, approved_show, show_store
    ):
        report = await reports.create_report(regular_user, approved_show.id, "sold_out")
        resolved = await reports.resolve_report(report.id, admin_user, set_show_flag=True)
        assert resolved.status == ReportStatus.RESOLVED

        show = await show_store.get_show(approved_show.id)
        assert show.is_sold_out
        assert not show.is_cancelled

    async def test_resolve_without_flag(
        self, reports, regular_user, admin_user, approved_show, show_store
    ):
        report = await reports.create_report(regular_user, approved_show.id, "cancelled")
        await reports.resolve_report(report.id, admin_user, notes="fixed listing")
        assert not (await show_store.get_show(approved_show.id)).is_cancelled

    async def test_inaccurate_has_no_flag(
        self, reports, regular_user, admin_user, approved_show, show_store
    ):
        report = await reports.create_report(regular_user, approved_show.id, "inaccurate")
        await reports.resolve_report(report.id, admin_user, set_show_flag=True)
        show = await show_store.get_show(approved_show.id)
        assert not show.is_sold_out and not show.is_cancelled

    async def test_pending_queue(self, reports, regular_user, make_user, approved_show):
        other = await make_user()
        await reports.create_report(regular_user, approved_show.id, "cancelled")
        await reports.create_report(other, approved_show.id, "sold_out")
        pending, total = await reports.get_pending_reports()
        assert total == 2
        assert {r.show_title for r in pending} == {approved_show.title}

    async def test_unknown_report(self, reports, admin_user):
        with pytest.raises(ReportNotFoundError):
            await reports.dismiss_report(999, admin_user)


# ─── Audit log and stats ──────────────────────────────────────────

class TestAuditLog:
    async def test_filters(self, audit_log, admin_user, regular_user):
        await audit_log.log_action(admin_user.id, "approve_show", "show", 1, {"title": "a"})
        await audit_log.log_action(admin_user.id, "reject_show", "show", 2)
        await audit_log.log_action(regular_user.id, "verify_venue", "venue", 3)

        shows, total = await audit_log.get_audit_logs(entity_type="show")
        assert total == 2
        assert [e.action for e in shows] == ["reject_show", "approve_show"]
        assert shows[1].metadata == {"title": "a"}
        assert shows[0].actor_email == "admin@example.com"

        mine, total = await audit_log.get_audit_logs(actor_id=regular_user.id)
        assert total == 1 and mine[0].entity_type == "venue"

    async def test_write_failures_are_swallowed(self):
        store = AsyncMock(spec=IAuditLogProvider)
        store.log_action.side_effect = RuntimeError("disk full")
        service = AuditLogService(store)
        assert await service.log_action(1, "approve_show", "show", 1) is None


class TestDashboardStats:
    async def test_counts(self, stats_store, approved_show, pending_show):
        stats = await AdminStatsService(stats_store).get_dashboard_stats()
        assert stats.pending_shows == 1
        assert stats.total_shows == 1
        assert stats.unverified_venues == 1
        assert stats.total_venues == 1
        assert stats.total_artists == 2
        assert stats.total_users == 2
        assert stats.shows_submitted_last_7_days == 2
        assert stats.users_registered_last_7_days == 2
        assert stats.pending_reports == 0
