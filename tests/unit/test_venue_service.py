"""Unit tests for VenueService and the pending-edit review workflow."""

from __future__ import annotations

import pytest

from psychic_homily.models.venue import SocialLinks, VenueChanges, VenueCreate, VenueEditStatus
from psychic_homily.services.venue_service import VenueService
from psychic_homily.utils.errors import (
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
    VenueEditNotFoundError,
    VenueNotFoundError,
)


@pytest.fixture
def venue_service(venue_store, mock_notifier, audit_log):
    return VenueService(venue_store, notifier=mock_notifier, audit_log=audit_log)


@pytest.fixture
async def venue(venue_service, regular_user):
    return await venue_service.create_venue(
        VenueCreate(
            name="Valley Bar",
            city="Phoenix",
            state="AZ",
            social=SocialLinks(instagram="valleybarphx"),
        ),
        regular_user,
    )


# ─── Venues ───────────────────────────────────────────────────────

class TestVenues:
    async def test_user_venue_is_unverified(self, venue, mock_notifier):
        assert not venue.verified
        assert venue.slug == "valley-bar-phoenix-az"
        assert venue.social.instagram == "valleybarphx"
        mock_notifier.notify_new_venue.assert_awaited_once()

    async def test_admin_venue_is_verified(self, venue_service, admin_user):
        venue = await venue_service.create_venue(
            VenueCreate(name="Rialto", city="Tucson", state="AZ"), admin_user
        )
        assert venue.verified

    async def test_name_unique_within_city(self, venue_service, venue, regular_user):
        with pytest.raises(ConflictError):
            await venue_service.create_venue(
                VenueCreate(name="valley bar", city="PHOENIX", state="AZ"), regular_user
            )

    async def test_same_name_other_city_allowed(self, venue_service, venue, regular_user):
        other = await venue_service.create_venue(
            VenueCreate(name="Valley Bar", city="Tucson", state="AZ"), regular_user
        )
        assert other.id != venue.id

    async def test_find_or_create_requires_name_and_city(self, venue_service):
        with pytest.raises(ValidationError):
            await venue_service.find_or_create_venue(" ", "Phoenix", "AZ")

    async def test_find_or_create_reuses(self, venue_service, venue):
        found, created = await venue_service.find_or_create_venue("VALLEY BAR", "phoenix", "AZ")
        assert not created
        assert found.id == venue.id

    async def test_lookup_by_slug_and_missing(self, venue_service, venue):
        assert (await venue_service.get_venue_by_slug(venue.slug)).id == venue.id
        with pytest.raises(VenueNotFoundError):
            await venue_service.get_venue(999)

    async def test_search_and_cities(self, venue_service, venue):
        assert [v.id for v in await venue_service.search_venues("valley")] == [venue.id]
        assert await venue_service.search_venues("   ") == []
        cities = await venue_service.get_venue_cities()
        assert [(c.city, c.venue_count) for c in cities] == [("Phoenix", 1)]

    async def test_public_list_hides_unverified(self, venue_service, venue):
        venues, total = await venue_service.list_venues()
        assert total == 0
        unverified, total = await venue_service.get_unverified_venues()
        assert total == 1 and unverified[0].id == venue.id

    async def test_verify_venue(self, venue_service, venue, admin_user, regular_user, audit_log):
        with pytest.raises(PermissionDeniedError):
            await venue_service.verify_venue(venue.id, regular_user)

        verified = await venue_service.verify_venue(venue.id, admin_user)
        assert verified.verified
        with pytest.raises(InvalidTransitionError):
            await venue_service.verify_venue(venue.id, admin_user)

        logs, _ = await audit_log.get_audit_logs(action="verify_venue")
        assert logs[0].entity_id == venue.id


# ─── Pending edits ────────────────────────────────────────────────

class TestPendingEdits:
    async def test_user_edit_is_queued(self, venue_service, venue, regular_user, mock_notifier):
        current, edit = await venue_service.create_pending_edit(
            venue.id, regular_user, VenueChanges(address="130 N Central Ave")
        )
        assert current.address is None
        assert edit is not None
        assert edit.status == VenueEditStatus.PENDING
        assert edit.changes.non_null() == {"address": "130 N Central Ave"}
        mock_notifier.notify_pending_venue_edit.assert_awaited_once()

    async def test_resubmission_replaces_pending_edit(self, venue_service, venue, regular_user):
        _, first = await venue_service.create_pending_edit(
            venue.id, regular_user, VenueChanges(address="Old")
        )
        _, second = await venue_service.create_pending_edit(
            venue.id, regular_user, VenueChanges(address="New")
        )
        edits, total = await venue_service.get_pending_edits()
        assert total == 1
        assert edits[0].id == second.id
        mine = await venue_service.get_pending_edit_for_venue(venue.id, regular_user.id)
        assert mine.changes.address == "New"

    async def test_empty_changes_rejected(self, venue_service, venue, regular_user):
        with pytest.raises(ValidationError):
            await venue_service.create_pending_edit(venue.id, regular_user, VenueChanges())

    async def test_admin_edit_applies_directly(self, venue_service, venue, admin_user):
        updated, edit = await venue_service.create_pending_edit(
            venue.id, admin_user, VenueChanges(zipcode="85004", website="https://valleybar.com")
        )
        assert edit is None
        assert updated.zipcode == "85004"
        assert updated.social.website == "https://valleybar.com"

    async def test_approve_applies_changes(self, venue_service, venue, regular_user, admin_user):
        _, edit = await venue_service.create_pending_edit(
            venue.id, regular_user, VenueChanges(name="Valley Bar PHX", address="130 N Central")
        )
        updated = await venue_service.approve_edit(edit.id, admin_user)
        assert updated.name == "Valley Bar PHX"
        assert updated.address == "130 N Central"

        with pytest.raises(InvalidTransitionError):
            await venue_service.approve_edit(edit.id, admin_user)

    async def test_approve_requires_admin(self, venue_service, venue, regular_user):
        _, edit = await venue_service.create_pending_edit(
            venue.id, regular_user, VenueChanges(address="x")
        )
        with pytest.raises(PermissionDeniedError):
            await venue_service.approve_edit(edit.id, regular_user)

    async def test_reject_records_reason(self, venue_service, venue, regular_user, admin_user):
        _, edit = await venue_service.create_pending_edit(
            venue.id, regular_user, VenueChanges(address="x")
        )
        with pytest.raises(ValidationError):
            await venue_service.reject_edit(edit.id, admin_user, "")

        rejected = await venue_service.reject_edit(edit.id, admin_user, "address is wrong")
        assert rejected.status == VenueEditStatus.REJECTED
        assert rejected.rejection_reason == "address is wrong"
        assert rejected.reviewed_by == admin_user.id
        assert (await venue_service.get_venue(venue.id)).address is None

    async def test_cancel_own_edit(self, venue_service, venue, regular_user, make_user):
        _, edit = await venue_service.create_pending_edit(
            venue.id, regular_user, VenueChanges(address="x")
        )
        stranger = await make_user()
        with pytest.raises(PermissionDeniedError):
            await venue_service.cancel_edit(edit.id, stranger)

        await venue_service.cancel_edit(edit.id, regular_user)
        with pytest.raises(VenueEditNotFoundError):
            await venue_service.cancel_edit(edit.id, regular_user)

    async def test_edit_missing_venue(self, venue_service, regular_user):
        with pytest.raises(VenueNotFoundError):
            await venue_service.create_pending_edit(999, regular_user, VenueChanges(address="x"))
