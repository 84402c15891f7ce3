"""Unit tests for SQLiteShowProvider.

Covers the single-transaction create (venues, artists, slug), duplicate
detection inside that transaction, guarded status transitions and the
listing queries, against a temporary SQLite database.  The last tests check
that every store reports a row missing on reload as not found.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from psychic_homily.models.show import ArtistInput, SetType, ShowSource, ShowStatus, VenueInput
from psychic_homily.utils.dates import utc_day_bounds
from psychic_homily.utils.errors import (
    ArtistNotFoundError,
    ConflictError,
    DuplicateShowError,
    UserNotFoundError,
    ValidationError,
    VenueNotFoundError,
)
from tests.helpers import FUTURE, make_draft


def _window(draft):
    return utc_day_bounds(draft.event_date)


# ─── Initialization ───────────────────────────────────────────────

async def test_provider_name(show_store):
    assert show_store.get_provider_name() == "sqlite_show"


async def test_double_initialize_is_idempotent(show_store):
    await show_store.initialize()


# ─── Create ───────────────────────────────────────────────────────

async def test_create_show_creates_venue_and_bill(show_store, venue_store):
    draft = make_draft(openers=("Opener One", "Opener Two"), title="Black Keys Live")
    show = await show_store.create_show(draft, ShowStatus.PENDING)

    assert show.id > 0
    assert show.title == "Black Keys Live"
    assert show.status == ShowStatus.PENDING
    assert show.slug == f"{FUTURE:%Y-%m-%d}-the-black-keys-at-valley-bar"
    assert [v.name for v in show.venues] == ["Valley Bar"]
    assert [a.name for a in show.artists] == ["The Black Keys", "Opener One", "Opener Two"]
    assert show.artists[0].set_type == SetType.HEADLINER
    assert all(a.set_type == SetType.OPENER for a in show.artists[1:])
    # City and state fall back to the first venue.
    assert (show.city, show.state) == ("Phoenix", "AZ")

    venue = await venue_store.find_venue_by_name("valley bar", "phoenix")
    assert venue is not None
    assert not venue.verified


async def test_create_reuses_existing_venue_and_artist(show_store):
    first = await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    later = make_draft(
        headliner="the black keys",
        venue="VALLEY BAR",
        event_date=FUTURE + timedelta(days=7),
    )
    second = await show_store.create_show(later, ShowStatus.APPROVED)

    assert second.venues[0].id == first.venues[0].id
    assert second.artists[0].id == first.artists[0].id


async def test_admin_submission_verifies_new_venue(show_store):
    show = await show_store.create_show(
        make_draft(submitter_is_admin=True), ShowStatus.APPROVED
    )
    assert show.venues[0].verified


async def test_admin_submission_verifies_existing_venue_by_id(show_store, venue_store):
    first = await show_store.create_show(make_draft(), ShowStatus.PENDING)
    venue_id = first.venues[0].id
    draft = make_draft(event_date=FUTURE + timedelta(days=1), submitter_is_admin=True)
    draft = draft.model_copy(update={"venues": [VenueInput(id=venue_id)]})
    await show_store.create_show(draft, ShowStatus.APPROVED)

    assert (await venue_store.get_venue(venue_id)).verified


async def test_unknown_venue_id_raises(show_store):
    draft = make_draft().model_copy(update={"venues": [VenueInput(id=9999)]})
    with pytest.raises(VenueNotFoundError):
        await show_store.create_show(draft, ShowStatus.PENDING)


async def test_missing_artists_raises(show_store):
    draft = make_draft().model_copy(update={"artists": []})
    with pytest.raises(ValidationError):
        await show_store.create_show(draft, ShowStatus.PENDING)


async def test_explicit_headliner_flag(show_store):
    draft = make_draft().model_copy(
        update={
            "artists": [
                ArtistInput(name="Support Act"),
                ArtistInput(name="Main Act", is_headliner=True),
            ]
        }
    )
    show = await show_store.create_show(draft, ShowStatus.PENDING)
    assert show.headliner.name == "Main Act"
    assert show.slug.startswith(f"{FUTURE:%Y-%m-%d}-main-act-at-")


async def test_slug_collision_gets_suffix(show_store):
    first = await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    # No duplicate window: the second row is allowed through.
    second = await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    assert second.slug == f"{first.slug}-2"


async def test_source_pair_is_unique(show_store):
    draft = make_draft(
        source=ShowSource.DISCOVERY, source_venue="valley-bar", source_event_id="evt-1"
    )
    show = await show_store.create_show(draft, ShowStatus.APPROVED)
    assert show.scraped_at is not None
    assert (await show_store.get_show_by_source("valley-bar", "evt-1")).id == show.id

    again = make_draft(
        headliner="Someone Else",
        source=ShowSource.DISCOVERY,
        source_venue="valley-bar",
        source_event_id="evt-1",
    )
    with pytest.raises(ConflictError) as exc_info:
        await show_store.create_show(again, ShowStatus.APPROVED)
    assert exc_info.value.code == "SHOW_EXISTS"


# ─── Duplicate detection ──────────────────────────────────────────

async def test_duplicate_headliner_same_venue_same_day(show_store):
    existing = await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    again = make_draft(headliner="THE BLACK KEYS", event_date=FUTURE + timedelta(hours=1))

    with pytest.raises(DuplicateShowError) as exc_info:
        await show_store.create_show(again, ShowStatus.PENDING, duplicate_window=_window(again))
    assert exc_info.value.existing_show_id == existing.id


async def test_duplicate_check_rolls_back_new_venue(show_store, venue_store):
    await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    # The second venue is inserted before the duplicate check fires.
    again = make_draft().model_copy(
        update={
            "venues": [
                VenueInput(name="New Room", city="Phoenix", state="AZ"),
                VenueInput(name="Valley Bar", city="Phoenix", state="AZ"),
            ]
        }
    )
    with pytest.raises(DuplicateShowError):
        await show_store.create_show(again, ShowStatus.PENDING, duplicate_window=_window(again))
    venues, total = await venue_store.list_venues(verified=None)
    assert total == 1


async def test_different_headliner_is_not_duplicate(show_store):
    await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    other = make_draft(headliner="The White Stripes")
    show = await show_store.create_show(other, ShowStatus.PENDING, duplicate_window=_window(other))
    assert show.id > 0


async def test_different_day_is_not_duplicate(show_store):
    await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    other = make_draft(event_date=FUTURE + timedelta(days=1))
    await show_store.create_show(other, ShowStatus.PENDING, duplicate_window=_window(other))


@pytest.mark.parametrize("status", [ShowStatus.REJECTED, ShowStatus.PRIVATE])
async def test_rejected_and_private_do_not_block(show_store, status):
    await show_store.create_show(make_draft(), status)
    again = make_draft()
    show = await show_store.create_show(again, ShowStatus.PENDING, duplicate_window=_window(again))
    assert show.status == ShowStatus.PENDING


async def test_custom_matcher_is_used(show_store):
    await show_store.create_show(make_draft(headliner="Black Keys"), ShowStatus.APPROVED)
    again = make_draft(headliner="The Black Keys")
    with pytest.raises(DuplicateShowError):
        await show_store.create_show(
            again,
            ShowStatus.PENDING,
            duplicate_window=_window(again),
            headliner_matcher=lambda a, b: True,
        )


async def test_find_headliner_duplicate_by_venue_name(show_store):
    existing = await show_store.create_show(make_draft(), ShowStatus.PENDING)
    start, end = utc_day_bounds(FUTURE)
    found = await show_store.find_headliner_duplicate(
        ["valley bar"], "the black keys", start, end
    )
    assert found is not None and found.id == existing.id
    assert await show_store.find_headliner_duplicate(["Crescent"], "the black keys", start, end) is None


async def test_find_show_at_venue_by_status(show_store):
    rejected = await show_store.create_show(make_draft(), ShowStatus.REJECTED)
    start, end = utc_day_bounds(FUTURE)
    found = await show_store.find_show_at_venue("Valley Bar", start, end, ShowStatus.REJECTED)
    assert found is not None and found.id == rejected.id
    assert await show_store.find_show_at_venue("Valley Bar", start, end, ShowStatus.APPROVED) is None


# ─── Status transitions ───────────────────────────────────────────

async def test_transition_is_guarded_by_current_status(show_store):
    show = await show_store.create_show(make_draft(), ShowStatus.PENDING)

    assert await show_store.transition_status(
        show.id, [ShowStatus.PENDING], ShowStatus.REJECTED, rejection_reason="spam"
    )
    rejected = await show_store.get_show(show.id)
    assert rejected.status == ShowStatus.REJECTED
    assert rejected.rejection_reason == "spam"

    # A second reject from PENDING no longer matches.
    assert not await show_store.transition_status(
        show.id, [ShowStatus.PENDING], ShowStatus.REJECTED, rejection_reason="again"
    )

    assert await show_store.transition_status(
        show.id,
        [ShowStatus.PENDING, ShowStatus.REJECTED],
        ShowStatus.APPROVED,
        clear_rejection_reason=True,
    )
    approved = await show_store.get_show(show.id)
    assert approved.status == ShowStatus.APPROVED
    assert approved.rejection_reason is None


async def test_verify_show_venues(show_store):
    show = await show_store.create_show(make_draft(), ShowStatus.PENDING)
    assert await show_store.verify_show_venues(show.id) == 1
    assert await show_store.verify_show_venues(show.id) == 0
    assert (await show_store.get_show(show.id)).venues[0].verified


async def test_set_flag(show_store):
    show = await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    assert await show_store.set_flag(show.id, "is_sold_out", True)
    assert (await show_store.get_show(show.id)).is_sold_out
    assert not await show_store.set_flag(9999, "is_cancelled", True)
    with pytest.raises(ValueError):
        await show_store.set_flag(show.id, "status", True)


async def test_update_show_ignores_unknown_columns(show_store):
    show = await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    updated = await show_store.update_show(
        show.id, {"title": "New Title", "price": 25.0, "status": "rejected"}
    )
    assert updated.title == "New Title"
    assert updated.price == 25.0
    assert updated.status == ShowStatus.APPROVED


async def test_delete_show(show_store):
    show = await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    assert await show_store.delete_show(show.id)
    assert await show_store.get_show(show.id) is None
    assert not await show_store.delete_show(show.id)


# ─── Listings ─────────────────────────────────────────────────────

async def test_list_shows_filters(show_store, make_user):
    first, second = await make_user(), await make_user()
    await show_store.create_show(make_draft(submitted_by=first.id), ShowStatus.PENDING)
    await show_store.create_show(
        make_draft(headliner="Other", venue="Rialto", city="Tucson", submitted_by=second.id),
        ShowStatus.APPROVED,
    )

    pending, total = await show_store.list_shows(statuses=[ShowStatus.PENDING])
    assert total == 1 and pending[0].headliner.name == "The Black Keys"

    mine, total = await show_store.list_shows(submitted_by=second.id)
    assert total == 1 and mine[0].city == "Tucson"

    tucson, _ = await show_store.list_shows(city="tucson")
    assert len(tucson) == 1

    not_pending, total = await show_store.list_shows(exclude_statuses=[ShowStatus.PENDING])
    assert total == 1


async def test_list_shows_search_matches_rejection_reason(show_store):
    show = await show_store.create_show(make_draft(), ShowStatus.PENDING)
    await show_store.transition_status(
        show.id, [ShowStatus.PENDING], ShowStatus.REJECTED, rejection_reason="fake listing"
    )
    found, total = await show_store.list_shows(statuses=[ShowStatus.REJECTED], search="fake")
    assert total == 1 and found[0].id == show.id


async def test_upcoming_shows_keyset_order(show_store):
    ids = []
    for offset in (2, 0, 1):
        show = await show_store.create_show(
            make_draft(headliner=f"Band {offset}", event_date=FUTURE + timedelta(days=offset)),
            ShowStatus.APPROVED,
        )
        ids.append((offset, show.id))
    start = FUTURE - timedelta(days=1)

    first_page = await show_store.get_upcoming_shows(
        start=start, statuses=[ShowStatus.APPROVED], exclude_statuses=None, after=None, limit=2
    )
    assert [s.headliner.name for s in first_page] == ["Band 0", "Band 1"]

    last = first_page[-1]
    second_page = await show_store.get_upcoming_shows(
        start=start,
        statuses=[ShowStatus.APPROVED],
        exclude_statuses=None,
        after=(last.event_date, last.id),
        limit=2,
    )
    assert [s.headliner.name for s in second_page] == ["Band 2"]


async def test_upcoming_excludes_past_and_other_statuses(show_store):
    await show_store.create_show(
        make_draft(headliner="Past", event_date=FUTURE - timedelta(days=60)), ShowStatus.APPROVED
    )
    await show_store.create_show(make_draft(headliner="Pending"), ShowStatus.PENDING)
    await show_store.create_show(make_draft(headliner="Live"), ShowStatus.APPROVED)

    shows = await show_store.get_upcoming_shows(
        start=FUTURE - timedelta(days=1),
        statuses=[ShowStatus.APPROVED],
        exclude_statuses=None,
        after=None,
        limit=10,
    )
    assert [s.headliner.name for s in shows] == ["Live"]


async def test_show_cities_counts_approved_upcoming(show_store):
    await show_store.create_show(make_draft(), ShowStatus.APPROVED)
    await show_store.create_show(
        make_draft(headliner="B", event_date=FUTURE + timedelta(days=1)), ShowStatus.APPROVED
    )
    await show_store.create_show(
        make_draft(headliner="C", venue="Rialto", city="Tucson"), ShowStatus.PENDING
    )
    cities = await show_store.get_show_cities(FUTURE - timedelta(days=1))
    assert [(c.city, c.state, c.show_count) for c in cities] == [("Phoenix", "AZ", 2)]


async def test_shows_for_artist(show_store):
    show = await show_store.create_show(make_draft(openers=("Opener",)), ShowStatus.APPROVED)
    opener_id = show.artists[1].id
    shows = await show_store.get_shows_for_artist(
        opener_id, statuses=[ShowStatus.APPROVED], starts_after=FUTURE - timedelta(days=1)
    )
    assert [s.id for s in shows] == [show.id]


# ─── Reload after write ───────────────────────────────────────────


async def test_vanished_user_after_insert_is_not_found(user_store, monkeypatch):
    monkeypatch.setattr(user_store, "get_user", AsyncMock(return_value=None))
    with pytest.raises(UserNotFoundError):
        await user_store.create_user("ghost@example.com", None)


async def test_vanished_artist_after_insert_is_not_found(artist_store, monkeypatch):
    monkeypatch.setattr(artist_store, "get_artist", AsyncMock(return_value=None))
    with pytest.raises(ArtistNotFoundError):
        await artist_store.find_or_create_artist("Kurt Vile")


async def test_vanished_venue_after_insert_is_not_found(venue_store, monkeypatch):
    monkeypatch.setattr(venue_store, "get_venue", AsyncMock(return_value=None))
    with pytest.raises(VenueNotFoundError):
        await venue_store.find_or_create_venue("Valley Bar", "Phoenix", "AZ")
