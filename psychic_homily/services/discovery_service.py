"""Import of events posted by the discovery scraper.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: ShowService (creation, locking, duplicate flagging),
#             IShowProvider (read-only checks).
#
# Each scraped event runs through a fixed decision ladder; the first
# rung that applies decides the outcome counted in ImportResult:
#
#   missing id / venueSlug            -> error
#   (venueSlug, id) already imported  -> duplicate
#   venueSlug not in config.yaml      -> error
#   unparseable date                  -> error
#   rejected show, same venue + day   -> rejected
#   same headliner, same venue + day  -> pending_review (row kept, flagged)
#   otherwise                         -> imported (approved)
#
# Show times like "7:00 pm" are local to the venue; they are read in the
# timezone of the venue's state and stored as UTC.  A dry run walks the
# same ladder without writing anything.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import re
from datetime import datetime, time, timezone
from typing import Any

import structlog

from psychic_homily.interfaces.show_provider import IShowProvider
from psychic_homily.models.discovery import (
    CheckEventInput,
    CheckEventStatus,
    DiscoveredEvent,
    DiscoveryVenue,
    ImportResult,
)
from psychic_homily.models.show import ArtistInput, ShowDraft, ShowSource, ShowStatus, VenueInput
from psychic_homily.models.user import User
from psychic_homily.services.show_service import ShowService
from psychic_homily.utils.dates import resolve_timezone, utc_day_bounds
from psychic_homily.utils.errors import PsychicHomilyError
from psychic_homily.utils.text_normalizer import parse_artists_from_title

logger = structlog.get_logger(logger_name=__name__)

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*([ap])?\.?m?\.?")


def venues_from_config(config: dict[str, Any]) -> dict[str, DiscoveryVenue]:
    """Build the slug -> venue registry from the ``discovery.venues`` YAML block."""
    raw = (config.get("discovery") or {}).get("venues") or {}
    return {slug: DiscoveryVenue(slug=slug, **fields) for slug, fields in raw.items()}


def parse_show_time(value: str | None) -> time | None:
    """Parse "7:00 pm", "7:30PM" or "19:00".  Returns None when unparseable."""
    if not value:
        return None
    match = _TIME_PATTERN.match(value.strip().lower())
    if match is None:
        return None
    hour, minute, period = int(match.group(1)), int(match.group(2)), match.group(3)
    if period == "p" and hour != 12:
        hour += 12
    elif period == "a" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def parse_event_date(value: str, show_time: str | None, tz_name: str) -> datetime:
    """Combine a scraped date and optional local show time into a UTC datetime.

    ``value`` is ``YYYY-MM-DD`` or RFC3339.  Without a usable show time the
    parsed date is returned as-is (midnight UTC for a bare date).

    Raises
    ------
    ValueError
        ``value`` is neither format.
    """
    value = (value or "").strip()
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError(f"unable to parse date: {value}") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)

    local_time = parse_show_time(show_time)
    if local_time is None:
        return parsed.astimezone(timezone.utc)
    local = datetime.combine(parsed.date(), local_time, tzinfo=resolve_timezone(tz_name))
    return local.astimezone(timezone.utc)


def _description(event: DiscoveredEvent) -> str | None:
    parts = []
    if event.doors_time:
        parts.append(f"Doors: {event.doors_time}")
    if event.show_time:
        parts.append(f"Show: {event.show_time}")
    if event.ticket_url:
        parts.append(f"Tickets: {event.ticket_url}")
    return " | ".join(parts) or None


class DiscoveryService:
    """Turns scraped events into shows."""

    def __init__(
        self,
        show_service: ShowService,
        show_store: IShowProvider,
        *,
        venues: dict[str, DiscoveryVenue],
        state_timezones: dict[str, str] | None = None,
        default_timezone: str = "America/Phoenix",
    ) -> None:
        self._show_service = show_service
        self._show_store = show_store
        self._venues = venues
        self._state_timezones = {k.upper(): v for k, v in (state_timezones or {}).items()}
        self._default_timezone = default_timezone

    def timezone_for_state(self, state: str) -> str:
        return self._state_timezones.get((state or "").upper(), self._default_timezone)

    @staticmethod
    def artist_names(event: DiscoveredEvent) -> list[str]:
        names = event.artists or parse_artists_from_title(event.title)
        return [n.strip() for n in names if n and n.strip()]

    async def import_events(
        self, events: list[DiscoveredEvent], dry_run: bool = False, actor: User | None = None
    ) -> ImportResult:
        counts = {"imported": 0, "duplicate": 0, "rejected": 0, "pending_review": 0, "error": 0}
        messages: list[str] = []
        for event in events:
            message, outcome = await self._import_event(event, dry_run, actor)
            messages.append(message)
            counts[outcome] += 1

        result = ImportResult(
            total=len(events),
            imported=counts["imported"],
            duplicates=counts["duplicate"],
            rejected=counts["rejected"],
            pending_review=counts["pending_review"],
            errors=counts["error"],
            messages=messages,
        )
        logger.info(
            "discovery_import_finished",
            dry_run=dry_run,
            total=result.total,
            imported=result.imported,
            duplicates=result.duplicates,
            rejected=result.rejected,
            pending_review=result.pending_review,
            errors=result.errors,
        )
        return result

    async def _import_event(
        self, event: DiscoveredEvent, dry_run: bool, actor: User | None
    ) -> tuple[str, str]:
        if not event.id or not event.venue_slug:
            return (
                f"SKIP: Missing required fields (id={event.id}, venueSlug={event.venue_slug})",
                "error",
            )

        existing = await self._show_store.get_show_by_source(event.venue_slug, event.id)
        if existing is not None:
            return (
                f"DUPLICATE: {event.title} (ID: {event.id}) already imported as show #{existing.id}",
                "duplicate",
            )

        venue = self._venues.get(event.venue_slug)
        if venue is None:
            return f"ERROR: Unknown venue slug: {event.venue_slug}", "error"

        try:
            event_date = parse_event_date(
                event.date, event.show_time, self.timezone_for_state(venue.state)
            )
        except ValueError as exc:
            return f"ERROR: Failed to parse date for {event.title}: {exc}", "error"
        when = event_date.strftime("%Y-%m-%d %H:%M")

        start, end = utc_day_bounds(event_date)
        rejected = await self._show_store.find_show_at_venue(
            venue.name, start, end, ShowStatus.REJECTED
        )
        if rejected is not None:
            return (
                f"REJECTED: {event.title} matches previously rejected show #{rejected.id} "
                f"at {venue.name} on {event_date:%Y-%m-%d}",
                "rejected",
            )

        names = self.artist_names(event)
        if dry_run:
            duplicate = None
            if names:
                duplicate = await self._show_store.find_headliner_duplicate(
                    [venue.name], names[0], start, end, self._show_service.headliners_match
                )
            if duplicate is not None:
                return (
                    f"WOULD FLAG FOR REVIEW: {event.title} at {venue.name} on {when} "
                    f"(potential duplicate of show #{duplicate.id}: {duplicate.title})",
                    "pending_review",
                )
            return f"WOULD IMPORT: {event.title} at {venue.name} on {when}", "imported"

        draft = ShowDraft(
            title=event.title.strip(),
            event_date=event_date,
            city=venue.city,
            state=venue.state,
            description=_description(event),
            venues=[
                VenueInput(name=venue.name, city=venue.city, state=venue.state, address=venue.address)
            ],
            artists=[ArtistInput(name=name, is_headliner=(i == 0)) for i, name in enumerate(names)],
            submitted_by=actor.id if actor else None,
            source=ShowSource.DISCOVERY,
            source_venue=event.venue_slug,
            source_event_id=event.id,
            scraped_at=event.scraped_at,
        )
        try:
            show = await self._show_service.create_show(draft)
        except PsychicHomilyError as exc:
            logger.warning("discovery_import_failed", event_id=event.id, error=str(exc))
            return f"ERROR: Failed to create show: {exc.message}", "error"

        if show.duplicate_of_show_id is not None:
            return f"FLAGGED FOR REVIEW: {event.title} at {venue.name} on {when}", "pending_review"
        return f"IMPORTED: {event.title} at {venue.name} on {when}", "imported"

    async def check_events(self, inputs: list[CheckEventInput]) -> dict[str, CheckEventStatus]:
        """Report which scraped events are already imported, keyed by event id."""
        statuses: dict[str, CheckEventStatus] = {}
        for item in inputs:
            if not item.id or not item.venue_slug:
                continue
            show = await self._show_store.get_show_by_source(item.venue_slug, item.id)
            if show is not None:
                statuses[item.id] = CheckEventStatus(
                    exists=True, show_id=show.id, status=show.status.value
                )
        return statuses
