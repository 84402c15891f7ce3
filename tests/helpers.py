"""Builders shared by unit and integration tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from psychic_homily.models.show import ArtistInput, ShowDraft, VenueInput

# A fixed point far enough ahead that "upcoming" filters always include it.
FUTURE = datetime.now(timezone.utc).replace(
    hour=20, minute=0, second=0, microsecond=0
) + timedelta(days=30)


def make_draft(
    headliner: str = "The Black Keys",
    venue: str = "Valley Bar",
    city: str = "Phoenix",
    state: str = "AZ",
    event_date: datetime = FUTURE,
    openers: tuple[str, ...] = (),
    **kwargs,
) -> ShowDraft:
    """Build a one-venue submission with *headliner* first on the bill."""
    artists = [ArtistInput(name=headliner, is_headliner=True)]
    artists.extend(ArtistInput(name=name) for name in openers)
    return ShowDraft(
        title=kwargs.pop("title", ""),
        event_date=event_date,
        venues=[VenueInput(name=venue, city=city, state=state)],
        artists=artists,
        **kwargs,
    )


def show_payload(
    headliner: str = "The Black Keys",
    venue: str = "Valley Bar",
    event_date: datetime = FUTURE,
    **kwargs,
) -> dict:
    """JSON body for ``POST /api/v1/shows``."""
    body = {
        "event_date": event_date.isoformat(),
        "venues": [{"name": venue, "city": "Phoenix", "state": "AZ"}],
        "artists": [{"name": headliner, "is_headliner": True}],
    }
    body.update(kwargs)
    return body
