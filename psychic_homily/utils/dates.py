"""Timestamp helpers shared by providers and services.

Every timestamp is stored in SQLite as an ISO-8601 UTC string with second
precision (``2026-05-01T03:00:00+00:00``).  A single fixed format keeps
lexicographic ``ORDER BY`` / ``BETWEEN`` comparisons equivalent to
chronological ones.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    """Current time in UTC, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db(value: datetime | None) -> str | None:
    if value is None:
        return None
    return ensure_utc(value).replace(microsecond=0).isoformat()


def from_db(value: str | None) -> datetime | None:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def resolve_timezone(name: str | None) -> ZoneInfo | timezone:
    """Return the named zone, falling back to UTC for empty or unknown names."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def start_of_today(tz_name: str | None, now: datetime | None = None) -> datetime:
    """Midnight today in *tz_name*, expressed in UTC."""
    tz = resolve_timezone(tz_name)
    local_now = (now or utc_now()).astimezone(tz)
    local_midnight = datetime.combine(local_now.date(), time.min, tzinfo=tz)
    return local_midnight.astimezone(timezone.utc)


def utc_day_bounds(value: datetime, window_days: int = 0) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` covering the UTC calendar day of *value*.

    ``window_days`` widens the range symmetrically, so ``1`` covers the
    day before through the day after.
    """
    day: date = ensure_utc(value).date()
    start = datetime.combine(day, time.min, tzinfo=timezone.utc) - timedelta(days=window_days)
    end = datetime.combine(day, time.min, tzinfo=timezone.utc) + timedelta(days=window_days + 1)
    return start, end
