"""URL slug generation for shows, venues and artists.

Slugs are lowercase ASCII: every run of characters outside ``[a-z0-9]``
collapses to one hyphen, so ``"Rock & Roll"`` becomes ``"rock-roll"`` and
``"Café"`` becomes ``"caf"``.
"""

from __future__ import annotations

import inspect
import re
import time
from datetime import datetime
from typing import Awaitable, Callable, Union

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# Number of numbered suffixes tried before falling back to a timestamp.
_MAX_SUFFIX = 100

SlugExists = Callable[[str], Union[bool, Awaitable[bool]]]


def generate_slug(text: str) -> str:
    """Lowercase *text* and reduce it to hyphen-separated ``[a-z0-9]`` runs."""
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def generate_show_slug(event_date: datetime, headliner: str, venue: str) -> str:
    """``YYYY-MM-DD-<headliner>-at-<venue>``; missing parts are dropped."""
    parts = [event_date.strftime("%Y-%m-%d")]
    headliner_slug = generate_slug(headliner)
    venue_slug = generate_slug(venue)
    if headliner_slug:
        parts.append(headliner_slug)
    if venue_slug:
        parts.extend(["at", venue_slug])
    return "-".join(parts)


def generate_venue_slug(name: str, city: str, state: str) -> str:
    return generate_slug(f"{name} {city} {state}")


async def generate_unique_slug(base: str, exists: SlugExists) -> str:
    """Return *base* or the first ``base-N`` (N = 2..100) that *exists* rejects.

    *exists* may be a plain function or a coroutine function.  When every
    numbered suffix is taken the slug falls back to ``base-<unix seconds>``.
    """
    base = base or "untitled"

    async def _taken(candidate: str) -> bool:
        result = exists(candidate)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    if not await _taken(base):
        return base
    for n in range(2, _MAX_SUFFIX + 1):
        candidate = f"{base}-{n}"
        if not await _taken(candidate):
            return candidate
    return f"{base}-{int(time.time())}"
