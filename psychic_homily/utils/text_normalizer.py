"""Text normalization utilities for artist and venue names.

Two concerns live here:

1. **Name comparison** -- Case-folds and collapses whitespace so that
   "The  Black Keys" and "the black keys" compare equal, and provides a
   rapidfuzz-backed fuzzy comparison for headliner duplicate detection
   ("Black Keys, The" vs "The Black Keys").

2. **Title splitting** -- Scraped event titles often carry the whole bill
   ("Headliner with Opener One").  ``parse_artists_from_title``
   recovers the individual artist names when the scraper did not.
"""

import re

from rapidfuzz import fuzz


def normalize_name(name: str) -> str:
    """Case-fold *name* and collapse internal whitespace.

    Args:
        name: Raw artist or venue name.

    Returns:
        The comparison key for *name*.
    """
    return re.sub(r"\s+", " ", name.strip()).casefold()


def headliners_match(first: str, second: str, threshold: float = 1.0) -> bool:
    """Return True when two headliner names refer to the same act.

    Exact case-insensitive equality always matches.  With ``threshold``
    below 1.0 the names are also compared with ``token_sort_ratio``.
    """
    a, b = normalize_name(first), normalize_name(second)
    if not a or not b:
        return False
    if a == b:
        return True
    if threshold >= 1.0:
        return False
    return fuzz.token_sort_ratio(a, b) >= threshold * 100


# ------------------------------------------------------------------
# Event title splitting
# ------------------------------------------------------------------

_WITH_PATTERN = re.compile(r"\s+with\s+", re.IGNORECASE)
_SLASH_PIPE_PLUS = (" / ", " | ", " + ")

# " & " is ambiguous ("Simon & Garfunkel"), so it is only treated as a
# separator when it yields exactly two long names.
_AMPERSAND_MIN_LEN = 10


def _split_commas(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def parse_artists_from_title(title: str) -> list[str]:
    """Split an event title into artist names.

    Separators are tried in priority order: commas, then " with "
    (headliner first), then " / ", " | " or " + ".  " & " is used last
    and only when both sides are longer than ten characters.
    A title with no separator is returned as a single artist.

    Args:
        title: Raw event title, e.g. "Headliner with Opener One".

    Returns:
        List of artist names, stripped of whitespace.  Empty for a blank title.
    """
    title = title.strip()
    if not title:
        return []

    if "," in title:
        return _split_commas(title)

    with_parts = _WITH_PATTERN.split(title, maxsplit=1)
    if len(with_parts) == 2 and with_parts[0].strip():
        artists = [with_parts[0].strip()]
        artists.extend(_split_commas(with_parts[1]))
        return artists

    for separator in _SLASH_PIPE_PLUS:
        if separator in title:
            return [part.strip() for part in title.split(separator) if part.strip()]

    if " & " in title:
        parts = [part.strip() for part in title.split(" & ")]
        if len(parts) == 2 and all(len(p) > _AMPERSAND_MIN_LEN for p in parts):
            return parts

    return [title]
