"""Abstract base class for show persistence providers.

# ─── ADAPTER PATTERN ─────────────────────────────────────────────────
#
# The concrete implementation is SQLiteShowProvider
# (psychic_homily/providers/show/sqlite_show_provider.py).
#
# Moderation transitions are expressed as *guarded* status updates:
# ``transition_status`` only changes rows whose current status is one of
# ``from_statuses`` and reports whether a row changed.  The service layer
# decides which transitions are legal; the provider makes each one atomic.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable

from psychic_homily.models.show import Show, ShowCity, ShowDraft, ShowStatus

# (name_a, name_b) -> same act?
HeadlinerMatcher = Callable[[str, str], bool]


class IShowProvider(ABC):
    """Contract for show storage, including the show's venues and bill."""

    # ── Lifecycle ──────────────────────────────────────────────────────

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    # ── Create ─────────────────────────────────────────────────────────

    @abstractmethod
    async def create_show(
        self,
        draft: ShowDraft,
        status: ShowStatus,
        *,
        duplicate_window: tuple[datetime, datetime] | None = None,
        headliner_matcher: HeadlinerMatcher | None = None,
    ) -> Show:
        """Insert a show with its venues and artists in one transaction.

        Parameters
        ----------
        draft:
            Creation input.  Venues and artists are found or created by
            name; admin drafts create verified venues.
        status:
            Initial moderation status.
        duplicate_window:
            When given, the transaction first looks for a non-rejected,
            non-private show at any of the draft's venues whose event date
            falls in ``[start, end)`` and whose headliner matches the
            draft's headliner according to ``headliner_matcher``.
        headliner_matcher:
            Name comparison used with ``duplicate_window``.  Defaults to
            case-insensitive equality.

        Returns
        -------
        Show
            The persisted show, re-read with its relations.

        Raises
        ------
        DuplicateShowError
            A matching show already exists; nothing was written.
        """

    @abstractmethod
    async def find_headliner_duplicate(
        self,
        venue_names: list[str],
        headliner: str,
        start: datetime,
        end: datetime,
        matcher: HeadlinerMatcher | None = None,
    ) -> Show | None:
        """Return an existing non-rejected, non-private show with the same headliner."""

    @abstractmethod
    async def find_show_at_venue(
        self,
        venue_name: str,
        start: datetime,
        end: datetime,
        status: ShowStatus,
    ) -> Show | None:
        """Return a show in *status* at *venue_name* within ``[start, end)``."""

    # ── Read ───────────────────────────────────────────────────────────

    @abstractmethod
    async def get_show(self, show_id: int) -> Show | None: ...

    @abstractmethod
    async def get_show_by_slug(self, slug: str) -> Show | None: ...

    @abstractmethod
    async def get_show_by_source(self, source_venue: str, source_event_id: str) -> Show | None: ...

    @abstractmethod
    async def get_shows_by_ids(self, show_ids: list[int]) -> list[Show]:
        """Return shows in the order of *show_ids*, skipping missing ones."""

    @abstractmethod
    async def list_shows(
        self,
        *,
        statuses: list[ShowStatus] | None = None,
        exclude_statuses: list[ShowStatus] | None = None,
        submitted_by: int | None = None,
        city: str | None = None,
        state: str | None = None,
        search: str | None = None,
        starts_after: datetime | None = None,
        newest_first: bool = True,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Show], int]:
        """Filtered show listing with a total count for pagination.

        ``search`` matches title or rejection reason, case-insensitively.
        ``newest_first`` orders by ``created_at`` descending; otherwise by
        ``event_date`` ascending.
        """

    @abstractmethod
    async def get_upcoming_shows(
        self,
        *,
        start: datetime,
        statuses: list[ShowStatus] | None,
        exclude_statuses: list[ShowStatus] | None,
        after: tuple[datetime, int] | None,
        limit: int,
        city: str | None = None,
        state: str | None = None,
        venue_ids: list[int] | None = None,
    ) -> list[Show]:
        """Keyset page of shows ordered by ``(event_date, id)``.

        Parameters
        ----------
        start:
            Lower bound for ``event_date`` when no cursor is given.
        after:
            ``(event_date, id)`` of the last row already returned.
        limit:
            Maximum rows to return.  Callers ask for one extra row to
            learn whether another page exists.
        """

    @abstractmethod
    async def count_upcoming_at_venues(
        self, venue_ids: list[int], start: datetime, statuses: list[ShowStatus]
    ) -> int: ...

    @abstractmethod
    async def get_show_cities(self, start: datetime) -> list[ShowCity]:
        """Cities with approved shows on or after *start*, busiest first."""

    @abstractmethod
    async def get_shows_for_artist(
        self,
        artist_id: int,
        *,
        statuses: list[ShowStatus],
        starts_after: datetime | None = None,
        ends_before: datetime | None = None,
        limit: int = 50,
    ) -> list[Show]: ...

    # ── Update ─────────────────────────────────────────────────────────

    @abstractmethod
    async def update_show(self, show_id: int, fields: dict[str, Any]) -> Show | None:
        """Update scalar columns; returns the updated show or None if missing."""

    @abstractmethod
    async def transition_status(
        self,
        show_id: int,
        from_statuses: list[ShowStatus],
        to_status: ShowStatus,
        *,
        rejection_reason: str | None = None,
        clear_rejection_reason: bool = False,
    ) -> bool:
        """Atomically move a show between statuses.

        Returns
        -------
        bool
            True if the show was in one of ``from_statuses`` and changed.
        """

    @abstractmethod
    async def verify_show_venues(self, show_id: int) -> int:
        """Mark every unverified venue on the show as verified.  Returns the count."""

    @abstractmethod
    async def set_flag(self, show_id: int, flag: str, value: bool) -> bool:
        """Set ``is_sold_out`` or ``is_cancelled``."""

    @abstractmethod
    async def delete_show(self, show_id: int) -> bool: ...
