"""Abstract base class for per-user saved shows and favorite venues.

Concrete implementation: SQLiteEngagementProvider
(psychic_homily/providers/engagement/sqlite_engagement_provider.py).

The provider returns IDs with timestamps only; services resolve them to
full ``Show`` / ``Venue`` models through the show and venue providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class IEngagementProvider(ABC):
    """Contract for a user's saved-show list and favorite venues."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    # ── Saved shows ────────────────────────────────────────────────────

    @abstractmethod
    async def save_show(self, user_id: int, show_id: int) -> datetime:
        """Upsert a saved show; re-saving refreshes ``saved_at``.  Returns ``saved_at``."""

    @abstractmethod
    async def unsave_show(self, user_id: int, show_id: int) -> bool:
        """Remove a saved show.  False when it was not saved."""

    @abstractmethod
    async def list_saved_shows(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> tuple[list[tuple[int, datetime]], int]:
        """``([(show_id, saved_at)], total)``, most recently saved first."""

    @abstractmethod
    async def is_show_saved(self, user_id: int, show_id: int) -> bool: ...

    @abstractmethod
    async def get_saved_show_ids(self, user_id: int, show_ids: list[int]) -> set[int]:
        """Subset of *show_ids* the user has saved."""

    # ── Favorite venues ────────────────────────────────────────────────

    @abstractmethod
    async def favorite_venue(self, user_id: int, venue_id: int) -> datetime: ...

    @abstractmethod
    async def unfavorite_venue(self, user_id: int, venue_id: int) -> bool: ...

    @abstractmethod
    async def list_favorite_venues(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> tuple[list[tuple[int, datetime]], int]: ...

    @abstractmethod
    async def is_venue_favorited(self, user_id: int, venue_id: int) -> bool: ...

    @abstractmethod
    async def get_favorite_venue_ids(self, user_id: int) -> list[int]: ...
