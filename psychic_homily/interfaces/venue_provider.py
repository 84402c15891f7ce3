"""Abstract base class for venue persistence, including pending venue edits.

Concrete implementation: SQLiteVenueProvider
(psychic_homily/providers/venue/sqlite_venue_provider.py).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from psychic_homily.models.venue import (
    PendingVenueEdit,
    Venue,
    VenueChanges,
    VenueCity,
    VenueCreate,
)


class IVenueProvider(ABC):
    """Contract for venue storage and the venue-edit review queue."""

    # ── Lifecycle ──────────────────────────────────────────────────────

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    # ── Venues ─────────────────────────────────────────────────────────

    @abstractmethod
    async def get_venue(self, venue_id: int) -> Venue | None: ...

    @abstractmethod
    async def get_venue_by_slug(self, slug: str) -> Venue | None: ...

    @abstractmethod
    async def find_venue_by_name(self, name: str, city: str) -> Venue | None:
        """Case-insensitive lookup on the (name, city) uniqueness key."""

    @abstractmethod
    async def create_venue(
        self, data: VenueCreate, *, submitted_by: int | None, verified: bool
    ) -> Venue:
        """Insert a venue with a unique slug.

        Raises
        ------
        ConflictError
            A venue with the same name already exists in the city.
        """

    @abstractmethod
    async def find_or_create_venue(
        self,
        name: str,
        city: str,
        state: str,
        *,
        address: str | None = None,
        zipcode: str | None = None,
        submitted_by: int | None = None,
        verified: bool = False,
    ) -> tuple[Venue, bool]:
        """Return ``(venue, created)``.  ``verified=True`` also verifies an existing venue."""

    @abstractmethod
    async def update_venue(self, venue_id: int, fields: dict[str, Any]) -> Venue | None:
        """Apply column updates; the slug follows name/city/state changes."""

    @abstractmethod
    async def list_venues(
        self,
        *,
        city: str | None = None,
        state: str | None = None,
        verified: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Venue], int]: ...

    @abstractmethod
    async def search_venues(self, query: str, limit: int = 20) -> list[Venue]: ...

    @abstractmethod
    async def get_venue_cities(self) -> list[VenueCity]: ...

    @abstractmethod
    async def verify_venue(self, venue_id: int) -> bool:
        """Move an unverified venue to verified.  False if already verified or missing."""

    # ── Pending edits ──────────────────────────────────────────────────

    @abstractmethod
    async def upsert_pending_edit(
        self, venue_id: int, user_id: int, changes: VenueChanges
    ) -> PendingVenueEdit:
        """Store a pending edit, replacing the user's existing pending edit for the venue."""

    @abstractmethod
    async def get_pending_edit(self, edit_id: int) -> PendingVenueEdit | None: ...

    @abstractmethod
    async def get_pending_edit_for_venue(
        self, venue_id: int, user_id: int
    ) -> PendingVenueEdit | None: ...

    @abstractmethod
    async def list_pending_edits(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[PendingVenueEdit], int]: ...

    @abstractmethod
    async def approve_edit(self, edit_id: int, reviewer_id: int) -> Venue | None:
        """Apply a pending edit to its venue and mark it approved, atomically.

        Returns the updated venue, or None if the edit was not pending.
        """

    @abstractmethod
    async def reject_edit(self, edit_id: int, reviewer_id: int, reason: str) -> bool: ...

    @abstractmethod
    async def delete_pending_edit(self, edit_id: int, user_id: int) -> bool:
        """Delete a still-pending edit owned by *user_id*."""
