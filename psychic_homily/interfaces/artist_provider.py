"""Abstract base class for artist persistence providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from psychic_homily.models.artist import Artist


class IArtistProvider(ABC):
    """Contract for artist storage.  Names are unique case-insensitively."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def get_artist(self, artist_id: int) -> Artist | None: ...

    @abstractmethod
    async def get_artist_by_slug(self, slug: str) -> Artist | None: ...

    @abstractmethod
    async def find_artist_by_name(self, name: str) -> Artist | None: ...

    @abstractmethod
    async def find_or_create_artist(self, name: str) -> tuple[Artist, bool]:
        """Return ``(artist, created)`` for a case-insensitive name lookup."""

    @abstractmethod
    async def search_artists(self, query: str, limit: int = 20) -> list[Artist]:
        """Substring search, prefix matches first."""
