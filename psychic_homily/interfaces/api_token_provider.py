"""Abstract base class for API token storage.

Concrete implementation: SQLiteApiTokenProvider
(psychic_homily/providers/token/sqlite_api_token_provider.py).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from psychic_homily.models.api_token import ApiToken


class IApiTokenProvider(ABC):
    """Contract for hashed API token records."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def create_token(
        self,
        user_id: int,
        token_hash: str,
        description: str | None,
        scope: str,
        expires_at: datetime,
    ) -> ApiToken: ...

    @abstractmethod
    async def get_token_by_hash(self, token_hash: str) -> ApiToken | None: ...

    @abstractmethod
    async def get_token(self, user_id: int, token_id: int) -> ApiToken | None:
        """The token with *token_id*, only if it belongs to *user_id*."""

    @abstractmethod
    async def list_tokens(self, user_id: int) -> list[ApiToken]:
        """Unrevoked tokens for *user_id*, newest first."""

    @abstractmethod
    async def revoke_token(self, user_id: int, token_id: int, when: datetime) -> bool:
        """Revoke one of the user's tokens.  False if missing or already revoked."""

    @abstractmethod
    async def touch_token(self, token_id: int, when: datetime) -> None:
        """Record *when* as the token's last use."""

    @abstractmethod
    async def delete_stale_tokens(self, cutoff: datetime) -> int:
        """Delete tokens that expired or were revoked before *cutoff*.  Returns the count."""
