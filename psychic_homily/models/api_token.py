"""Long-lived admin API tokens used by scripts such as the discovery importer."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

TOKEN_PREFIX = "phk_"


class ApiToken(BaseModel):
    """A stored token.  Only the SHA-256 hash is persisted, never the token."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    description: str | None = None
    scope: str = "admin"
    created_at: datetime | None = None
    expires_at: datetime
    last_used_at: datetime | None = None
    revoked_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_revoked(self) -> bool:
        return self.revoked_at is not None


class CreatedApiToken(BaseModel):
    """Returned once, at creation: the only time the plaintext token is visible."""

    model_config = ConfigDict(frozen=True)

    token: str
    api_token: ApiToken
