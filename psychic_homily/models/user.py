"""User account model.

The password hash is deliberately absent: it is only ever read by the user
provider's credential lookup and never leaves the auth service.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool = True
    is_admin: bool = False
    email_verified: bool = False
    failed_login_attempts: int = 0
    locked_until: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.username or ""
