"""Abstract base class for user account persistence.

Concrete implementation: SQLiteUserProvider
(psychic_homily/providers/user/sqlite_user_provider.py).

Password hashes cross this boundary only through ``get_password_hash`` and
``update_password_hash``; the ``User`` model never carries one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from psychic_homily.models.user import User


class IUserProvider(ABC):
    """Contract for user accounts and login-lockout bookkeeping."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def create_user(
        self,
        email: str,
        password_hash: str | None,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        username: str | None = None,
        is_admin: bool = False,
    ) -> User:
        """Insert a user.

        Raises
        ------
        ConflictError
            The email (case-insensitive) is already registered.
        """

    @abstractmethod
    async def get_user(self, user_id: int) -> User | None: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def get_password_hash(self, user_id: int) -> str | None: ...

    @abstractmethod
    async def update_password_hash(self, user_id: int, password_hash: str) -> None: ...

    @abstractmethod
    async def record_failed_login(
        self, user_id: int, max_attempts: int, lock_until: datetime
    ) -> User:
        """Increment the failure counter and lock the account at *max_attempts*.

        Parameters
        ----------
        user_id:
            Account that failed to authenticate.
        max_attempts:
            Failure count at which the account locks.
        lock_until:
            Lock expiry applied when the threshold is reached.
        """

    @abstractmethod
    async def reset_failed_logins(self, user_id: int) -> None:
        """Clear the failure counter and any lock."""

    @abstractmethod
    async def set_email_verified(self, user_id: int) -> None: ...

    @abstractmethod
    async def set_admin(self, user_id: int, is_admin: bool) -> None: ...
