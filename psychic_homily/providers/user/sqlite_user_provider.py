"""SQLite-backed user account provider.

Emails are unique case-insensitively (NOCASE unique index) and stored as
entered.  Login-lockout state (failed_login_attempts, locked_until) is
updated with single UPDATE statements so concurrent failed logins cannot
lose increments.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from psychic_homily.interfaces.user_provider import IUserProvider
from psychic_homily.models.user import User
from psychic_homily.providers.database import DEFAULT_DB_PATH, initialize_schema, open_db
from psychic_homily.utils.dates import from_db, to_db, utc_now
from psychic_homily.utils.errors import ConflictError, UserNotFoundError

logger = structlog.get_logger(logger_name=__name__)


def _row_to_user(row: aiosqlite.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        username=row["username"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        is_active=bool(row["is_active"]),
        is_admin=bool(row["is_admin"]),
        email_verified=bool(row["email_verified"]),
        failed_login_attempts=row["failed_login_attempts"],
        locked_until=from_db(row["locked_until"]),
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )


class SQLiteUserProvider(IUserProvider):
    """SQLite-backed user accounts."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the schema (idempotent)."""
        await initialize_schema(self._db_path)
        logger.info("user_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_user"

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
        now = to_db(utc_now())
        try:
            async with open_db(self._db_path) as db:
                cursor = await db.execute(
                    "INSERT INTO users (email, username, password_hash, first_name, last_name, "
                    "is_admin, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (email.strip(), username, password_hash, first_name, last_name,
                     int(is_admin), now, now),
                )
                await db.commit()
                user_id = cursor.lastrowid
        except aiosqlite.IntegrityError as exc:
            raise ConflictError("a user with this email already exists", code="USER_EXISTS") from exc

        logger.info("user_created", user_id=user_id)
        user = await self.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_user(self, user_id: int) -> User | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
        return _row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM users WHERE email = ? COLLATE NOCASE", (email.strip(),)
            )
            row = await cursor.fetchone()
        return _row_to_user(row) if row else None

    async def get_password_hash(self, user_id: int) -> str | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute("SELECT password_hash FROM users WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
        return row["password_hash"] if row else None

    async def update_password_hash(self, user_id: int, password_hash: str) -> None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, to_db(utc_now()), user_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise UserNotFoundError(user_id)

    async def record_failed_login(
        self, user_id: int, max_attempts: int, lock_until: datetime
    ) -> User:
        async with open_db(self._db_path) as db:
            await db.execute(
                "UPDATE users SET failed_login_attempts = failed_login_attempts + 1, "
                "locked_until = CASE WHEN failed_login_attempts + 1 >= ? THEN ? "
                "ELSE locked_until END, updated_at = ? WHERE id = ?",
                (max_attempts, to_db(lock_until), to_db(utc_now()), user_id),
            )
            await db.commit()
        user = await self.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        if user.failed_login_attempts >= max_attempts:
            logger.warning("account_locked", user_id=user_id, attempts=user.failed_login_attempts)
        return user

    async def reset_failed_logins(self, user_id: int) -> None:
        async with open_db(self._db_path) as db:
            await db.execute(
                "UPDATE users SET failed_login_attempts = 0, locked_until = NULL, updated_at = ? "
                "WHERE id = ?",
                (to_db(utc_now()), user_id),
            )
            await db.commit()

    async def set_email_verified(self, user_id: int) -> None:
        async with open_db(self._db_path) as db:
            await db.execute(
                "UPDATE users SET email_verified = 1, updated_at = ? WHERE id = ?",
                (to_db(utc_now()), user_id),
            )
            await db.commit()

    async def set_admin(self, user_id: int, is_admin: bool) -> None:
        async with open_db(self._db_path) as db:
            await db.execute(
                "UPDATE users SET is_admin = ?, updated_at = ? WHERE id = ?",
                (int(is_admin), to_db(utc_now()), user_id),
            )
            await db.commit()
        logger.info("user_admin_changed", user_id=user_id, is_admin=is_admin)
