"""SQLite-backed API token provider.

Rows hold the SHA-256 hex digest of each token under a UNIQUE index, so a
lookup is a single indexed equality match.  Revocation is a soft delete
(``revoked_at``) so the list endpoint can hide revoked tokens while the
cleanup job still sees them.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from psychic_homily.interfaces.api_token_provider import IApiTokenProvider
from psychic_homily.models.api_token import ApiToken
from psychic_homily.providers.database import DEFAULT_DB_PATH, initialize_schema, open_db
from psychic_homily.utils.dates import from_db, to_db, utc_now
from psychic_homily.utils.errors import NotFoundError

logger = structlog.get_logger(logger_name=__name__)


def _row_to_token(row: aiosqlite.Row) -> ApiToken:
    return ApiToken(
        id=row["id"],
        user_id=row["user_id"],
        description=row["description"],
        scope=row["scope"],
        created_at=from_db(row["created_at"]),
        expires_at=from_db(row["expires_at"]),
        last_used_at=from_db(row["last_used_at"]),
        revoked_at=from_db(row["revoked_at"]),
    )


class SQLiteApiTokenProvider(IApiTokenProvider):
    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        await initialize_schema(self._db_path)
        logger.info("api_token_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_api_token"

    async def create_token(
        self,
        user_id: int,
        token_hash: str,
        description: str | None,
        scope: str,
        expires_at: datetime,
    ) -> ApiToken:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "INSERT INTO api_tokens (user_id, token_hash, description, scope, "
                "expires_at, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (user_id, token_hash, description, scope, to_db(expires_at), to_db(utc_now())),
            )
            await db.commit()
            token_id = cursor.lastrowid

        logger.info("api_token_created", token_id=token_id, user_id=user_id)
        token = await self.get_token(user_id, token_id)
        if token is None:
            raise NotFoundError(f"API token {token_id} not found", code="TOKEN_NOT_FOUND")
        return token

    async def get_token_by_hash(self, token_hash: str) -> ApiToken | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM api_tokens WHERE token_hash = ?", (token_hash,)
            )
            row = await cursor.fetchone()
        return _row_to_token(row) if row else None

    async def get_token(self, user_id: int, token_id: int) -> ApiToken | None:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM api_tokens WHERE id = ? AND user_id = ?", (token_id, user_id)
            )
            row = await cursor.fetchone()
        return _row_to_token(row) if row else None

    async def list_tokens(self, user_id: int) -> list[ApiToken]:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "SELECT * FROM api_tokens WHERE user_id = ? AND revoked_at IS NULL "
                "ORDER BY created_at DESC, id DESC",
                (user_id,),
            )
            rows = await cursor.fetchall()
        return [_row_to_token(r) for r in rows]

    async def revoke_token(self, user_id: int, token_id: int, when: datetime) -> bool:
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE api_tokens SET revoked_at = ? "
                "WHERE id = ? AND user_id = ? AND revoked_at IS NULL",
                (to_db(when), token_id, user_id),
            )
            await db.commit()
            revoked = cursor.rowcount > 0
        if revoked:
            logger.info("api_token_revoked", token_id=token_id, user_id=user_id)
        return revoked

    async def touch_token(self, token_id: int, when: datetime) -> None:
        async with open_db(self._db_path) as db:
            await db.execute(
                "UPDATE api_tokens SET last_used_at = ? WHERE id = ?", (to_db(when), token_id)
            )
            await db.commit()

    async def delete_stale_tokens(self, cutoff: datetime) -> int:
        cutoff_db = to_db(cutoff)
        async with open_db(self._db_path) as db:
            cursor = await db.execute(
                "DELETE FROM api_tokens WHERE expires_at < ? "
                "OR (revoked_at IS NOT NULL AND revoked_at < ?)",
                (cutoff_db, cutoff_db),
            )
            await db.commit()
            deleted = cursor.rowcount
        if deleted:
            logger.info("api_tokens_purged", count=deleted)
        return deleted
