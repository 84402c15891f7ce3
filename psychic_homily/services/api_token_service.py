"""Admin API tokens for non-browser clients.

The discovery importer runs on an admin's laptop and calls the import
endpoint without a browser session.  It authenticates with a long-lived
``phk_``-prefixed token instead:

    Authorization: Bearer phk_<64 hex chars>

Only the SHA-256 digest is stored.  The plaintext is returned once, from
``create_token``, and cannot be recovered afterwards.  A token acts as
its owner, and only while the owner is still an active admin.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta

import structlog

from psychic_homily.interfaces.api_token_provider import IApiTokenProvider
from psychic_homily.interfaces.user_provider import IUserProvider
from psychic_homily.models.api_token import TOKEN_PREFIX, ApiToken, CreatedApiToken
from psychic_homily.models.user import User
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.utils.dates import utc_now
from psychic_homily.utils.errors import (
    NotFoundError,
    PermissionDeniedError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
)

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_EXPIRATION_DAYS = 90
MAX_EXPIRATION_DAYS = 365
# Expired and revoked rows are kept this long before cleanup deletes them.
STALE_TOKEN_RETENTION = timedelta(days=30)
_TOKEN_BYTES = 32
_SCOPE_ADMIN = "admin"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_api_token(token: str) -> bool:
    return token.startswith(TOKEN_PREFIX)


class ApiTokenService:
    def __init__(
        self,
        token_store: IApiTokenProvider,
        user_store: IUserProvider,
        *,
        audit_log: AuditLogService | None = None,
    ) -> None:
        self._token_store = token_store
        self._user_store = user_store
        self._audit_log = audit_log

    async def create_token(
        self,
        admin: User,
        description: str | None = None,
        expiration_days: int | None = None,
    ) -> CreatedApiToken:
        _require_admin(admin)
        days = expiration_days if expiration_days and expiration_days > 0 else DEFAULT_EXPIRATION_DAYS
        if days > MAX_EXPIRATION_DAYS:
            raise ValidationError(
                f"token expiration cannot exceed {MAX_EXPIRATION_DAYS} days",
                code="INVALID_EXPIRATION",
            )

        plaintext = TOKEN_PREFIX + secrets.token_hex(_TOKEN_BYTES)
        record = await self._token_store.create_token(
            admin.id,
            hash_token(plaintext),
            (description or "").strip() or None,
            _SCOPE_ADMIN,
            utc_now() + timedelta(days=days),
        )
        if self._audit_log is not None:
            await self._audit_log.log_action(
                admin.id, "create_api_token", "api_token", record.id, {"expiration_days": days}
            )
        return CreatedApiToken(token=plaintext, api_token=record)

    async def validate_token(self, token: str, *, now: datetime | None = None) -> User:
        """Resolve a plaintext token to its owner.

        Raises
        ------
        TokenInvalidError
            Unknown or revoked token, or an owner who is no longer an
            active admin.
        TokenExpiredError
            The token is past its expiry.
        """
        now = now or utc_now()
        record = await self._token_store.get_token_by_hash(hash_token(token))
        if record is None:
            raise TokenInvalidError("invalid API token")
        if record.is_revoked():
            raise TokenInvalidError("API token has been revoked")
        if record.is_expired(now):
            raise TokenExpiredError("API token has expired")

        user = await self._user_store.get_user(record.user_id)
        if user is None or not user.is_active:
            raise TokenInvalidError("user account is not active")
        if record.scope == _SCOPE_ADMIN and not user.is_admin:
            logger.warning("api_token_owner_not_admin", token_id=record.id, user_id=user.id)
            raise TokenInvalidError("API token owner is not an admin")

        await self._token_store.touch_token(record.id, now)
        return user

    async def list_tokens(self, admin: User) -> list[ApiToken]:
        _require_admin(admin)
        return await self._token_store.list_tokens(admin.id)

    async def get_token(self, admin: User, token_id: int) -> ApiToken:
        _require_admin(admin)
        record = await self._token_store.get_token(admin.id, token_id)
        if record is None:
            raise NotFoundError(f"API token {token_id} not found", code="TOKEN_NOT_FOUND")
        return record

    async def revoke_token(self, admin: User, token_id: int) -> None:
        _require_admin(admin)
        if not await self._token_store.revoke_token(admin.id, token_id, utc_now()):
            raise NotFoundError("token not found or already revoked", code="TOKEN_NOT_FOUND")
        if self._audit_log is not None:
            await self._audit_log.log_action(admin.id, "revoke_api_token", "api_token", token_id)

    async def cleanup_expired_tokens(self, *, now: datetime | None = None) -> int:
        """Delete tokens expired or revoked more than 30 days before *now*."""
        deleted = await self._token_store.delete_stale_tokens((now or utc_now()) - STALE_TOKEN_RETENTION)
        logger.info("api_token_cleanup_completed", deleted=deleted)
        return deleted


def _require_admin(actor: User) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError("admin access required", code="ADMIN_REQUIRED")
