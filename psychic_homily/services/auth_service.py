"""Account registration, login and token-based flows.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: IUserProvider, JWTService, PasswordValidator,
#             INotificationProvider.
#
# Login flow:
#
#   lookup by email ──► locked? ──► AccountLockedError (423)
#        │
#        ▼
#   bcrypt check ──fail──► record_failed_login ──► 5th failure locks
#        │                                         the account 15 min
#        ▼
#   reset counter ──► (user, session JWT)
#
# Magic links, email verification and account recovery all use
# purpose-scoped JWTs from JWTService.  Nothing here sends mail: the
# token is logged for delivery and the API echoes it in development.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import math
import re
from datetime import timedelta

import bcrypt
import structlog

from psychic_homily.interfaces.notification_provider import INotificationProvider
from psychic_homily.interfaces.user_provider import IUserProvider
from psychic_homily.models.user import User
from psychic_homily.services.jwt_service import (
    SUBJECT_ACCOUNT_RECOVERY,
    SUBJECT_EMAIL_VERIFICATION,
    SUBJECT_MAGIC_LINK,
    JWTService,
)
from psychic_homily.services.password_validator import PasswordValidator
from psychic_homily.utils.dates import utc_now
from psychic_homily.utils.errors import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    TokenInvalidError,
    UserNotFoundError,
    ValidationError,
)

logger = structlog.get_logger(logger_name=__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
# bcrypt only reads the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72
_INVALID_CREDENTIALS = "invalid email or password"


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


async def hash_password(password: str) -> str:
    hashed = await asyncio.to_thread(bcrypt.hashpw, _password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


async def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return await asyncio.to_thread(
            bcrypt.checkpw, _password_bytes(password), password_hash.encode("utf-8")
        )
    except ValueError:
        # Malformed stored hash.
        return False


class AuthService:
    """Password, magic-link and token-driven account flows."""

    def __init__(
        self,
        user_store: IUserProvider,
        jwt_service: JWTService,
        password_validator: PasswordValidator,
        *,
        notifier: INotificationProvider | None = None,
        max_failed_attempts: int = 5,
        lock_minutes: int = 15,
    ) -> None:
        self._user_store = user_store
        self._jwt = jwt_service
        self._validator = password_validator
        self._notifier = notifier
        self._max_failed_attempts = max_failed_attempts
        self._lock_duration = timedelta(minutes=lock_minutes)

    # ── Registration ───────────────────────────────────────────────────

    async def _check_password(self, password: str) -> None:
        result = await self._validator.validate(password)
        if not result.valid:
            raise ValidationError(
                "password does not meet requirements", code="WEAK_PASSWORD", errors=result.errors
            )

    async def register(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> tuple[User, str]:
        """Create a password account and return ``(user, session token)``.

        Raises
        ------
        ValidationError
            Malformed email, or a password failing the policy (``errors``
            lists every failed rule).
        ConflictError
            The email is already registered.
        """
        email = (email or "").strip()
        if not _EMAIL_PATTERN.match(email):
            raise ValidationError("a valid email address is required", code="INVALID_EMAIL")
        if await self._user_store.get_user_by_email(email) is not None:
            raise ConflictError("a user with this email already exists", code="USER_EXISTS")
        await self._check_password(password)

        user = await self._user_store.create_user(
            email,
            await hash_password(password),
            first_name=first_name,
            last_name=last_name,
        )
        logger.info("user_registered", user_id=user.id)
        if self._notifier is not None:
            await self._notifier.notify_new_user(user)
        return user, self._jwt.create_token(user)

    # ── Login ──────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> tuple[User, str]:
        user = await self._user_store.get_user_by_email((email or "").strip())
        if user is None or not user.is_active:
            raise AuthenticationError(_INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

        now = utc_now()
        if user.is_locked(now):
            raise AccountLockedError(self._minutes_remaining(user))
        if user.locked_until is not None:
            # Lock expired: the next failure starts a fresh count.
            await self._user_store.reset_failed_logins(user.id)
            user = user.model_copy(update={"failed_login_attempts": 0, "locked_until": None})

        password_hash = await self._user_store.get_password_hash(user.id)
        if not await verify_password(password, password_hash):
            updated = await self._user_store.record_failed_login(
                user.id, self._max_failed_attempts, now + self._lock_duration
            )
            logger.info(
                "login_failed", user_id=user.id, attempts=updated.failed_login_attempts
            )
            if updated.is_locked(now):
                raise AccountLockedError(self._minutes_remaining(updated))
            raise AuthenticationError(_INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

        if user.failed_login_attempts or user.locked_until is not None:
            await self._user_store.reset_failed_logins(user.id)
        logger.info("login_succeeded", user_id=user.id)
        return user, self._jwt.create_token(user)

    @staticmethod
    def _minutes_remaining(user: User) -> int:
        if user.locked_until is None:
            return 0
        seconds = (user.locked_until - utc_now()).total_seconds()
        return max(1, math.ceil(seconds / 60))

    # ── Magic link ─────────────────────────────────────────────────────

    async def request_magic_link(self, email: str) -> str | None:
        """Issue a magic-link token for an existing active account.

        Returns None for unknown or inactive emails; callers must respond
        identically in both cases so the endpoint cannot enumerate users.
        """
        user = await self._user_store.get_user_by_email((email or "").strip())
        if user is None or not user.is_active:
            logger.info("magic_link_requested_unknown_email")
            return None
        token = self._jwt.create_purpose_token(user, SUBJECT_MAGIC_LINK)
        logger.info("magic_link_issued", user_id=user.id)
        return token

    async def _user_from_purpose_token(self, token: str, subject: str) -> User:
        claims = self._jwt.validate_purpose_token(token, subject)
        user = await self._user_store.get_user(claims["user_id"])
        if user is None or not user.is_active:
            raise TokenInvalidError("Token user no longer exists")
        if user.email.lower() != str(claims.get("email", "")).lower():
            # Email changed since the token was issued.
            raise TokenInvalidError()
        return user

    async def verify_magic_link(self, token: str) -> tuple[User, str]:
        user = await self._user_from_purpose_token(token, SUBJECT_MAGIC_LINK)
        if not user.email_verified:
            # Following the link proves ownership of the address.
            await self._user_store.set_email_verified(user.id)
            user = await self._require_user(user.id)
        if user.failed_login_attempts or user.locked_until is not None:
            await self._user_store.reset_failed_logins(user.id)
        logger.info("magic_link_login", user_id=user.id)
        return user, self._jwt.create_token(user)

    # ── Email verification ─────────────────────────────────────────────

    async def request_email_verification(self, user: User) -> str | None:
        if user.email_verified:
            return None
        token = self._jwt.create_purpose_token(user, SUBJECT_EMAIL_VERIFICATION)
        logger.info("email_verification_issued", user_id=user.id)
        return token

    async def verify_email(self, token: str) -> User:
        user = await self._user_from_purpose_token(token, SUBJECT_EMAIL_VERIFICATION)
        if not user.email_verified:
            await self._user_store.set_email_verified(user.id)
            logger.info("email_verified", user_id=user.id)
        return await self._require_user(user.id)

    # ── Password management ────────────────────────────────────────────

    async def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = await self._require_user(user_id)
        password_hash = await self._user_store.get_password_hash(user.id)
        if not await verify_password(current_password, password_hash):
            raise AuthenticationError("current password is incorrect", code="INVALID_PASSWORD")
        if current_password == new_password:
            raise ValidationError(
                "new password must differ from the current password", code="PASSWORD_UNCHANGED"
            )
        await self._check_password(new_password)
        await self._user_store.update_password_hash(user.id, await hash_password(new_password))
        logger.info("password_changed", user_id=user.id)

    async def request_account_recovery(self, email: str) -> str | None:
        user = await self._user_store.get_user_by_email((email or "").strip())
        if user is None or not user.is_active:
            return None
        token = self._jwt.create_purpose_token(user, SUBJECT_ACCOUNT_RECOVERY)
        logger.info("account_recovery_issued", user_id=user.id)
        return token

    async def recover_account(self, token: str, new_password: str) -> tuple[User, str]:
        """Set a new password from a recovery token and unlock the account."""
        user = await self._user_from_purpose_token(token, SUBJECT_ACCOUNT_RECOVERY)
        await self._check_password(new_password)
        await self._user_store.update_password_hash(user.id, await hash_password(new_password))
        await self._user_store.reset_failed_logins(user.id)
        logger.info("account_recovered", user_id=user.id)
        user = await self._require_user(user.id)
        return user, self._jwt.create_token(user)

    async def _require_user(self, user_id: int) -> User:
        user = await self._user_store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user
