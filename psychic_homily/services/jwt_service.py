"""JWT issue, validation and refresh (PyJWT, HS256).

Session tokens carry ``user_id`` and ``email`` plus the registered
``exp``/``iat``/``iss``/``aud`` claims.  Validation always reloads the
user, so an admin demotion or deactivation takes effect on the next
request rather than when the token expires.

Purpose tokens (magic link, email verification, account recovery) are
signed with the same key but are told apart by ``sub`` and carry no
audience, so one can never be replayed as another or as a session.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import jwt
import structlog

from psychic_homily.interfaces.user_provider import IUserProvider
from psychic_homily.models.user import User
from psychic_homily.utils.dates import utc_now
from psychic_homily.utils.errors import ConfigurationError, TokenExpiredError, TokenInvalidError

logger = structlog.get_logger(logger_name=__name__)

_ALGORITHM = "HS256"

SUBJECT_MAGIC_LINK = "magic-link"
SUBJECT_EMAIL_VERIFICATION = "email-verification"
SUBJECT_ACCOUNT_RECOVERY = "account-recovery"

PURPOSE_LIFETIMES: dict[str, timedelta] = {
    SUBJECT_MAGIC_LINK: timedelta(minutes=15),
    SUBJECT_EMAIL_VERIFICATION: timedelta(hours=24),
    SUBJECT_ACCOUNT_RECOVERY: timedelta(hours=1),
}


class JWTService:
    """Signs and verifies every token the API hands out."""

    def __init__(
        self,
        user_store: IUserProvider,
        *,
        secret_key: str,
        expiry_hours: int = 24,
        issuer: str = "psychic-homily-backend",
        audience: str = "psychic-homily-users",
        magic_link_minutes: int | None = None,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("JWT secret key is not configured")
        self._user_store = user_store
        self._secret = secret_key
        self._expiry = timedelta(hours=expiry_hours)
        self._issuer = issuer
        self._audience = audience
        self._lifetimes = dict(PURPOSE_LIFETIMES)
        if magic_link_minutes is not None:
            self._lifetimes[SUBJECT_MAGIC_LINK] = timedelta(minutes=magic_link_minutes)

    # ── Session tokens ─────────────────────────────────────────────────

    def create_token(self, user: User) -> str:
        now = utc_now()
        claims = {
            "user_id": user.id,
            "email": user.email,
            "exp": now + self._expiry,
            "iat": now,
            "iss": self._issuer,
            "aud": self._audience,
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def _decode_session(self, token: str, *, verify_exp: bool = True) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={"verify_exp": verify_exp, "require": ["exp", "iat", "user_id"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalidError() from exc

    async def _load_user(self, claims: dict[str, Any]) -> User:
        user_id = claims.get("user_id")
        if not isinstance(user_id, int):
            raise TokenInvalidError()
        user = await self._user_store.get_user(user_id)
        if user is None or not user.is_active:
            raise TokenInvalidError("Token user no longer exists")
        return user

    async def validate_token(self, token: str) -> User:
        """Return the token's user.

        Raises
        ------
        TokenExpiredError
            The signature is valid but ``exp`` has passed.
        TokenInvalidError
            Anything else: bad signature, wrong issuer/audience, unknown user.
        """
        return await self._load_user(self._decode_session(token))

    async def validate_token_lenient(self, token: str, grace: timedelta) -> User:
        """Like :meth:`validate_token`, but accept tokens expired within *grace*.

        Signature, issuer and audience are still enforced.
        """
        claims = self._decode_session(token, verify_exp=False)
        expires = claims["exp"]
        expired_for = utc_now().timestamp() - float(expires)
        if expired_for > grace.total_seconds():
            raise TokenExpiredError("Token expired beyond the refresh grace period")
        return await self._load_user(claims)

    async def refresh_token(self, token: str, grace: timedelta) -> tuple[User, str]:
        user = await self.validate_token_lenient(token, grace)
        logger.info("token_refreshed", user_id=user.id)
        return user, self.create_token(user)

    # ── Purpose tokens ─────────────────────────────────────────────────

    def create_purpose_token(self, user: User, subject: str) -> str:
        if subject not in self._lifetimes:
            raise ValueError(f"unknown token purpose: {subject}")
        now = utc_now()
        claims = {
            "user_id": user.id,
            "email": user.email,
            "sub": subject,
            "exp": now + self._lifetimes[subject],
            "iat": now,
            "iss": self._issuer,
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def validate_purpose_token(self, token: str, subject: str) -> dict[str, Any]:
        """Decode a purpose token and check its subject; returns the claims."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "sub", "user_id"], "verify_aud": False},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalidError() from exc
        if claims.get("sub") != subject or "aud" in claims:
            raise TokenInvalidError("Token was issued for a different purpose")
        return claims
