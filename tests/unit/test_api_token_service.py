"""Unit tests for admin API tokens: creation, validation, revocation, cleanup."""

from __future__ import annotations

import hashlib
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from psychic_homily.interfaces.user_provider import IUserProvider
from psychic_homily.models.api_token import TOKEN_PREFIX
from psychic_homily.models.user import User
from psychic_homily.services.api_token_service import (
    DEFAULT_EXPIRATION_DAYS,
    ApiTokenService,
    hash_token,
    is_api_token,
)
from psychic_homily.utils.dates import utc_now
from psychic_homily.utils.errors import (
    NotFoundError,
    PermissionDeniedError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
)


@pytest.fixture
def tokens(api_token_store, user_store, audit_log):
    return ApiTokenService(api_token_store, user_store, audit_log=audit_log)


class TestCreateToken:
    async def test_plaintext_shape_and_hash_at_rest(self, tokens, admin_user, api_token_store):
        created = await tokens.create_token(admin_user, "  discovery laptop  ")
        assert created.token.startswith(TOKEN_PREFIX)
        assert len(created.token) == len(TOKEN_PREFIX) + 64
        assert created.api_token.description == "discovery laptop"
        assert created.api_token.scope == "admin"

        stored = await api_token_store.get_token_by_hash(
            hashlib.sha256(created.token.encode()).hexdigest()
        )
        assert stored.id == created.api_token.id
        assert await api_token_store.get_token_by_hash(created.token) is None

    async def test_default_expiry(self, tokens, admin_user):
        before = utc_now()
        created = await tokens.create_token(admin_user, expiration_days=0)
        lifetime = created.api_token.expires_at - before
        assert timedelta(days=DEFAULT_EXPIRATION_DAYS - 1) < lifetime
        assert lifetime <= timedelta(days=DEFAULT_EXPIRATION_DAYS, seconds=5)

    async def test_custom_expiry(self, tokens, admin_user):
        created = await tokens.create_token(admin_user, expiration_days=7)
        assert created.api_token.expires_at - utc_now() <= timedelta(days=7)

    async def test_expiry_over_a_year_rejected(self, tokens, admin_user):
        with pytest.raises(ValidationError) as exc_info:
            await tokens.create_token(admin_user, expiration_days=366)
        assert exc_info.value.code == "INVALID_EXPIRATION"

    async def test_admin_only(self, tokens, regular_user):
        with pytest.raises(PermissionDeniedError):
            await tokens.create_token(regular_user, "nope")

    async def test_creation_is_audited(self, tokens, admin_user, audit_log):
        created = await tokens.create_token(admin_user, expiration_days=30)
        logs, _ = await audit_log.get_audit_logs(action="create_api_token")
        assert logs[0].entity_id == created.api_token.id
        assert logs[0].metadata == {"expiration_days": 30}


class TestValidateToken:
    async def test_resolves_owner_and_records_use(self, tokens, admin_user):
        created = await tokens.create_token(admin_user)
        assert created.api_token.last_used_at is None

        user = await tokens.validate_token(created.token)
        assert user.id == admin_user.id

        (listed,) = await tokens.list_tokens(admin_user)
        assert listed.last_used_at is not None

    async def test_unknown_token(self, tokens):
        with pytest.raises(TokenInvalidError):
            await tokens.validate_token(TOKEN_PREFIX + "0" * 64)

    async def test_revoked_token(self, tokens, admin_user):
        created = await tokens.create_token(admin_user)
        await tokens.revoke_token(admin_user, created.api_token.id)
        with pytest.raises(TokenInvalidError) as exc_info:
            await tokens.validate_token(created.token)
        assert "revoked" in exc_info.value.message

    async def test_expired_token(self, tokens, admin_user):
        created = await tokens.create_token(admin_user, expiration_days=1)
        with pytest.raises(TokenExpiredError):
            await tokens.validate_token(created.token, now=utc_now() + timedelta(days=2))

    async def test_demoted_owner(self, tokens, admin_user, user_store):
        created = await tokens.create_token(admin_user)
        await user_store.set_admin(admin_user.id, False)
        with pytest.raises(TokenInvalidError):
            await tokens.validate_token(created.token)

    async def test_inactive_owner(self, api_token_store, admin_user):
        users = AsyncMock(spec=IUserProvider)
        service = ApiTokenService(api_token_store, users)
        created = await service.create_token(admin_user)
        users.get_user.return_value = User(
            id=admin_user.id, email=admin_user.email, is_admin=True, is_active=False
        )
        with pytest.raises(TokenInvalidError):
            await service.validate_token(created.token)


class TestListAndRevoke:
    async def test_list_hides_revoked_and_other_admins(self, tokens, admin_user, make_user):
        other_admin = await make_user(is_admin=True)
        first = await tokens.create_token(admin_user, "first")
        second = await tokens.create_token(admin_user, "second")
        await tokens.create_token(other_admin, "theirs")
        await tokens.revoke_token(admin_user, first.api_token.id)

        listed = await tokens.list_tokens(admin_user)
        assert [t.id for t in listed] == [second.api_token.id]

    async def test_revoke_twice_is_not_found(self, tokens, admin_user, audit_log):
        created = await tokens.create_token(admin_user)
        await tokens.revoke_token(admin_user, created.api_token.id)
        with pytest.raises(NotFoundError) as exc_info:
            await tokens.revoke_token(admin_user, created.api_token.id)
        assert exc_info.value.code == "TOKEN_NOT_FOUND"

        logs, total = await audit_log.get_audit_logs(action="revoke_api_token")
        assert total == 1

    async def test_cannot_revoke_someone_elses_token(self, tokens, admin_user, make_user):
        other_admin = await make_user(is_admin=True)
        created = await tokens.create_token(other_admin)
        with pytest.raises(NotFoundError):
            await tokens.revoke_token(admin_user, created.api_token.id)
        with pytest.raises(NotFoundError):
            await tokens.get_token(admin_user, created.api_token.id)


class TestCleanup:
    async def test_removes_only_stale_tokens(self, tokens, admin_user, api_token_store):
        keep = await tokens.create_token(admin_user, expiration_days=90)
        short = await tokens.create_token(admin_user, expiration_days=1)
        revoked = await tokens.create_token(admin_user, expiration_days=90)
        await tokens.revoke_token(admin_user, revoked.api_token.id)

        # Nothing has been stale for 30 days yet.
        assert await tokens.cleanup_expired_tokens() == 0

        deleted = await tokens.cleanup_expired_tokens(now=utc_now() + timedelta(days=32))
        assert deleted == 2
        assert await api_token_store.get_token(admin_user.id, keep.api_token.id) is not None
        assert await api_token_store.get_token(admin_user.id, short.api_token.id) is None
        assert await api_token_store.get_token(admin_user.id, revoked.api_token.id) is None


def test_token_helpers():
    assert is_api_token("phk_abc")
    assert not is_api_token("eyJhbGciOiJIUzI1NiJ9.x.y")
    assert hash_token("phk_abc") == hashlib.sha256(b"phk_abc").hexdigest()
