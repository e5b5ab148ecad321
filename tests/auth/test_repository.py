"""Tests for the user and refresh token repositories against SQLite."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from authcore.auth.repository import RefreshTokenRepository, UserRepository
from authcore.models.database import RefreshTokenDB, UserDB, utcnow


@pytest.fixture
def users(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def refresh_tokens(db_session: AsyncSession) -> RefreshTokenRepository:
    return RefreshTokenRepository(db_session)


@pytest.fixture
async def user(users: UserRepository, db_session: AsyncSession) -> UserDB:
    created = await users.create("alice", "Alice@Example.com", "hash", "Alice")
    await db_session.commit()
    return created


async def _session(
    repo: RefreshTokenRepository, user: UserDB, expires_in: timedelta = timedelta(days=7)
) -> RefreshTokenDB:
    return await repo.create(
        user_id=user.id,
        token=f"token-{uuid4().hex}",
        expires_at=utcnow() + expires_in,
        user_agent="agent",
        ip_address="127.0.0.1",
    )


async def test_create_normalizes_and_finds_user(users: UserRepository, user: UserDB) -> None:
    assert user.email == "alice@example.com"
    assert user.created_at is not None

    assert (await users.find_by_email("ALICE@example.com ")).id == user.id
    assert (await users.find_by_username("Alice")).id == user.id
    assert (await users.find_by_id(user.id)).id == user.id
    assert await users.find_by_email("bob@example.com") is None
    assert await users.find_by_id(uuid4()) is None


async def test_update_password(users: UserRepository, user: UserDB) -> None:
    assert await users.update_password(user.id, "new-hash") is True
    assert (await users.find_by_id(user.id)).password == "new-hash"
    assert await users.update_password(uuid4(), "new-hash") is False


async def test_find_by_token_skips_revoked(
    refresh_tokens: RefreshTokenRepository, user: UserDB
) -> None:
    row = await _session(refresh_tokens, user)

    assert (await refresh_tokens.find_by_token(row.token)).id == row.id

    assert await refresh_tokens.revoke_by_token(row.token) is True
    assert await refresh_tokens.find_by_token(row.token) is None
    assert (await refresh_tokens.find_by_id(row.id)).is_revoked is True


async def test_revoke_by_token_affects_only_unrevoked(
    refresh_tokens: RefreshTokenRepository, user: UserDB
) -> None:
    row = await _session(refresh_tokens, user)

    assert await refresh_tokens.revoke_by_token(row.token) is True
    assert await refresh_tokens.revoke_by_token(row.token) is False
    assert await refresh_tokens.revoke_by_token("unknown") is False


async def test_revoke_sets_timestamp(refresh_tokens: RefreshTokenRepository, user: UserDB) -> None:
    row = await _session(refresh_tokens, user)

    await refresh_tokens.revoke(row)

    assert row.is_revoked is True
    assert row.revoked_at is not None
    assert not row.is_valid()


async def test_find_active_by_user_id(refresh_tokens: RefreshTokenRepository, user: UserDB) -> None:
    first = await _session(refresh_tokens, user)
    second = await _session(refresh_tokens, user)
    revoked = await _session(refresh_tokens, user)
    await refresh_tokens.revoke(revoked)

    active = await refresh_tokens.find_active_by_user_id(user.id)

    assert {row.id for row in active} == {first.id, second.id}


async def test_revoke_all_for_user(refresh_tokens: RefreshTokenRepository, user: UserDB) -> None:
    for _ in range(3):
        await _session(refresh_tokens, user)

    assert await refresh_tokens.revoke_all_for_user(user.id) == 3
    assert await refresh_tokens.revoke_all_for_user(user.id) == 0
    assert await refresh_tokens.find_active_by_user_id(user.id) == []


async def test_revoke_all_except_keeps_one(
    refresh_tokens: RefreshTokenRepository, user: UserDB
) -> None:
    keep = await _session(refresh_tokens, user)
    await _session(refresh_tokens, user)
    await _session(refresh_tokens, user)

    assert await refresh_tokens.revoke_all_except(user.id, keep.id) == 2

    active = await refresh_tokens.find_active_by_user_id(user.id)
    assert [row.id for row in active] == [keep.id]


async def test_delete_expired(refresh_tokens: RefreshTokenRepository, user: UserDB) -> None:
    live = await _session(refresh_tokens, user)
    expired = await _session(refresh_tokens, user, expires_in=-timedelta(minutes=1))
    expired_revoked = await _session(refresh_tokens, user, expires_in=-timedelta(days=1))
    await refresh_tokens.revoke(expired_revoked)

    assert expired.is_expired()
    assert await refresh_tokens.delete_expired() == 2

    assert await refresh_tokens.find_by_id(live.id) is not None
    assert await refresh_tokens.find_by_id(expired.id) is None


def test_validity_boundary() -> None:
    now = utcnow()
    row = RefreshTokenDB(token="t", expires_at=now, is_revoked=False)

    assert row.is_expired(now)
    assert not row.is_valid(now)
    assert row.is_valid(now - timedelta(seconds=1))
