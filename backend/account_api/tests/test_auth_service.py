from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from account_api.core.errors import InternalError, InvalidCredentials, InvalidToken, NoToken, TokenExpired
from account_api.core.security import decode_access_token
from account_api.models import RefreshToken
from account_api.services.auth import AuthSessionManager, RequestMetadata
from account_api.tests.helpers import STRONG_PASSWORD

METADATA = RequestMetadata(user_agent="pytest", ip_address="127.0.0.1")


async def _token_count(sessions, user_id=None):
    statement = select(func.count()).select_from(RefreshToken)
    if user_id is not None:
        statement = statement.where(RefreshToken.user_id == user_id)
    async with sessions() as session:
        return await session.scalar(statement)


@pytest_asyncio.fixture()
async def john(user_manager):
    return await user_manager.register("John Doe", "john@test.com", STRONG_PASSWORD)


@pytest.mark.asyncio
async def test_login_issues_access_token_and_persists_one_refresh_token(auth_manager, token_repo, sessions, john):
    issued = await auth_manager.login("john@test.com", STRONG_PASSWORD, METADATA)

    payload = decode_access_token(issued.access_token)
    assert payload["sub"] == john.id
    assert payload["email"] == "john@test.com"
    assert await _token_count(sessions, john.id) == 1

    stored = await token_repo.find(issued.refresh_token)
    assert stored.user_id == john.id
    assert stored.user_agent == "pytest"
    assert stored.ip_address == "127.0.0.1"


@pytest.mark.asyncio
async def test_login_without_metadata_stores_nulls(auth_manager, token_repo, john):
    issued = await auth_manager.login("john@test.com", STRONG_PASSWORD, RequestMetadata())
    stored = await token_repo.find(issued.refresh_token)
    assert stored.user_agent is None
    assert stored.ip_address is None


@pytest.mark.asyncio
async def test_unknown_email_and_wrong_password_fail_identically(auth_manager, sessions, john):
    with pytest.raises(InvalidCredentials) as unknown:
        await auth_manager.login("nobody@test.com", STRONG_PASSWORD, METADATA)
    with pytest.raises(InvalidCredentials) as wrong:
        await auth_manager.login("john@test.com", "Wrong123!", METADATA)

    assert type(unknown.value) is type(wrong.value)
    assert unknown.value.message == wrong.value.message
    assert unknown.value.status_code == wrong.value.status_code == 401
    assert await _token_count(sessions) == 0


@pytest.mark.asyncio
async def test_soft_deleted_user_cannot_login(auth_manager, user_manager, john):
    await user_manager.delete_user(john.id)
    with pytest.raises(InvalidCredentials):
        await auth_manager.login("john@test.com", STRONG_PASSWORD, METADATA)


@pytest.mark.asyncio
async def test_refresh_rotates_exactly_once(auth_manager, token_repo, john):
    issued = await auth_manager.login("john@test.com", STRONG_PASSWORD, METADATA)

    rotated = await auth_manager.refresh(issued.refresh_token, METADATA)

    assert rotated.refresh_token != issued.refresh_token
    assert decode_access_token(rotated.access_token)["sub"] == john.id
    assert await token_repo.find(issued.refresh_token) is None
    assert (await token_repo.find(rotated.refresh_token)).user_id == john.id

    with pytest.raises(InvalidToken):
        await auth_manager.refresh(issued.refresh_token, METADATA)


@pytest.mark.asyncio
async def test_refresh_without_token(auth_manager):
    with pytest.raises(NoToken):
        await auth_manager.refresh(None, METADATA)
    with pytest.raises(NoToken):
        await auth_manager.refresh("", METADATA)


@pytest.mark.asyncio
async def test_refresh_with_unknown_token(auth_manager):
    with pytest.raises(InvalidToken):
        await auth_manager.refresh("never-issued", METADATA)


@pytest.mark.asyncio
async def test_expired_refresh_token_is_removed(auth_manager, token_repo, john):
    await token_repo.create(
        RefreshToken(
            token="stale-token",
            user_id=john.id,
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
    )

    with pytest.raises(TokenExpired):
        await auth_manager.refresh("stale-token", METADATA)

    assert await token_repo.find("stale-token") is None
    # a second attempt no longer sees an expired token, only an unknown one
    with pytest.raises(InvalidToken):
        await auth_manager.refresh("stale-token", METADATA)


@pytest.mark.asyncio
async def test_token_expires_when_clock_passes_ttl(user_repo, token_repo, john):
    issued = await AuthSessionManager(user_repo, token_repo).login("john@test.com", STRONG_PASSWORD, METADATA)
    later = AuthSessionManager(
        user_repo, token_repo, clock=lambda: datetime.now(timezone.utc) + timedelta(days=8)
    )
    with pytest.raises(TokenExpired):
        await later.refresh(issued.refresh_token, METADATA)


@pytest.mark.asyncio
async def test_rotation_loses_to_a_concurrent_rotation(auth_manager, token_repo, sessions, john, monkeypatch):
    issued = await auth_manager.login("john@test.com", STRONG_PASSWORD, METADATA)
    snapshot = await token_repo.find(issued.refresh_token)
    await auth_manager.refresh(issued.refresh_token, METADATA)

    # the losing request read the token before the winner rotated it
    async def stale_find(token):
        return snapshot

    monkeypatch.setattr(token_repo, "find", stale_find)
    with pytest.raises(InvalidToken):
        await auth_manager.refresh(issued.refresh_token, METADATA)
    assert await _token_count(sessions, john.id) == 1


@pytest.mark.asyncio
async def test_logout_is_idempotent(auth_manager, token_repo, john):
    issued = await auth_manager.login("john@test.com", STRONG_PASSWORD, METADATA)

    await auth_manager.logout(issued.refresh_token)
    assert await token_repo.find(issued.refresh_token) is None

    await auth_manager.logout(issued.refresh_token)
    await auth_manager.logout(None)


@pytest.mark.asyncio
async def test_unexpected_store_failure_becomes_internal_error(user_repo, token_repo, john, monkeypatch):
    async def broken_create(record):
        raise RuntimeError("disk full")

    monkeypatch.setattr(token_repo, "create", broken_create)
    manager = AuthSessionManager(user_repo, token_repo)

    with pytest.raises(InternalError) as excinfo:
        await manager.login("john@test.com", STRONG_PASSWORD, METADATA)
    assert "disk full" not in excinfo.value.message
