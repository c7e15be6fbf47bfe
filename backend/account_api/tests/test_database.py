import pytest
from sqlalchemy import func, select

from account_api.models import User


@pytest.mark.asyncio
async def test_sqlite_reads_open_a_transaction(sessions):
    async with sessions() as session:
        await session.scalar(select(func.count()).select_from(User))
        connection = await session.connection()
        raw = await connection.get_raw_connection()

        assert raw.driver_connection.in_transaction


@pytest.mark.asyncio
async def test_sqlite_writes_still_commit(sessions, user_repo):
    async with sessions() as session:
        session.add(User(name="John Doe", email="john@test.com", password_hash="x"))
        await session.commit()

    assert (await user_repo.get_by_email("john@test.com")).name == "John Doe"
