from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from account_api.models import RefreshToken


class RefreshTokenRepository:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def create(self, record: RefreshToken) -> RefreshToken:
        async with self._sessions() as session:
            session.add(record)
            await session.commit()
            return record

    async def find(self, token: str) -> Optional[RefreshToken]:
        async with self._sessions() as session:
            return await session.scalar(select(RefreshToken).where(RefreshToken.token == token))

    async def delete(self, token: str) -> bool:
        """Delete a token; absent tokens are not an error."""
        async with self._sessions() as session:
            result = await session.execute(delete(RefreshToken).where(RefreshToken.token == token))
            await session.commit()
            return result.rowcount > 0

    async def rotate(self, old_token: str, replacement: RefreshToken) -> bool:
        """
        Replace ``old_token`` with ``replacement`` in a single transaction.

        Returns False, leaving the store untouched, when ``old_token`` was
        already gone (for example consumed by a concurrent rotation).
        """
        async with self._sessions() as session:
            result = await session.execute(delete(RefreshToken).where(RefreshToken.token == old_token))
            if result.rowcount == 0:
                await session.rollback()
                return False
            session.add(replacement)
            await session.commit()
            return True
