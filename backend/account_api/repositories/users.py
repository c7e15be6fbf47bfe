"""
User store.

Every read goes through ``_active`` so soft-deleted rows never leak into
lookups, listings or counts. ``restore`` is the only path that addresses
deleted rows.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from account_api.models import User

SORTABLE_COLUMNS = {
    "createdAt": User.created_at,
    "name": User.name,
    "email": User.email,
}
SORT_ORDERS = ("asc", "desc")


def _active(statement: Select) -> Select:
    return statement.where(User.deleted_at.is_(None))


def is_unique_violation(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return "unique constraint" in message or "unique violation" in message or "duplicate key" in message


@dataclass
class UserQuery:
    skip: int
    take: int
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    search: str = ""


class UserRepository:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def create(self, name: str, email: str, password_hash: str) -> User:
        async with self._sessions() as session:
            user = User(name=name, email=email, password_hash=password_hash)
            session.add(user)
            await session.commit()
            return user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        async with self._sessions() as session:
            return await session.scalar(_active(select(User).where(User.id == user_id)))

    async def get_by_email(self, email: str) -> Optional[User]:
        async with self._sessions() as session:
            return await session.scalar(_active(select(User).where(User.email == email)))

    async def update(self, user_id: str, changes: dict) -> Optional[User]:
        async with self._sessions() as session:
            user = await session.scalar(_active(select(User).where(User.id == user_id)))
            if user is None:
                return None
            for field, value in changes.items():
                setattr(user, field, value)
            await session.commit()
            await session.refresh(user)
            return user

    async def soft_delete(self, user_id: str) -> bool:
        async with self._sessions() as session:
            result = await session.execute(
                update(User)
                .where(User.id == user_id, User.deleted_at.is_(None))
                .values(deleted_at=datetime.now(timezone.utc))
            )
            await session.commit()
            return result.rowcount > 0

    async def restore(self, user_id: str) -> bool:
        async with self._sessions() as session:
            result = await session.execute(
                update(User).where(User.id == user_id).values(deleted_at=None)
            )
            await session.commit()
            return result.rowcount > 0

    async def list_page(self, query: UserQuery) -> tuple[list[User], int]:
        column = SORTABLE_COLUMNS[query.sort_by]
        ordering = column.asc() if query.sort_order == "asc" else column.desc()

        rows_statement = _active(select(User))
        count_statement = _active(select(func.count()).select_from(User))
        if query.search:
            matches = or_(
                User.name.icontains(query.search, autoescape=True),
                User.email.icontains(query.search, autoescape=True),
            )
            rows_statement = rows_statement.where(matches)
            count_statement = count_statement.where(matches)
        rows_statement = rows_statement.order_by(ordering, User.id).offset(query.skip).limit(query.take)

        async with self._sessions() as session:
            # both statements run in one transaction; postgres needs REPEATABLE READ to share a snapshot
            if session.bind.dialect.name == "postgresql":
                await session.connection(execution_options={"isolation_level": "REPEATABLE READ"})
            rows = (await session.scalars(rows_statement)).all()
            total = await session.scalar(count_statement)
            return list(rows), total or 0
