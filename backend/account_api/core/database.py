import asyncio
import logging

from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from account_api.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _begin_sqlite_transactions(engine: AsyncEngine) -> None:
    # the sqlite driver only opens a transaction before writes; reads need an explicit BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def emit_begin(connection):
        connection.exec_driver_sql("BEGIN")


def build_engine(database_url: str) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        # sqlite connections are opened per use
        sqlite_engine = create_async_engine(database_url, poolclass=NullPool)
        _begin_sqlite_transactions(sqlite_engine)
        return sqlite_engine
    return create_async_engine(database_url, pool_pre_ping=True)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = build_engine(settings.database_url)
SessionLocal = build_sessionmaker(engine)


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return SessionLocal


async def create_schema(bind: AsyncEngine) -> None:
    # model modules must be imported for their tables to register on Base
    import account_api.models  # noqa: F401

    async with bind.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


async def ping(bind: AsyncEngine) -> None:
    async with bind.connect() as connection:
        await connection.execute(text("SELECT 1"))


async def wait_for_database(bind: AsyncEngine, max_attempts: int = 8, delay_seconds: float = 1.5) -> None:
    attempt = 0
    delay = delay_seconds
    while attempt < max_attempts:
        attempt += 1
        try:
            await ping(bind)
            return
        except (OperationalError, OSError) as exc:
            if attempt >= max_attempts:
                logger.error(
                    "Database connection failed after %s attempts.",
                    attempt,
                    exc_info=exc,
                )
                raise
            logger.warning(
                "Database not ready (attempt %s/%s). Retrying in %.1fs.",
                attempt,
                max_attempts,
                delay,
            )
            await asyncio.sleep(delay)
            delay = min(delay * 1.5, 10.0)
