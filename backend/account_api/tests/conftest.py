import asyncio
import os
import tempfile

os.environ.setdefault(
    "DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'account_api_app.db')}"
)
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["ENVIRONMENT"] = "test"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from account_api.core.database import build_engine, build_sessionmaker, create_schema, get_sessionmaker
from account_api.main import app
from account_api.repositories import RefreshTokenRepository, UserRepository
from account_api.services.auth import AuthSessionManager
from account_api.services.users import UserAccountManager


@pytest.fixture()
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture()
async def sessions(database_url):
    engine = build_engine(database_url)
    await create_schema(engine)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture()
def user_repo(sessions):
    return UserRepository(sessions)


@pytest.fixture()
def token_repo(sessions):
    return RefreshTokenRepository(sessions)


@pytest.fixture()
def auth_manager(user_repo, token_repo):
    return AuthSessionManager(user_repo, token_repo)


@pytest.fixture()
def user_manager(user_repo):
    return UserAccountManager(user_repo)


@pytest.fixture()
def api_sessions(database_url):
    engine = build_engine(database_url)
    asyncio.run(create_schema(engine))
    yield build_sessionmaker(engine)
    asyncio.run(engine.dispose())


@pytest.fixture()
def client(api_sessions):
    app.dependency_overrides[get_sessionmaker] = lambda: api_sessions
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
