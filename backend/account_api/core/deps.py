from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from account_api.core.database import get_sessionmaker
from account_api.core.errors import Unauthorized
from account_api.core.security import decode_access_token
from account_api.repositories import RefreshTokenRepository, UserRepository
from account_api.services.auth import AuthSessionManager
from account_api.services.users import UserAccountManager

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_current_subject(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    if not token:
        raise Unauthorized()
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise Unauthorized() from exc
    subject = payload.get("sub")
    if not subject:
        raise Unauthorized()
    return subject


def get_auth_manager(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
) -> AuthSessionManager:
    return AuthSessionManager(UserRepository(sessions), RefreshTokenRepository(sessions))


def get_user_manager(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
) -> UserAccountManager:
    return UserAccountManager(UserRepository(sessions))
