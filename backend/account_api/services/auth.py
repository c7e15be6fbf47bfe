"""
Refresh-token session lifecycle: login, rotation on refresh, logout.

A refresh token is single use. ``refresh`` consumes the presented token and
stores its replacement in one store transaction, so a rotated token
presented again is simply absent and fails as ``InvalidToken``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi.concurrency import run_in_threadpool

from account_api.core.config import Settings, settings as default_settings
from account_api.core.errors import (
    InternalError,
    InvalidCredentials,
    InvalidToken,
    NoToken,
    ServiceError,
    TokenExpired,
)
from account_api.core.security import (
    create_access_token,
    generate_refresh_token,
    refresh_token_expiry,
    verify_password,
)
from account_api.models import RefreshToken
from account_api.repositories import RefreshTokenRepository, UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestMetadata:
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


@dataclass(frozen=True)
class IssuedSession:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


def _utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthSessionManager:
    def __init__(
        self,
        users: UserRepository,
        refresh_tokens: RefreshTokenRepository,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.users = users
        self.refresh_tokens = refresh_tokens
        self.settings = settings
        self.clock = clock

    def _new_refresh_record(self, user_id: str, metadata: RequestMetadata) -> RefreshToken:
        return RefreshToken(
            token=generate_refresh_token(),
            user_id=user_id,
            expires_at=refresh_token_expiry(self.clock(), self.settings.refresh_token_expire_days),
            user_agent=metadata.user_agent,
            ip_address=metadata.ip_address,
        )

    async def login(self, email: str, password: str, metadata: RequestMetadata) -> IssuedSession:
        try:
            user = await self.users.get_by_email(email)
            if user is None or not await run_in_threadpool(verify_password, password, user.password_hash):
                logger.info("Login rejected for %s", email)
                raise InvalidCredentials()

            access_token = create_access_token(
                user.id, email=user.email, expires_minutes=self.settings.access_token_expire_minutes
            )
            record = self._new_refresh_record(user.id, metadata)
            await self.refresh_tokens.create(record)
        except ServiceError:
            raise
        except Exception as exc:
            logger.exception("Login failed unexpectedly")
            raise InternalError() from exc

        logger.info("User %s logged in", user.id)
        return IssuedSession(access_token, record.token, _utc(record.expires_at))

    async def refresh(self, presented_token: Optional[str], metadata: RequestMetadata) -> IssuedSession:
        if not presented_token:
            raise NoToken()

        try:
            stored = await self.refresh_tokens.find(presented_token)
            if stored is None:
                logger.warning("Unknown refresh token presented, possibly an already rotated one")
                raise InvalidToken()

            if _utc(stored.expires_at) < self.clock():
                await self.refresh_tokens.delete(presented_token)
                logger.info("Expired refresh token for user %s removed", stored.user_id)
                raise TokenExpired()

            access_token = create_access_token(
                stored.user_id, expires_minutes=self.settings.access_token_expire_minutes
            )
            replacement = self._new_refresh_record(stored.user_id, metadata)
            if not await self.refresh_tokens.rotate(presented_token, replacement):
                logger.warning("Refresh token for user %s was consumed concurrently", stored.user_id)
                raise InvalidToken()
        except ServiceError:
            raise
        except Exception as exc:
            logger.exception("Refresh failed unexpectedly; the session must be re-established")
            raise InternalError() from exc

        logger.info("Refresh token rotated for user %s", stored.user_id)
        return IssuedSession(access_token, replacement.token, _utc(replacement.expires_at))

    async def logout(self, presented_token: Optional[str]) -> None:
        if presented_token:
            await self.refresh_tokens.delete(presented_token)
