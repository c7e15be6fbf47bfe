from account_api.repositories.refresh_tokens import RefreshTokenRepository
from account_api.repositories.users import UserQuery, UserRepository

__all__ = ["RefreshTokenRepository", "UserQuery", "UserRepository"]
