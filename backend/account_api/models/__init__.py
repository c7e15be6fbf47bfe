from account_api.models.user import User
from account_api.models.refresh_token import RefreshToken

__all__ = ["User", "RefreshToken"]
