from sqlalchemy import Column, DateTime, ForeignKey, String

from account_api.core.database import Base
from account_api.models.user import utcnow


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(128), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    user_agent = Column(String(512), nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
