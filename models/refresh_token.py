"""
RefreshToken model: one row per issued refresh token so we can revoke and rotate them
Fields:
- token_hash (unique) - sha256 of the identifier handed to the client
- user_id (String(36)) - FK to users.id
- revoked (bool), revoked_at
- created_at, expires_at
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from models.base_model import BaseModel, Base
from utils.security import as_utc


class TokenState(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    def state(self, now: datetime) -> TokenState:
        """Expiry is derived from the clock on every read, never stored."""
        if self.revoked:
            return TokenState.REVOKED
        if now >= as_utc(self.expires_at):
            return TokenState.EXPIRED
        return TokenState.ACTIVE

    def __repr__(self):
        return f"<RefreshToken id={self.id} user={self.user_id} revoked={self.revoked}>"
