"""
RefreshToken model: one row per issued refresh token.
Fields:
- token_hash - SHA-256 digest of the bearer value (the value itself is never stored)
- user_id (String(36)) - FK to users.id
- expires_at, created_at
- revoked_at - set once, never cleared
"""
from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel, as_utc, utcnow


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None and utcnow() < as_utc(self.expires_at)

    def __repr__(self):
        return f"<RefreshToken id={self.id} user={self.user_id}>"
