"""
RefreshTokenRecord: one row per refresh session, used when REFRESH_TOKEN_STORAGE=table.
Unlike the token embedded on the user row, several live rows per user are allowed
(one per device) and each is revoked independently.
Fields:
- token (unique) - SHA-256 digest of the refresh token
- user_id - FK to users.id
- expires_at, revoked_at, created_at
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class RefreshTokenRecord(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_sessions")

    __table_args__ = (
        Index("ix_refresh_tokens_user_live", "user_id", "revoked_at"),
    )

    def __repr__(self):
        return f"<RefreshTokenRecord user={self.user_id} revoked={self.revoked_at is not None}>"
