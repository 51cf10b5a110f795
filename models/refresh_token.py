"""
RefreshToken model: one row per issued token pair.
Fields:
- token (primary key) - the opaque string handed to the client
- jwt_id - jti of the access token issued alongside it
- user_id (String(36)) - FK to users.id
- issued_at, expires_at
- used, revoked - monotone flags, never cleared
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_model import Base
from utils.datetime_utils import to_utc


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(128), primary_key=True)
    jwt_id = Column(String(64), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index("ix_refresh_tokens_user_id", "user_id"),
    )

    def is_expired(self, now) -> bool:
        """Expiry is inclusive: a token whose expires_at equals now is expired."""
        return now >= to_utc(self.expires_at)

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} jti={self.jwt_id} used={self.used} revoked={self.revoked}>"
