"""
Bearer token records.

Every issued JWT carries the ``token_id`` of one of these rows as its
``jti``; deleting the row (logout) revokes that token and only that token.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from postdesk.db.base import Base
from postdesk.models.timestamps import utcnow
import uuid


class AccessToken(Base):
    __tablename__ = "access_tokens"

    token_id = Column(
        String(36),
        primary_key=True,
        index=True,
        nullable=False,
        default=lambda: str(uuid.uuid4()),
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False, default="auth-token")

    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="tokens")
