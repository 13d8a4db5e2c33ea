"""
User model.

``admin`` unlocks the admin-only resources (users, clients, cross-client
browsing). ``default_client_id`` pins the client a non-admin user is scoped
to; when it is empty the scope falls back to the first association.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from postdesk.db.base import Base
from postdesk.models.timestamps import utcnow
from .relationships import client_user_association


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    admin = Column(Boolean, default=False, nullable=False)

    default_client_id = Column(
        Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    clients = relationship(
        "Client",
        secondary=client_user_association,
        back_populates="users",
        order_by=client_user_association.c.id,
        passive_deletes=True,
    )
    posts = relationship(
        "Post", back_populates="user", cascade="all, delete", passive_deletes=True
    )
    tokens = relationship(
        "AccessToken",
        back_populates="user",
        cascade="all, delete",
        passive_deletes=True,
    )
