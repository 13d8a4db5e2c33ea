"""
Client model: the tenant that owns post categories and posts.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship
from postdesk.db.base import Base
from postdesk.models.timestamps import utcnow
from .relationships import client_user_association


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    users = relationship(
        "User",
        secondary=client_user_association,
        back_populates="clients",
        order_by=client_user_association.c.id,
        passive_deletes=True,
    )
    post_categories = relationship(
        "PostCategory",
        back_populates="client",
        cascade="all, delete",
        passive_deletes=True,
    )
    posts = relationship(
        "Post", back_populates="client", cascade="all, delete", passive_deletes=True
    )
