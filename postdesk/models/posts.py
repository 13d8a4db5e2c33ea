"""
Post model.

``image_key`` is the object-store key written when the image was uploaded
through the API. Posts whose ``image_url`` was supplied by the caller have no
key, and their image is never deleted from storage.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from postdesk.db.base import Base
from postdesk.models.timestamps import utcnow


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id = Column(
        Integer,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    post_category_id = Column(
        Integer,
        ForeignKey("posts_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    image_url = Column(String(255), nullable=True)
    image_key = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="posts")
    client = relationship("Client", back_populates="posts")
    category = relationship("PostCategory", back_populates="posts")
