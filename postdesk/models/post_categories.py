from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from postdesk.db.base import Base
from postdesk.models.timestamps import utcnow


class PostCategory(Base):
    __tablename__ = "posts_categories"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(
        Integer,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    client = relationship("Client", back_populates="post_categories")
    posts = relationship(
        "Post",
        back_populates="category",
        cascade="all, delete",
        passive_deletes=True,
    )
