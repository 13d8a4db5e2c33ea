"""
Association tables for many-to-many relationships in the IAM system.

The surrogate ``id`` keeps insertion order, which is what "first client"
scoping falls back to for users without an explicit default client.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table, UniqueConstraint
from postdesk.db.base import Base
from postdesk.models.timestamps import utcnow


client_user_association = Table(
    "client_user",
    Base.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "client_id",
        Integer,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("created_at", DateTime(timezone=True), default=utcnow),
    UniqueConstraint("client_id", "user_id", name="uq_client_user"),
)
