# backend/zlecenia/models/post.py
"""
Post model: a tutoring request or offer published by a user.

Message threads are always anchored to a post.
"""

import uuid

from sqlalchemy import Column, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base
from .types import UTCDateTime, utcnow


class Post(Base):
    __tablename__ = "posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", foreign_keys=[owner_id])

    __table_args__ = (
        Index("idx_posts_owner", "owner_id"),
        Index("idx_posts_created", "created_at"),
    )

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        return self.owner_id == user_id
