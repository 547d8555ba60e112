# backend/zlecenia/models/message_thread.py
"""
Message thread model.

A thread is the conversation between exactly two users about one post.

Design decisions:
- Participants are stored in canonical order (``user_a < user_b``) so the
  pair is unordered at the API level and the unique constraint
  ``(post_id, user_a, user_b)`` holds regardless of who initiated.
- ``updated_at`` is the last-activity timestamp: creating an existing thread
  again and appending a message both touch it.
- Threads are never deleted in normal operation.
"""

from typing import Optional, Tuple
import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base
from .types import UTCDateTime, utcnow


def canonical_pair(user1: uuid.UUID, user2: uuid.UUID) -> Tuple[uuid.UUID, uuid.UUID]:
    """Order two participant ids so that the first is the smaller one."""
    return (user1, user2) if user1 < user2 else (user2, user1)


class MessageThread(Base):
    __tablename__ = "msg_threads"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id = Column(Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_a = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_b = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)

    post = relationship("Post", foreign_keys=[post_id])
    messages = relationship(
        "Message",
        back_populates="thread",
        order_by="Message.sent_at",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("post_id", "user_a", "user_b", name="uq_msg_threads_post_pair"),
        CheckConstraint("user_a < user_b", name="ck_msg_threads_ordered_pair"),
        Index("idx_msg_threads_user_a", "user_a"),
        Index("idx_msg_threads_user_b", "user_b"),
        Index("idx_msg_threads_updated", "updated_at"),
    )

    def is_participant(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.user_a, self.user_b)

    def get_other_user_id(self, user_id: uuid.UUID) -> Optional[uuid.UUID]:
        if user_id == self.user_a:
            return self.user_b
        if user_id == self.user_b:
            return self.user_a
        return None

    def __repr__(self) -> str:
        return f"<MessageThread {self.id} post={self.post_id}>"
