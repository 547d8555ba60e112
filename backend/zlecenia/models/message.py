# backend/zlecenia/models/message.py
"""
Message model for the chat system.

Messages are append-only and immutable once written.
"""

import uuid

from sqlalchemy import Column, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base
from .types import UTCDateTime, utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    thread_id = Column(Uuid, ForeignKey("msg_threads.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    sent_at = Column(UTCDateTime, nullable=False, default=utcnow)

    thread = relationship("MessageThread", back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id])

    __table_args__ = (Index("idx_messages_thread_sent", "thread_id", "sent_at"),)
