# backend/zlecenia/repositories/message_repository.py
"""
Message Repository for the zlecenia messaging system.

Messages are append-only. Appending also touches the owning thread's
``updated_at`` and, on PostgreSQL, queues a ``pg_notify`` on the thread's
channel inside the same transaction so listeners hear about the message only
once it is committed.
"""

from dataclasses import dataclass
from datetime import datetime
import json
import logging
from typing import List, Optional
import uuid

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.message import Message
from ..models.types import utcnow
from ..models.user import User
from .base_repository import BaseRepository
from .thread_repository import ThreadRepository

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "thread_"


def channel_for_thread(thread_id: uuid.UUID) -> str:
    """NOTIFY channel for a thread (hex form keeps it a valid unquoted identifier)."""
    return f"{CHANNEL_PREFIX}{thread_id.hex}"


def notification_payload(message: Message) -> str:
    return json.dumps(
        {
            "message_id": str(message.id),
            "thread_id": str(message.thread_id),
            "sender_id": str(message.sender_id),
            "content": message.content,
            "sent_at": message.sent_at.isoformat(),
        }
    )


@dataclass
class MessageRow:
    id: uuid.UUID
    thread_id: uuid.UUID
    sender_id: uuid.UUID
    sender_name: str
    content: str
    sent_at: datetime


class MessageRepository(BaseRepository[Message]):
    def __init__(self, db: Session):
        super().__init__(db, Message)
        self.threads = ThreadRepository(db)

    def append(
        self,
        thread_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
        sent_at: Optional[datetime] = None,
    ) -> Message:
        """
        Insert a message and touch its thread. Participant checks belong to the caller.
        """
        sent_at = sent_at or utcnow()
        message = self.create(
            thread_id=thread_id,
            sender_id=sender_id,
            content=content,
            sent_at=sent_at,
        )
        self.threads.touch(thread_id, sent_at)
        if self.dialect_name == "postgresql":
            self._notify(message)
        return message

    def _notify(self, message: Message) -> None:
        channel = channel_for_thread(message.thread_id)
        try:
            self.db.execute(
                text("SELECT pg_notify(:channel, :payload)"),
                {"channel": channel, "payload": notification_payload(message)},
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error queueing notification on {channel}: {str(e)}")
            raise RepositoryException(f"Failed to queue notification: {str(e)}")

    def list_for_thread(
        self, thread_id: uuid.UUID, *, limit: int, offset: int
    ) -> List[MessageRow]:
        """Messages newest first, with the sender's username."""
        stmt = (
            select(
                Message.id,
                Message.thread_id,
                Message.sender_id,
                User.username.label("sender_name"),
                Message.content,
                Message.sent_at,
            )
            .join(User, User.id == Message.sender_id)
            .where(Message.thread_id == thread_id)
            .order_by(Message.sent_at.desc(), Message.id.desc())
            .limit(limit)
            .offset(offset)
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing messages for thread {thread_id}: {str(e)}")
            raise RepositoryException(f"Failed to list messages: {str(e)}")
        return [
            MessageRow(
                id=row.id,
                thread_id=row.thread_id,
                sender_id=row.sender_id,
                sender_name=row.sender_name,
                content=row.content,
                sent_at=row.sent_at,
            )
            for row in rows
        ]
