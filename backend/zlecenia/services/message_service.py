# backend/zlecenia/services/message_service.py
"""
Message Service for the zlecenia messaging system.

Appending and listing are restricted to the two participants of a thread.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import List, Optional
import uuid

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ForbiddenException, ValidationException
from ..repositories.factory import RepositoryFactory
from ..repositories.message_repository import MessageRepository
from ..repositories.thread_repository import ThreadRepository
from ..repositories.user_repository import UserRepository
from ..schemas.chat import MessageInfo
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass
class SentMessage:
    message: MessageInfo
    recipient_id: uuid.UUID


def clamp_page(limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
    """
    Default and bound pagination for message listings.

    A limit below 1 is rejected; a limit above the maximum page size is
    lowered to it. Negative offsets become 0.
    """
    if limit is None:
        limit = settings.chat_default_page_size
    if limit < 1:
        raise ValidationException(
            "limit must be at least 1", code="INVALID_LIMIT", details={"field": "limit"}
        )
    limit = min(limit, settings.chat_max_page_size)
    offset = max(0, offset or 0)
    return limit, offset


class MessageService(BaseService):
    def __init__(
        self,
        db: Session,
        message_repository: Optional[MessageRepository] = None,
        thread_repository: Optional[ThreadRepository] = None,
        user_repository: Optional[UserRepository] = None,
    ):
        super().__init__(db)
        self.message_repository = message_repository or RepositoryFactory.create_message_repository(db)
        self.thread_repository = thread_repository or RepositoryFactory.create_thread_repository(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    def _validate_content(self, content: str) -> str:
        if not content or not content.strip():
            raise ValidationException("Message content cannot be empty", code="EMPTY_MESSAGE")
        if len(content) > settings.chat_max_message_length:
            raise ValidationException(
                f"Message exceeds {settings.chat_max_message_length} characters",
                code="MESSAGE_TOO_LONG",
            )
        return content

    @BaseService.measure_operation("append")
    def append(
        self,
        thread_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
        *,
        sent_at: Optional[datetime] = None,
    ) -> SentMessage:
        """
        Store a message from a participant.

        Raises ForbiddenException when the sender is not part of the thread
        (including when the thread does not exist).
        """
        content = self._validate_content(content)
        thread = self.thread_repository.get_for_participant(thread_id, sender_id)
        if thread is None:
            raise ForbiddenException("Access denied to this thread", code="NOT_A_PARTICIPANT")
        recipient_id = thread.get_other_user_id(sender_id)

        with self.transaction():
            message = self.message_repository.append(thread_id, sender_id, content, sent_at=sent_at)
            sender_name = self.user_repository.get_username(sender_id) or ""

        info = MessageInfo(
            id=message.id,
            thread_id=message.thread_id,
            sender_id=message.sender_id,
            sender_name=sender_name,
            content=message.content,
            sent_at=message.sent_at,
        )
        return SentMessage(message=info, recipient_id=recipient_id)

    @BaseService.measure_operation("list_messages")
    def list(
        self,
        thread_id: uuid.UUID,
        requesting_user: uuid.UUID,
        limit: Optional[int] = None,
        offset: Optional[int] = 0,
    ) -> List[MessageInfo]:
        """Newest first, with sender usernames."""
        if not self.thread_repository.is_participant(thread_id, requesting_user):
            raise ForbiddenException("Access denied to this thread", code="NOT_A_PARTICIPANT")
        limit, offset = clamp_page(limit, offset)
        rows = self.message_repository.list_for_thread(thread_id, limit=limit, offset=offset)
        return [MessageInfo.model_validate(row) for row in rows]
