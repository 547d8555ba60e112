# backend/zlecenia/services/thread_service.py
"""
Thread Service for the zlecenia messaging system.

Handles business logic for message threads:
- Creating (or re-opening) the thread between two users about a post
- Listing a user's threads with their latest message
- Participant-only access to a single thread
"""

import logging
from typing import List, Optional
import uuid

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, ValidationException
from ..models.message_thread import MessageThread
from ..repositories.factory import RepositoryFactory
from ..repositories.post_repository import PostRepository
from ..repositories.thread_repository import ThreadRepository
from ..repositories.user_repository import UserRepository
from ..schemas.chat import ThreadInfo
from .base import BaseService

logger = logging.getLogger(__name__)


class ThreadService(BaseService):
    def __init__(
        self,
        db: Session,
        thread_repository: Optional[ThreadRepository] = None,
        user_repository: Optional[UserRepository] = None,
        post_repository: Optional[PostRepository] = None,
    ):
        super().__init__(db)
        self.thread_repository = thread_repository or RepositoryFactory.create_thread_repository(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self.post_repository = post_repository or RepositoryFactory.create_post_repository(db)

    @BaseService.measure_operation("create_or_get")
    def create_or_get(
        self, post_id: uuid.UUID, user_id: uuid.UUID, other_user_id: uuid.UUID
    ) -> MessageThread:
        """
        Return the thread for (post, {user, other_user}), creating it if needed.

        Calling this again for the same post and pair, in either order, returns
        the same thread and refreshes its ``updated_at``.
        """
        if user_id == other_user_id:
            raise ValidationException(
                "Cannot open a thread with yourself", code="SELF_THREAD"
            )
        if self.post_repository.get_by_id(post_id) is None:
            raise NotFoundException("Post not found", code="POST_NOT_FOUND")
        if self.user_repository.get_by_id(other_user_id) is None:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")

        with self.transaction():
            thread = self.thread_repository.upsert(post_id, user_id, other_user_id)

        self.logger.info(
            "Thread ready",
            extra={"thread_id": str(thread.id), "post_id": str(post_id), "user_id": str(user_id)},
        )
        return thread

    def get(self, thread_id: uuid.UUID, requesting_user: uuid.UUID) -> MessageThread:
        """Participants only; a thread the caller is not part of looks like a missing one."""
        thread = self.thread_repository.get_for_participant(thread_id, requesting_user)
        if thread is None:
            raise NotFoundException("Thread not found", code="THREAD_NOT_FOUND")
        return thread

    def get_info(self, thread_id: uuid.UUID, requesting_user: uuid.UUID) -> ThreadInfo:
        row = self.thread_repository.get_summary(thread_id, requesting_user)
        if row is None:
            raise NotFoundException("Thread not found", code="THREAD_NOT_FOUND")
        return ThreadInfo.model_validate(row)

    @BaseService.measure_operation("list_for_user")
    def list_for_user(self, user_id: uuid.UUID) -> List[ThreadInfo]:
        rows = self.thread_repository.list_for_user(user_id)
        return [ThreadInfo.model_validate(row) for row in rows]

    def thread_ids_for_user(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        return self.thread_repository.thread_ids_for_user(user_id)
