# backend/zlecenia/repositories/thread_repository.py
"""
Thread Repository for the zlecenia messaging system.

Threads are identified by (post_id, user_a, user_b) with the participant pair
stored in canonical order. Creation is an atomic upsert so two users opening
the same thread at the same moment end up with one row.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, List, Optional
import uuid

from sqlalchemy import Select, case, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.message import Message
from ..models.message_thread import MessageThread, canonical_pair
from ..models.post import Post
from ..models.types import utcnow
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


@dataclass
class ThreadSummaryRow:
    """One row of a user's thread list, as seen from that user."""

    id: uuid.UUID
    post_id: uuid.UUID
    post_title: str
    other_user_id: uuid.UUID
    other_user_name: str
    last_message: Optional[str]
    last_message_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class ThreadRepository(BaseRepository[MessageThread]):
    def __init__(self, db: Session):
        super().__init__(db, MessageThread)

    def upsert(self, post_id: uuid.UUID, user1: uuid.UUID, user2: uuid.UUID) -> MessageThread:
        """
        Insert the thread or touch ``updated_at`` on the existing one; return the row.

        Participant order does not matter.
        """
        user_a, user_b = canonical_pair(user1, user2)
        now = utcnow()
        dialect = self.dialect_name
        try:
            if dialect in ("postgresql", "sqlite"):
                insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
                stmt = (
                    insert_fn(MessageThread)
                    .values(
                        id=uuid.uuid4(),
                        post_id=post_id,
                        user_a=user_a,
                        user_b=user_b,
                        created_at=now,
                        updated_at=now,
                    )
                    .on_conflict_do_update(
                        index_elements=["post_id", "user_a", "user_b"],
                        set_={"updated_at": now},
                    )
                    .returning(MessageThread)
                )
                return self.db.scalars(
                    stmt, execution_options={"populate_existing": True}
                ).one()
            return self._get_or_create(post_id, user_a, user_b, now)
        except IntegrityError as e:
            self.logger.error(f"Integrity error upserting thread for post {post_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to upsert thread: {str(e)}")
        except SQLAlchemyError as e:
            self.logger.error(f"Error upserting thread for post {post_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to upsert thread: {str(e)}")

    def _get_or_create(
        self, post_id: uuid.UUID, user_a: uuid.UUID, user_b: uuid.UUID, now: datetime
    ) -> MessageThread:
        """Fallback for dialects without ON CONFLICT support."""
        existing = self.find_one_by(post_id=post_id, user_a=user_a, user_b=user_b)
        if existing:
            existing.updated_at = now
            self.db.flush()
            return existing
        return self.create(
            post_id=post_id, user_a=user_a, user_b=user_b, created_at=now, updated_at=now
        )

    def get_for_participant(
        self, thread_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[MessageThread]:
        """Return the thread only if ``user_id`` takes part in it."""
        try:
            return (
                self.db.query(MessageThread)
                .filter(
                    MessageThread.id == thread_id,
                    or_(MessageThread.user_a == user_id, MessageThread.user_b == user_id),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting thread {thread_id}: {str(e)}")
            raise RepositoryException(f"Failed to get thread: {str(e)}")

    def is_participant(self, thread_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return self.get_for_participant(thread_id, user_id) is not None

    def touch(self, thread_id: uuid.UUID, at: Optional[datetime] = None) -> None:
        try:
            self.db.execute(
                update(MessageThread)
                .where(MessageThread.id == thread_id)
                .values(updated_at=at or utcnow())
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error touching thread {thread_id}: {str(e)}")
            raise RepositoryException(f"Failed to touch thread: {str(e)}")

    def thread_ids_for_user(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        try:
            return list(
                self.db.scalars(
                    select(MessageThread.id).where(
                        or_(MessageThread.user_a == user_id, MessageThread.user_b == user_id)
                    )
                )
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing thread ids for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list thread ids: {str(e)}")

    def _summary_query(self, user_id: uuid.UUID) -> Select[Any]:
        """Thread rows as seen by ``user_id``; the inner join on the counterpart drops orphans."""
        other_id = case(
            (MessageThread.user_a == user_id, MessageThread.user_b),
            else_=MessageThread.user_a,
        )
        latest = (
            select(Message.content, Message.sent_at)
            .where(Message.thread_id == MessageThread.id)
            .order_by(Message.sent_at.desc(), Message.id.desc())
            .limit(1)
            .correlate(MessageThread)
        )
        last_message = latest.with_only_columns(Message.content).scalar_subquery()
        last_message_at = latest.with_only_columns(Message.sent_at).scalar_subquery()
        return (
            select(
                MessageThread.id,
                MessageThread.post_id,
                Post.title.label("post_title"),
                User.id.label("other_user_id"),
                User.username.label("other_user_name"),
                last_message.label("last_message"),
                last_message_at.label("last_message_at"),
                MessageThread.created_at,
                MessageThread.updated_at,
            )
            .join(Post, Post.id == MessageThread.post_id)
            .join(User, User.id == other_id)
            .where(or_(MessageThread.user_a == user_id, MessageThread.user_b == user_id))
        )

    def list_for_user(self, user_id: uuid.UUID) -> List[ThreadSummaryRow]:
        """
        All threads involving the user, most recently active first.

        Threads whose counterpart user no longer resolves are left out.
        """
        stmt = self._summary_query(user_id).order_by(
            MessageThread.updated_at.desc(), MessageThread.id.desc()
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing threads for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list threads: {str(e)}")
        return [ThreadSummaryRow(**row._asdict()) for row in rows]

    def get_summary(self, thread_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ThreadSummaryRow]:
        stmt = self._summary_query(user_id).where(MessageThread.id == thread_id)
        try:
            row = self.db.execute(stmt).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting thread summary {thread_id}: {str(e)}")
            raise RepositoryException(f"Failed to get thread summary: {str(e)}")
        return ThreadSummaryRow(**row._asdict()) if row is not None else None
