"""
Repository layer for the zlecenia backend.

Repositories own all SQL; services own transactions and business rules.
"""

from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .message_repository import MessageRepository, MessageRow, channel_for_thread
from .post_repository import PostRepository
from .review_repository import ReviewRepository
from .thread_repository import ThreadRepository, ThreadSummaryRow
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "RepositoryFactory",
    "UserRepository",
    "PostRepository",
    "ReviewRepository",
    "ThreadRepository",
    "ThreadSummaryRow",
    "MessageRepository",
    "MessageRow",
    "channel_for_thread",
]
