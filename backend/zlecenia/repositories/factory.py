# backend/zlecenia/repositories/factory.py
"""
Repository Factory for the zlecenia backend.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .message_repository import MessageRepository
    from .post_repository import PostRepository
    from .review_repository import ReviewRepository
    from .thread_repository import ThreadRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_post_repository(db: Session) -> "PostRepository":
        from .post_repository import PostRepository

        return PostRepository(db)

    @staticmethod
    def create_review_repository(db: Session) -> "ReviewRepository":
        from .review_repository import ReviewRepository

        return ReviewRepository(db)

    @staticmethod
    def create_thread_repository(db: Session) -> "ThreadRepository":
        """Create repository for message thread operations."""
        from .thread_repository import ThreadRepository

        return ThreadRepository(db)

    @staticmethod
    def create_message_repository(db: Session) -> "MessageRepository":
        """Create repository for chat message operations."""
        from .message_repository import MessageRepository

        return MessageRepository(db)
