# backend/zlecenia/repositories/user_repository.py
"""
User Repository for the zlecenia backend.

Handles the user lookups needed by authentication, registration and the chat
subsystem (username resolution for message senders and thread counterparts).
"""

import logging
from typing import Optional
import uuid

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.email == email).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting user by email: {str(e)}")
            raise RepositoryException(f"Failed to get user by email: {str(e)}")

    def get_by_username(self, username: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.username == username).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting user by username: {str(e)}")
            raise RepositoryException(f"Failed to get user by username: {str(e)}")

    def get_username(self, user_id: uuid.UUID) -> Optional[str]:
        try:
            return self.db.execute(select(User.username).where(User.id == user_id)).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error resolving username for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to resolve username: {str(e)}")

    def get_token_version(self, user_id: uuid.UUID) -> Optional[int]:
        """Read the stored refresh-token counter (None if the user is gone)."""
        try:
            return self.db.execute(
                select(User.token_version).where(User.id == user_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading token version for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to read token version: {str(e)}")

    def bump_token_version(self, user_id: uuid.UUID) -> Optional[int]:
        """
        Increment the refresh-token counter in one statement and return the new value.

        Returns None when the user does not exist.
        """
        try:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(token_version=User.token_version + 1)
                .returning(User.token_version)
                .execution_options(synchronize_session="fetch")
            )
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error bumping token version for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to bump token version: {str(e)}")
