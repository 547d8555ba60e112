# backend/zlecenia/repositories/post_repository.py
"""
Post Repository for the zlecenia backend.
"""

from typing import List, Optional
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.post import Post
from .base_repository import BaseRepository


class PostRepository(BaseRepository[Post]):
    def __init__(self, db: Session):
        super().__init__(db, Post)

    def get_with_owner(self, post_id: uuid.UUID) -> Optional[Post]:
        try:
            return (
                self.db.query(Post)
                .options(joinedload(Post.owner))
                .filter(Post.id == post_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting post {post_id}: {str(e)}")
            raise RepositoryException(f"Failed to get post: {str(e)}")

    def list_posts(
        self,
        *,
        offset: int,
        limit: int,
        owner_id: Optional[uuid.UUID] = None,
    ) -> List[Post]:
        """Newest posts first, optionally restricted to one owner."""
        try:
            query = self.db.query(Post).options(joinedload(Post.owner))
            if owner_id is not None:
                query = query.filter(Post.owner_id == owner_id)
            return (
                query.order_by(Post.created_at.desc(), Post.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing posts: {str(e)}")
            raise RepositoryException(f"Failed to list posts: {str(e)}")
