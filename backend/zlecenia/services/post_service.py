# backend/zlecenia/services/post_service.py
"""
Post Service for the zlecenia backend.

Posts are public to read; only the owner may change or delete one.
"""

import logging
from typing import List, Optional
import uuid

from sqlalchemy.orm import Session

from ..core.exceptions import ForbiddenException, NotFoundException
from ..models.post import Post
from ..repositories.factory import RepositoryFactory
from ..schemas.post import PostCreate, PostResponse, PostUpdate
from .base import BaseService

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100


def to_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        title=post.title,
        description=post.description,
        owner_id=post.owner_id,
        owner_username=post.owner.username if post.owner is not None else None,
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


class PostService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.post_repository = RepositoryFactory.create_post_repository(db)

    @BaseService.measure_operation("list_posts")
    def list_posts(
        self,
        page: int = 0,
        per_page: Optional[int] = None,
        owner_id: Optional[uuid.UUID] = None,
    ) -> List[PostResponse]:
        per_page = min(max(per_page or DEFAULT_PER_PAGE, 1), MAX_PER_PAGE)
        page = max(page, 0)
        posts = self.post_repository.list_posts(
            offset=page * per_page, limit=per_page, owner_id=owner_id
        )
        return [to_response(post) for post in posts]

    def get_post(self, post_id: uuid.UUID) -> PostResponse:
        post = self.post_repository.get_with_owner(post_id)
        if post is None:
            raise NotFoundException("Post not found", code="POST_NOT_FOUND")
        return to_response(post)

    @BaseService.measure_operation("create_post")
    def create_post(self, owner_id: uuid.UUID, data: PostCreate) -> PostResponse:
        with self.transaction():
            post = self.post_repository.create(
                title=data.title, description=data.description, owner_id=owner_id
            )
        return self.get_post(post.id)

    def _owned_post(self, post_id: uuid.UUID, user_id: uuid.UUID) -> Post:
        post = self.post_repository.get_by_id(post_id)
        if post is None:
            raise NotFoundException("Post not found", code="POST_NOT_FOUND")
        if not post.is_owned_by(user_id):
            raise ForbiddenException("Only the owner can modify this post", code="NOT_OWNER")
        return post

    @BaseService.measure_operation("update_post")
    def update_post(self, post_id: uuid.UUID, user_id: uuid.UUID, data: PostUpdate) -> PostResponse:
        self._owned_post(post_id, user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if changes:
            with self.transaction():
                self.post_repository.update(post_id, **changes)
        return self.get_post(post_id)

    @BaseService.measure_operation("delete_post")
    def delete_post(self, post_id: uuid.UUID, user_id: uuid.UUID) -> None:
        self._owned_post(post_id, user_id)
        with self.transaction():
            self.post_repository.delete(post_id)
        self.logger.info("Post deleted", extra={"post_id": str(post_id), "user_id": str(user_id)})
