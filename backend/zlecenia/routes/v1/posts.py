# backend/zlecenia/routes/v1/posts.py
"""
Post routes - API v1

Endpoints:
    GET /          → Paginated posts, newest first (public)
    GET /{post_id} → One post (public)
    POST /         → Create a post
    PATCH /{post_id}  → Owner-only partial update
    DELETE /{post_id} → Owner-only delete
"""

import logging
from typing import NoReturn, Optional
import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_post_service
from ...core.exceptions import DomainException
from ...schemas.post import PostCreate, PostListResponse, PostResponse, PostUpdate
from ...services.post_service import DEFAULT_PER_PAGE, MAX_PER_PAGE, PostService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["posts-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.get("", response_model=PostListResponse)
def list_posts(
    page: int = Query(0, ge=0),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
    owner_id: Optional[uuid.UUID] = Query(None),
    service: PostService = Depends(get_post_service),
) -> PostListResponse:
    posts = service.list_posts(page=page, per_page=per_page, owner_id=owner_id)
    return PostListResponse(posts=posts, page=page, per_page=per_page)


@router.get("/{post_id}", response_model=PostResponse)
def get_post(
    post_id: uuid.UUID,
    service: PostService = Depends(get_post_service),
) -> PostResponse:
    try:
        return service.get_post(post_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: PostCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PostResponse:
    try:
        return service.create_post(user_id, payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{post_id}", response_model=PostResponse)
def update_post(
    post_id: uuid.UUID,
    payload: PostUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> PostResponse:
    try:
        return service.update_post(post_id, user_id, payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: PostService = Depends(get_post_service),
) -> Response:
    try:
        service.delete_post(post_id, user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
