# backend/zlecenia/routes/v1/reviews.py
"""
Reviews routes - API v1

Versioned review endpoints under /api/v1/reviews.
All business logic delegated to ReviewService.

Endpoints:
    POST /                    → Submit a review
    GET /                     → Reviews filtered by type/post/profile (public)
    GET /stats/{target_id}    → Average score and breakdown for a post or profile (public)
    DELETE /{review_id}       → Sender deletes their review
"""

import logging
from typing import NoReturn, Optional
import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_review_service
from ...core.exceptions import DomainException
from ...schemas.review import ReviewCreate, ReviewListResponse, ReviewResponse, ReviewStatsResponse
from ...services.review_service import DEFAULT_LIMIT, MAX_LIMIT, ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


# Static routes first (before dynamic routes with path parameters)


@router.get("/stats/{target_id}", response_model=ReviewStatsResponse)
def get_review_stats(
    target_id: uuid.UUID,
    review_type: str = Query("profile"),
    service: ReviewService = Depends(get_review_service),
) -> ReviewStatsResponse:
    try:
        return service.get_stats(target_id, review_type)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    try:
        return service.create_review(user_id, payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=ReviewListResponse)
def list_reviews(
    review_type: Optional[str] = Query(None),
    post_id: Optional[uuid.UUID] = Query(None),
    profile_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    service: ReviewService = Depends(get_review_service),
) -> ReviewListResponse:
    try:
        reviews = service.list_reviews(
            review_type=review_type,
            post_id=post_id,
            profile_id=profile_id,
            page=page,
            limit=limit,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ReviewListResponse(reviews=reviews)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> Response:
    try:
        service.delete_review(review_id, user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
