# backend/zlecenia/services/review_service.py
"""
Review Service for the zlecenia backend.

Rules:
- score must be 1..5
- a ``post`` review names ``post_id`` and no ``profile_id``; a ``profile``
  review names ``profile_id`` and no ``post_id``
- nobody reviews themselves
- one review per sender, receiver and target
- only the sender may delete a review
"""

import logging
from typing import List, Optional
import uuid

from sqlalchemy.orm import Session

from ..core.exceptions import ConflictException, NotFoundException, ValidationException
from ..models.review import REVIEW_TYPE_POST, REVIEW_TYPE_PROFILE, REVIEW_TYPES, Review
from ..repositories.factory import RepositoryFactory
from ..schemas.review import RatingBreakdown, ReviewCreate, ReviewResponse, ReviewStatsResponse
from .base import BaseService

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def to_response(review: Review, sender_username: Optional[str]) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        review_sender_id=review.review_sender_id,
        review_receiver_id=review.review_receiver_id,
        score=review.score,
        comment=review.comment,
        review_type=review.review_type,
        post_id=review.post_id,
        profile_id=review.profile_id,
        created_at=review.created_at,
        updated_at=review.updated_at,
        sender_username=sender_username,
    )


class ReviewService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.review_repository = RepositoryFactory.create_review_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def _validate(self, sender_id: uuid.UUID, data: ReviewCreate) -> Optional[uuid.UUID]:
        if data.score < 1 or data.score > 5:
            raise ValidationException("Score must be between 1 and 5", code="INVALID_SCORE")
        if data.review_type == REVIEW_TYPE_POST:
            if data.post_id is None:
                raise ValidationException("post_id is required for post reviews", code="INVALID_TARGET")
            if data.profile_id is not None:
                raise ValidationException(
                    "profile_id should not be set for post reviews", code="INVALID_TARGET"
                )
            target_id = data.post_id
        elif data.review_type == REVIEW_TYPE_PROFILE:
            if data.profile_id is None:
                raise ValidationException(
                    "profile_id is required for profile reviews", code="INVALID_TARGET"
                )
            if data.post_id is not None:
                raise ValidationException(
                    "post_id should not be set for profile reviews", code="INVALID_TARGET"
                )
            target_id = data.profile_id
        else:
            raise ValidationException(
                "review_type must be 'post' or 'profile'", code="INVALID_REVIEW_TYPE"
            )
        if sender_id == data.review_receiver_id:
            raise ValidationException("Cannot review yourself", code="SELF_REVIEW")
        return target_id

    @BaseService.measure_operation("create_review")
    def create_review(self, sender_id: uuid.UUID, data: ReviewCreate) -> ReviewResponse:
        target_id = self._validate(sender_id, data)
        if self.user_repository.get_by_id(data.review_receiver_id) is None:
            raise NotFoundException("Review receiver not found", code="USER_NOT_FOUND")

        existing = self.review_repository.find_existing(
            sender_id=sender_id,
            receiver_id=data.review_receiver_id,
            review_type=data.review_type,
            target_id=target_id,
        )
        if existing is not None:
            raise ConflictException("Review already exists", code="REVIEW_EXISTS")

        with self.transaction():
            review = self.review_repository.create(
                review_sender_id=sender_id,
                review_receiver_id=data.review_receiver_id,
                score=data.score,
                comment=data.comment,
                review_type=data.review_type,
                post_id=data.post_id,
                profile_id=data.profile_id,
            )
        return to_response(review, self.user_repository.get_username(sender_id))

    def list_reviews(
        self,
        *,
        review_type: Optional[str] = None,
        post_id: Optional[uuid.UUID] = None,
        profile_id: Optional[uuid.UUID] = None,
        page: int = 0,
        limit: Optional[int] = None,
    ) -> List[ReviewResponse]:
        if review_type is not None and review_type not in REVIEW_TYPES:
            raise ValidationException(
                "review_type must be 'post' or 'profile'", code="INVALID_REVIEW_TYPE"
            )
        limit = min(max(limit or DEFAULT_LIMIT, 1), MAX_LIMIT)
        page = max(page, 0)
        rows = self.review_repository.list_reviews(
            review_type=review_type,
            post_id=post_id,
            profile_id=profile_id,
            offset=page * limit,
            limit=limit,
        )
        return [to_response(review, username) for review, username in rows]

    @BaseService.measure_operation("delete_review")
    def delete_review(self, review_id: uuid.UUID, user_id: uuid.UUID) -> None:
        review = self.review_repository.get_by_id(review_id)
        if review is None or review.review_sender_id != user_id:
            raise NotFoundException(
                "Review not found or you don't have permission to delete it",
                code="REVIEW_NOT_FOUND",
            )
        with self.transaction():
            self.review_repository.delete(review_id)

    def get_stats(self, target_id: uuid.UUID, review_type: str = REVIEW_TYPE_PROFILE) -> ReviewStatsResponse:
        if review_type not in REVIEW_TYPES:
            raise ValidationException(
                "review_type must be 'post' or 'profile'", code="INVALID_REVIEW_TYPE"
            )
        stats = self.review_repository.get_stats(review_type, target_id)
        average = stats.get("average_score")
        return ReviewStatsResponse(
            review_type=review_type,
            target_id=target_id,
            total_reviews=int(stats.get("total_reviews") or 0),
            average_score=round(float(average), 2) if average is not None else 0.0,
            rating_breakdown=RatingBreakdown(
                five_stars=int(stats.get("score_5") or 0),
                four_stars=int(stats.get("score_4") or 0),
                three_stars=int(stats.get("score_3") or 0),
                two_stars=int(stats.get("score_2") or 0),
                one_star=int(stats.get("score_1") or 0),
            ),
        )
