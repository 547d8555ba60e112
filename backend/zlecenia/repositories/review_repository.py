# backend/zlecenia/repositories/review_repository.py
"""
Review Repository for the zlecenia backend.

Handles review lookups, the duplicate check used before inserting, filtered
listing and the per-target score statistics.
"""

from typing import Any, Dict, List, Optional, Tuple
import uuid

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.review import REVIEW_TYPE_POST, Review
from ..models.user import User
from .base_repository import BaseRepository


class ReviewRepository(BaseRepository[Review]):
    def __init__(self, db: Session):
        super().__init__(db, Review)

    def _target_filter(self, review_type: str, target_id: Optional[uuid.UUID]) -> Any:
        if review_type == REVIEW_TYPE_POST:
            return (Review.review_type == review_type) & (Review.post_id == target_id)
        return (Review.review_type == review_type) & (Review.profile_id == target_id)

    def find_existing(
        self,
        *,
        sender_id: uuid.UUID,
        receiver_id: uuid.UUID,
        review_type: str,
        target_id: Optional[uuid.UUID],
    ) -> Optional[Review]:
        try:
            return (
                self.db.query(Review)
                .filter(
                    Review.review_sender_id == sender_id,
                    Review.review_receiver_id == receiver_id,
                    self._target_filter(review_type, target_id),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking for existing review: {str(e)}")
            raise RepositoryException(f"Failed to check existing review: {str(e)}")

    def list_reviews(
        self,
        *,
        review_type: Optional[str] = None,
        post_id: Optional[uuid.UUID] = None,
        profile_id: Optional[uuid.UUID] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> List[Tuple[Review, str]]:
        """Reviews newest first, each paired with the sender's username."""
        try:
            stmt = select(Review, User.username).join(User, User.id == Review.review_sender_id)
            if review_type is not None:
                stmt = stmt.where(Review.review_type == review_type)
            if post_id is not None:
                stmt = stmt.where(Review.post_id == post_id)
            if profile_id is not None:
                stmt = stmt.where(Review.profile_id == profile_id)
            stmt = stmt.order_by(Review.created_at.desc(), Review.id.desc()).offset(offset).limit(limit)
            return [(row[0], row[1]) for row in self.db.execute(stmt).all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing reviews: {str(e)}")
            raise RepositoryException(f"Failed to list reviews: {str(e)}")

    def get_stats(self, review_type: str, target_id: uuid.UUID) -> Dict[str, Any]:
        try:
            columns = [
                func.count(Review.id).label("total_reviews"),
                func.avg(Review.score).label("average_score"),
            ]
            for score in range(1, 6):
                columns.append(func.count(case((Review.score == score, 1))).label(f"score_{score}"))
            row = self.db.execute(
                select(*columns).where(self._target_filter(review_type, target_id))
            ).one()
            return dict(row._mapping)
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing review stats: {str(e)}")
            raise RepositoryException(f"Failed to compute review stats: {str(e)}")
