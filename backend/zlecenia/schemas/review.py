# backend/zlecenia/schemas/review.py
from datetime import datetime
from typing import List, Literal, Optional
import uuid

from pydantic import Field, field_validator

from ._strict_base import StrictModel, StrictRequestModel


class ReviewCreate(StrictRequestModel):
    review_receiver_id: uuid.UUID
    score: int
    comment: Optional[str] = Field(None, max_length=2000)
    review_type: str
    post_id: Optional[uuid.UUID] = None
    profile_id: Optional[uuid.UUID] = None

    @field_validator("comment")
    @classmethod
    def _clean_comment(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


class ReviewResponse(StrictModel):
    id: uuid.UUID
    review_sender_id: uuid.UUID
    review_receiver_id: uuid.UUID
    score: int
    comment: Optional[str]
    review_type: str
    post_id: Optional[uuid.UUID]
    profile_id: Optional[uuid.UUID]
    created_at: datetime
    updated_at: datetime
    sender_username: Optional[str] = None


class ReviewListResponse(StrictModel):
    reviews: List[ReviewResponse]


class RatingBreakdown(StrictModel):
    five_stars: int = 0
    four_stars: int = 0
    three_stars: int = 0
    two_stars: int = 0
    one_star: int = 0


class ReviewStatsResponse(StrictModel):
    review_type: Literal["post", "profile"]
    target_id: uuid.UUID
    total_reviews: int
    average_score: float
    rating_breakdown: RatingBreakdown
