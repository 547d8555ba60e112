# backend/zlecenia/models/review.py
"""
Review model.

A review is sent by one user about either a post (``review_type="post"``,
``post_id`` set) or another user's profile (``review_type="profile"``,
``profile_id`` set). A sender can review each target once.
"""

import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text, Uuid

from ..database import Base
from .types import UTCDateTime, utcnow

REVIEW_TYPE_POST = "post"
REVIEW_TYPE_PROFILE = "profile"
REVIEW_TYPES = (REVIEW_TYPE_POST, REVIEW_TYPE_PROFILE)


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    review_sender_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    review_receiver_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    score = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    review_type = Column(String(16), nullable=False)
    post_id = Column(Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True)
    profile_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("score BETWEEN 1 AND 5", name="ck_reviews_score_range"),
        CheckConstraint("review_type IN ('post', 'profile')", name="ck_reviews_type"),
        Index("idx_reviews_receiver", "review_receiver_id"),
        Index("idx_reviews_post", "post_id"),
        Index("idx_reviews_profile", "profile_id"),
    )

    @property
    def target_id(self) -> uuid.UUID:
        return self.post_id if self.review_type == REVIEW_TYPE_POST else self.profile_id
