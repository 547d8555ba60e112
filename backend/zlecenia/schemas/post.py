"""
Pydantic schemas for the posts API.
"""

from datetime import datetime
from typing import List, Optional
import uuid

from pydantic import Field, field_validator

from ._strict_base import StrictModel, StrictRequestModel


def _not_blank(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("must not be blank")
    return value


class PostCreate(StrictRequestModel):
    title: str = Field(..., max_length=200)
    description: str

    @field_validator("title", "description")
    @classmethod
    def _check_blank(cls, v: str) -> str:
        return _not_blank(v)


class PostUpdate(StrictRequestModel):
    """Partial update; omitted fields keep their stored value."""

    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None

    @field_validator("title", "description")
    @classmethod
    def _check_blank(cls, v: Optional[str]) -> Optional[str]:
        return _not_blank(v)


class PostResponse(StrictModel):
    id: uuid.UUID
    title: str
    description: str
    owner_id: uuid.UUID
    owner_username: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PostListResponse(StrictModel):
    posts: List[PostResponse]
    page: int
    per_page: int
