# backend/zlecenia/models/user.py
"""
User model for authentication and ownership.

The password hash is an encoded string (algorithm, parameters and per-user
salt are embedded in it). ``token_version`` is the refresh-token revocation
counter: every login bumps it and only refresh tokens carrying the current
value are accepted.
"""

from typing import Any
import uuid

from sqlalchemy import Column, Integer, String, Uuid

from ..database import Base
from .types import UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    token_version = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("token_version", 0)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<User {self.username}>"
