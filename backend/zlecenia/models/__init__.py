"""
Database models for the zlecenia platform.

The models are organized by functionality:
- User accounts and refresh-token revocation
- Posts and reviews
- Messaging (threads anchored to a post, append-only messages)
"""

from .message import Message
from .message_thread import MessageThread, canonical_pair
from .post import Post
from .review import REVIEW_TYPE_POST, REVIEW_TYPE_PROFILE, REVIEW_TYPES, Review
from .user import User

__all__ = [
    "User",
    "Post",
    "Review",
    "REVIEW_TYPE_POST",
    "REVIEW_TYPE_PROFILE",
    "REVIEW_TYPES",
    "MessageThread",
    "Message",
    "canonical_pair",
]
