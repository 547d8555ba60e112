"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import auth, chat, health, posts, reviews, threads, users

__all__ = [
    "auth",
    "chat",
    "health",
    "posts",
    "reviews",
    "threads",
    "users",
]
