# backend/zlecenia/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .auth import authenticate_websocket, get_current_user, get_current_user_id
from .database import get_db
from .services import (
    get_auth_service,
    get_message_service,
    get_post_service,
    get_review_service,
    get_thread_service,
)

__all__ = [
    # Auth
    "authenticate_websocket",
    "get_current_user",
    "get_current_user_id",
    # Database
    "get_db",
    # Services
    "get_auth_service",
    "get_message_service",
    "get_post_service",
    "get_review_service",
    "get_thread_service",
]
