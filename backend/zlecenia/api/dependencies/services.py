# backend/zlecenia/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each factory builds a request-scoped service on the request's session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.auth_service import AuthService
from ...services.message_service import MessageService
from ...services.post_service import PostService
from ...services.review_service import ReviewService
from ...services.thread_service import ThreadService
from .database import get_db


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_post_service(db: Session = Depends(get_db)) -> PostService:
    return PostService(db)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_thread_service(db: Session = Depends(get_db)) -> ThreadService:
    return ThreadService(db)


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    return MessageService(db)
