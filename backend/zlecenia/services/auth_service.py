# backend/zlecenia/services/auth_service.py
"""
Authentication Service for the zlecenia backend.

Owns credential checks and the two-token scheme:

- a short-lived access token (signature + expiry only, no storage access)
- a long-lived refresh token stamped with the user's ``token_version``;
  minting a new refresh token bumps the counter, which revokes every
  refresh token issued before it
"""

from datetime import datetime
import logging
from typing import Optional, Tuple
import uuid

from sqlalchemy.orm import Session

from ..auth import (
    AccessToken,
    RefreshToken,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    dummy_hash,
    get_password_hash,
    verify_password,
)
from ..core.config import settings
from ..core.exceptions import (
    ConflictException,
    InvalidCredentialsException,
    RepositoryException,
    TokenRevokedException,
    UnauthorizedException,
    ValidationException,
)
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


def validate_credentials(email: str, password: str) -> None:
    """
    Check the shape of an email/password pair.

    The email needs a non-empty local part and, when an allowed domain is
    configured, that exact domain (case-insensitive). The password must be
    non-empty.
    """
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        raise ValidationException("Invalid email", code="INVALID_EMAIL", details={"field": "email"})
    allowed = settings.allowed_email_domain
    if allowed and domain.lower() != allowed:
        raise ValidationException("Invalid email", code="INVALID_EMAIL", details={"field": "email"})
    if not password:
        raise ValidationException(
            "Invalid password", code="INVALID_PASSWORD", details={"field": "password"}
        )


class AuthService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("verify")
    def verify(self, email: str, password: str) -> uuid.UUID:
        """
        Return the user id for a matching email/password pair.

        Unknown email and wrong password raise the same error, and both run a
        full hash verification.
        """
        user = self.user_repository.get_by_email(email)
        if user is None:
            verify_password(password, dummy_hash())
            raise InvalidCredentialsException()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsException()
        return user.id

    @BaseService.measure_operation("issue_refresh")
    def issue_refresh(self, user_id: uuid.UUID, *, now: Optional[datetime] = None) -> RefreshToken:
        """Bump the revocation counter and mint a refresh token carrying the new value."""
        with self.transaction():
            version = self.user_repository.bump_token_version(user_id)
        if version is None:
            raise UnauthorizedException("Unknown user", code="UNKNOWN_USER")
        return create_refresh_token(user_id, version, now=now)

    @BaseService.measure_operation("issue_access")
    def issue_access(self, refresh_token: str) -> AccessToken:
        """
        Exchange a refresh token for a fresh access token.

        Expired tokens raise TokenExpiredException; tokens whose ``ver`` no
        longer matches the stored counter raise TokenRevokedException.
        """
        refresh = decode_refresh_token(refresh_token)
        stored_version = self.user_repository.get_token_version(refresh.sub)
        if stored_version is None or stored_version != refresh.ver:
            self.logger.info(
                "Rejected revoked refresh token",
                extra={"user_id": str(refresh.sub), "token_ver": refresh.ver},
            )
            raise TokenRevokedException()
        return create_access_token(refresh.sub)

    @staticmethod
    def authenticate(token: str) -> AccessToken:
        """Validate an access token without touching storage."""
        try:
            return decode_access_token(token)
        except UnauthorizedException as e:
            raise UnauthorizedException("Could not validate credentials", code=e.code) from e

    @BaseService.measure_operation("register")
    def register(self, username: str, email: str, password: str) -> User:
        username = username.strip()
        if not username:
            raise ValidationException(
                "Invalid username", code="INVALID_USERNAME", details={"field": "username"}
            )
        validate_credentials(email, password)

        email_taken = self.user_repository.get_by_email(email) is not None
        username_taken = self.user_repository.get_by_username(username) is not None
        if email_taken or username_taken:
            if not settings.registration_reveals_taken_fields:
                raise ConflictException("Email or username already registered", code="USER_EXISTS")
            if email_taken:
                raise ConflictException(
                    "Email taken", code="EMAIL_TAKEN", details={"field": "email"}
                )
            raise ConflictException(
                "Username taken", code="USERNAME_TAKEN", details={"field": "username"}
            )

        try:
            with self.transaction():
                user = self.user_repository.create(
                    username=username,
                    email=email,
                    password_hash=get_password_hash(password),
                )
        except RepositoryException as e:
            # Lost a race against a concurrent registration of the same email/username
            raise ConflictException(
                "Email or username already registered", code="USER_EXISTS"
            ) from e
        self.logger.info("Registered user", extra={"user_id": str(user.id)})
        return user

    def login(self, email: str, password: str) -> Tuple[AccessToken, RefreshToken]:
        validate_credentials(email, password)
        user_id = self.verify(email, password)
        refresh = self.issue_refresh(user_id)
        access = self.issue_access(refresh.encoded)
        return access, refresh

    def get_user(self, user_id: uuid.UUID) -> User:
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            raise UnauthorizedException("Unknown user", code="UNKNOWN_USER")
        return user
