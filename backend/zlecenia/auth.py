"""
Password hashing and token encoding.

Passwords are hashed with argon2 (through passlib) after the server-wide
pepper is appended. Tokens are HS256 JWTs signed with separate secrets for
access and refresh tokens so one can never be replayed as the other.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
import logging
from typing import Any, Dict, Optional, cast
import uuid

import jwt
from jwt import ExpiredSignatureError, PyJWTError
from passlib.context import CryptContext

from .core.config import settings
from .core.exceptions import TokenExpiredException, UnauthorizedException

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _secret_value(secret_obj: Any) -> str:
    getter = getattr(secret_obj, "get_secret_value", None)
    if callable(getter):
        return cast(str, getter())
    return cast(str, secret_obj)


def _peppered(password: str) -> str:
    return password + _secret_value(settings.password_pepper)


@lru_cache(maxsize=1)
def dummy_hash() -> str:
    """
    A valid hash of a throwaway password.

    Verified against when the email is unknown so the response time does not
    reveal whether an account exists.
    """
    return str(pwd_context.hash(_peppered("timing_attack_prevention_dummy_password")))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a stored hash (constant-time compare).

    Returns False for malformed hashes instead of raising.
    """
    try:
        return bool(pwd_context.verify(_peppered(plain_password), hashed_password))
    except (ValueError, TypeError) as e:
        logger.error(f"Error verifying password: {str(e)}")
        return False


def get_password_hash(password: str) -> str:
    hashed = pwd_context.hash(_peppered(password))
    return str(hashed)


@dataclass(frozen=True)
class AccessToken:
    sub: uuid.UUID
    exp: datetime
    encoded: str


@dataclass(frozen=True)
class RefreshToken:
    sub: uuid.UUID
    exp: datetime
    ver: int
    encoded: str


def create_access_token(user_id: uuid.UUID, *, now: Optional[datetime] = None) -> AccessToken:
    """Mint an access token with the fixed access lifetime."""
    issued = now or datetime.now(timezone.utc)
    expire = issued + timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": str(user_id),
        "exp": expire,
        "iat": issued,
        "type": ACCESS_TOKEN_TYPE,
    }
    encoded = jwt.encode(
        claims, _secret_value(settings.access_token_secret), algorithm=settings.algorithm
    )
    return AccessToken(sub=user_id, exp=expire, encoded=encoded)


def create_refresh_token(
    user_id: uuid.UUID, version: int, *, now: Optional[datetime] = None
) -> RefreshToken:
    issued = now or datetime.now(timezone.utc)
    expire = issued + timedelta(days=settings.refresh_token_expire_days)
    claims = {
        "sub": str(user_id),
        "exp": expire,
        "iat": issued,
        "ver": version,
        "type": REFRESH_TOKEN_TYPE,
    }
    encoded = jwt.encode(
        claims, _secret_value(settings.refresh_token_secret), algorithm=settings.algorithm
    )
    return RefreshToken(sub=user_id, exp=expire, ver=version, encoded=encoded)


def _decode(token: str, secret: Any, expected_type: str) -> Dict[str, Any]:
    try:
        payload = cast(
            Dict[str, Any],
            jwt.decode(
                token,
                _secret_value(secret),
                algorithms=[settings.algorithm],
                options={"require": ["exp", "sub"]},
            ),
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredException() from e
    except PyJWTError as e:
        raise UnauthorizedException("Could not validate credentials", code="INVALID_TOKEN") from e

    if payload.get("type") != expected_type:
        raise UnauthorizedException("Wrong token type", code="INVALID_TOKEN")
    return payload


def _parse_subject(payload: Dict[str, Any]) -> uuid.UUID:
    try:
        return uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError) as e:
        raise UnauthorizedException("Could not validate credentials", code="INVALID_TOKEN") from e


def decode_access_token(token: str) -> AccessToken:
    """Signature and expiry check only; touches no storage."""
    payload = _decode(token, settings.access_token_secret, ACCESS_TOKEN_TYPE)
    return AccessToken(
        sub=_parse_subject(payload),
        exp=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        encoded=token,
    )


def decode_refresh_token(token: str) -> RefreshToken:
    payload = _decode(token, settings.refresh_token_secret, REFRESH_TOKEN_TYPE)
    version = payload.get("ver")
    if not isinstance(version, int):
        raise UnauthorizedException("Could not validate credentials", code="INVALID_TOKEN")
    return RefreshToken(
        sub=_parse_subject(payload),
        exp=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        ver=version,
        encoded=token,
    )
