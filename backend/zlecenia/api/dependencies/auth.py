# backend/zlecenia/api/dependencies/auth.py
"""
Authentication dependencies.

Access tokens are checked by signature and expiry only, so resolving the
caller's id never touches the database. ``get_current_user`` loads the row
for routes that need more than the id.
"""

import logging
from typing import Optional
import uuid

from fastapi import Depends, WebSocket
from fastapi.security import OAuth2PasswordBearer

from ...core.exceptions import UnauthorizedException
from ...core.request_context import set_user_id
from ...models.user import User
from ...services.auth_service import AuthService
from .services import get_auth_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def get_current_user_id(token: str = Depends(oauth2_scheme)) -> uuid.UUID:
    try:
        access = AuthService.authenticate(token)
    except UnauthorizedException as e:
        raise e.to_http_exception()
    set_user_id(str(access.sub))
    return access.sub


def get_current_user(
    user_id: uuid.UUID = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    try:
        return auth_service.get_user(user_id)
    except UnauthorizedException as e:
        raise e.to_http_exception()


def websocket_token(websocket: WebSocket) -> Optional[str]:
    """Access token from the ``token`` query parameter or a Bearer Authorization header."""
    token = websocket.query_params.get("token")
    if token:
        return token
    header = websocket.headers.get("authorization") or ""
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def authenticate_websocket(websocket: WebSocket) -> Optional[uuid.UUID]:
    """User id for a WebSocket handshake, or None when the token is missing or invalid."""
    token = websocket_token(websocket)
    if token is None:
        return None
    try:
        return AuthService.authenticate(token).sub
    except UnauthorizedException as e:
        logger.info(f"[CHAT-WS] Rejected handshake: {e.code}")
        return None
