# backend/zlecenia/routes/v1/auth.py
"""
Authentication routes - API v1

Endpoints:
    POST /register → Create an account
    POST /login    → Access token in the body, refresh token in an HttpOnly cookie
    POST /refresh  → New access token from the refresh cookie
"""

import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status

from ...api.dependencies.services import get_auth_service
from ...auth import AccessToken, RefreshToken
from ...core.config import settings
from ...core.exceptions import DomainException
from ...schemas.auth import AuthTokenResponse, LoginRequest, RegisterRequest
from ...schemas.user import UserResponse
from ...services.auth_service import AuthService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["auth-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


def _token_response(access: AccessToken) -> AuthTokenResponse:
    return AuthTokenResponse(
        access_token=access.encoded,
        expires_in=settings.access_token_expire_minutes * 60,
    )


def _set_refresh_cookie(response: Response, refresh: RefreshToken) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh.encoded,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        path=settings.refresh_cookie_path,
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    try:
        user = auth_service.register(payload.username, payload.email, payload.password)
    except DomainException as e:
        handle_domain_exception(e)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=AuthTokenResponse)
def login(
    payload: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthTokenResponse:
    """
    Exchange credentials for a token pair.

    Minting the refresh token revokes every refresh token issued to the user
    before it.
    """
    try:
        access, refresh = auth_service.login(payload.email, payload.password)
    except DomainException as e:
        handle_domain_exception(e)
    _set_refresh_cookie(response, refresh)
    logger.info("User logged in", extra={"user_id": str(access.sub)})
    return _token_response(access)


@router.post("/refresh", response_model=AuthTokenResponse)
def refresh(
    refresh_token: Optional[str] = Cookie(None, alias=settings.refresh_cookie_name),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthTokenResponse:
    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Missing refresh token", "code": "MISSING_REFRESH_TOKEN"},
        )
    try:
        access = auth_service.issue_access(refresh_token)
    except DomainException as e:
        handle_domain_exception(e)
    return _token_response(access)
