"""Request/response schemas for authentication routes."""

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class RegisterRequest(StrictRequestModel):
    username: str = Field(..., min_length=1, max_length=64)
    email: str = Field(..., max_length=255)
    password: str


class LoginRequest(StrictRequestModel):
    email: str
    password: str


class AuthTokenResponse(StrictModel):
    """Access token body; the refresh token travels in an HttpOnly cookie."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


__all__ = ["RegisterRequest", "LoginRequest", "AuthTokenResponse"]
