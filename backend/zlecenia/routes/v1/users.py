# backend/zlecenia/routes/v1/users.py
"""
User routes - API v1

Endpoints:
    GET /me → The authenticated user
"""

from fastapi import APIRouter, Depends

from ...api.dependencies.auth import get_current_user
from ...models.user import User
from ...schemas.user import UserResponse

router = APIRouter(tags=["users-v1"])


@router.get("/me", response_model=UserResponse)
def read_current_user(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)
