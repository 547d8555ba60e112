from datetime import datetime
import uuid

from ._strict_base import StrictModel


class UserResponse(StrictModel):
    id: uuid.UUID
    username: str
    email: str
    created_at: datetime
