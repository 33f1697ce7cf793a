from pydantic import Field
from datetime import datetime
from typing import Optional

from app.schemas.base import CamelModel
from app.schemas.user import UserResponse

class ComplimentCreate(CamelModel):
    to_user_id: int
    message: str = Field(min_length=1, max_length=1000)
    is_revealed: bool = False

class ComplimentResponse(CamelModel):
    id: int
    from_user_id: int
    to_user_id: int
    message: str
    is_revealed: bool
    created_at: datetime

class ReceivedCompliment(CamelModel):
    # Sender fields stay null until the compliment is revealed.
    id: int
    from_user_id: Optional[int] = None
    to_user_id: int
    message: str
    is_revealed: bool
    created_at: datetime
    from_user: Optional[UserResponse] = None
