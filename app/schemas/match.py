from datetime import datetime
from typing import Optional

from app.schemas.base import CamelModel
from app.schemas.user import UserResponse

class SwipeRequest(CamelModel):
    is_right_swipe: bool

class SwipeResponse(CamelModel):
    match: bool
    match_id: Optional[int] = None

class MatchResponse(CamelModel):
    id: int
    user1_id: int
    user2_id: int
    created_at: datetime
    other_user: UserResponse

class MessageCreate(CamelModel):
    content: str

class MessageResponse(CamelModel):
    id: int
    match_id: int
    sender_id: int
    content: str
    created_at: datetime
    sender: UserResponse
