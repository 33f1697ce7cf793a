from pydantic import Field
from datetime import datetime
from typing import Optional

from app.schemas.base import CamelModel
from app.schemas.user import UserResponse

class EventCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    location: str = Field(min_length=1, max_length=255)
    starts_at: datetime = Field(alias="datetime")
    category: str = Field(min_length=1, max_length=100)

class EventResponse(CamelModel):
    id: int
    title: str
    description: str
    location: str
    starts_at: datetime = Field(alias="datetime")
    created_by: int
    attendees: list[int] = []
    college: str
    category: str
    created_at: datetime

class EventWithCreator(EventResponse):
    creator: Optional[UserResponse] = None
