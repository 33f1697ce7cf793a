from pydantic import Field
from datetime import datetime
from typing import Optional

from app.schemas.base import CamelModel

class UserResponse(CamelModel):
    id: int
    email: str
    name: str
    age: int
    college: str
    major: Optional[str] = None
    year: Optional[str] = None
    bio: Optional[str] = None
    interests: list[str] = []
    profile_photos: list[str] = []
    swiped_left: list[int] = []
    swiped_right: list[int] = []
    is_profile_complete: bool = False
    created_at: datetime
    updated_at: datetime

class RegisterRequest(CamelModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=255)
    age: int = Field(ge=16, le=120)
    college: str = Field(min_length=1, max_length=255)
    major: Optional[str] = Field(None, max_length=255)
    year: Optional[str] = Field(None, max_length=20)
    bio: Optional[str] = None
    interests: list[str] = []

class LoginRequest(CamelModel):
    email: str
    password: str

class AuthResponse(CamelModel):
    user: UserResponse
    session_id: str

class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    age: Optional[int] = Field(None, ge=16, le=120)
    college: Optional[str] = Field(None, min_length=1, max_length=255)
    major: Optional[str] = Field(None, max_length=255)
    year: Optional[str] = Field(None, max_length=20)
    bio: Optional[str] = None
    interests: Optional[list[str]] = None
    profile_photos: Optional[list[str]] = None
    is_profile_complete: Optional[bool] = None

class MessageResult(CamelModel):
    message: str
