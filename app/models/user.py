"""
CampusConnect — User model.
"""

from datetime import datetime

from sqlalchemy import Boolean, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.columns import JsonList, UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    password: Mapped[str] = mapped_column(
        Text, nullable=False, comment="bcrypt hash"
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    college: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    major: Mapped[str | None] = mapped_column(String(255), nullable=True)
    year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    interests: Mapped[list] = mapped_column(JsonList, default=list, nullable=False)
    profile_photos: Mapped[list] = mapped_column(
        JsonList, default=list, nullable=False, comment="Array of photo URLs"
    )
    swiped_left: Mapped[list] = mapped_column(
        JsonList, default=list, nullable=False, comment="User ids passed on"
    )
    swiped_right: Mapped[list] = mapped_column(
        JsonList, default=list, nullable=False, comment="User ids liked"
    )
    is_profile_complete: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def likes(self, other_id: int) -> bool:
        return other_id in (self.swiped_right or [])

    def __repr__(self) -> str:
        return f"<User {self.email!r} id={self.id} college={self.college!r}>"
