"""
CampusConnect — Match and Message models.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.columns import UTCDateTime, utcnow


def pair_key(user_a_id: int, user_b_id: int) -> str:
    """Normalized key for an unordered user pair: ``"<low>:<high>"``."""
    low, high = sorted((user_a_id, user_b_id))
    return f"{low}:{high}"


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("pair_key", name="uq_match_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user1_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), index=True, nullable=False,
        comment="User whose like completed the pair",
    )
    user2_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), index=True, nullable=False
    )
    pair_key: Mapped[str] = mapped_column(
        String(64), nullable=False, comment="min(user):max(user)"
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_user_id(self, user_id: int) -> int:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def __repr__(self) -> str:
        return f"<Match {self.id} {self.user1_id} <-> {self.user2_id}>"


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("matches.id"), index=True, nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Message {self.id} match={self.match_id} sender={self.sender_id}>"
