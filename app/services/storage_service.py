"""
CampusConnect — Persistence Layer

Durable create / read / update operations for users, matches, messages,
events and compliments.  Every instance wraps one ``AsyncSession``; callers
own the transaction (``get_db`` commits per request, the real-time router
commits per chat event).

Related rows are attached with one batched ``IN`` query per call rather than
ORM relationships, so results are safe to serialise after the session's
greenlet context has gone.
"""

from __future__ import annotations

from typing import Any, Iterable

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.exceptions import NotFound, Unauthenticated, ValidationFailed
from app.models import Compliment, Event, Match, Message, User
from app.models.columns import as_utc
from app.models.match import pair_key
from app.utils.security import hash_password, verify_password

logger = structlog.get_logger("campusconnect.storage")

# Columns a user may change through the profile endpoint.
PROFILE_FIELDS = frozenset({
    "name",
    "age",
    "college",
    "major",
    "year",
    "bio",
    "interests",
    "profile_photos",
    "is_profile_complete",
})
_REQUIRED_PROFILE_FIELDS = frozenset({
    "name",
    "age",
    "college",
    "interests",
    "profile_photos",
    "is_profile_complete",
})


def _normalise_email(email: str) -> str:
    return email.strip().lower()


class StorageService:
    """Repository over a single async session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Users ─────────────────────────────────────────────────────────────

    async def create_user(self, data: dict[str, Any]) -> User:
        email = _normalise_email(data["email"])
        if await self.get_user_by_email(email) is not None:
            raise ValidationFailed("Email already registered")

        user = User(
            email=email,
            password=hash_password(data["password"]),
            name=data["name"],
            age=data["age"],
            college=data["college"],
            major=data.get("major"),
            year=data.get("year"),
            bio=data.get("bio"),
            interests=list(data.get("interests") or []),
            profile_photos=[],
            swiped_left=[],
            swiped_right=[],
            is_profile_complete=False,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationFailed("Email already registered")

        logger.info("user_created", user_id=user.id, college=user.college)
        return user

    async def get_user_by_id(self, user_id: int) -> User | None:
        return await self.db.get(User, user_id)

    async def require_user(self, user_id: int) -> User:
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == _normalise_email(email))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def authenticate(self, email: str, password: str) -> User:
        """Credential check for login; raises ``Unauthenticated`` on mismatch."""
        user = await self.get_user_by_email(email)
        if user is None or not verify_password(password, user.password):
            raise Unauthenticated("Invalid credentials")
        return user

    async def update_user(self, user_id: int, updates: dict[str, Any]) -> User:
        user = await self.require_user(user_id)

        unknown = set(updates) - PROFILE_FIELDS
        if unknown:
            raise ValidationFailed(f"Fields not editable: {', '.join(sorted(unknown))}")
        cleared = {f for f, v in updates.items() if v is None and f in _REQUIRED_PROFILE_FIELDS}
        if cleared:
            raise ValidationFailed(f"Fields cannot be null: {', '.join(sorted(cleared))}")

        for field, value in updates.items():
            setattr(user, field, list(value) if isinstance(value, list) else value)
        await self.db.flush()

        logger.info("user_updated", user_id=user_id, fields=sorted(updates))
        return user

    async def _users_by_id(self, user_ids: Iterable[int]) -> dict[int, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {u.id: u for u in result.scalars().all()}

    # ── Swipes ────────────────────────────────────────────────────────────

    async def update_user_swipes(
        self,
        user_id: int,
        swiped_user_id: int,
        is_right_swipe: bool,
    ) -> User:
        """Record a swipe with set semantics; the latest direction wins.

        The actor row is read ``FOR UPDATE`` so concurrent swipes by the same
        user cannot lose each other's list writes on PostgreSQL.
        """
        stmt = (
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFound("User not found")

        swiped_left = [uid for uid in (user.swiped_left or []) if uid != swiped_user_id]
        swiped_right = [uid for uid in (user.swiped_right or []) if uid != swiped_user_id]
        if is_right_swipe:
            swiped_right.append(swiped_user_id)
        else:
            swiped_left.append(swiped_user_id)

        # Fresh list objects so the JSON columns are flagged dirty.
        user.swiped_left = swiped_left
        user.swiped_right = swiped_right
        await self.db.flush()
        return user

    async def get_potential_matches(self, user_id: int, limit: int | None = None) -> list[User]:
        user = await self.get_user_by_id(user_id)
        if user is None:
            return []

        if limit is None:
            limit = get_settings().POTENTIAL_MATCHES_PAGE_SIZE

        exclude = {user_id, *(user.swiped_left or []), *(user.swiped_right or [])}
        stmt = (
            select(User)
            .where(
                User.college == user.college,
                User.id.not_in(exclude),
                User.is_profile_complete.is_(True),
            )
            .order_by(User.id)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ── Matches ───────────────────────────────────────────────────────────

    async def create_match(self, user1_id: int, user2_id: int) -> Match:
        """Insert a match row.  Raises ``IntegrityError`` if the pair exists."""
        match = Match(
            user1_id=user1_id,
            user2_id=user2_id,
            pair_key=pair_key(user1_id, user2_id),
        )
        self.db.add(match)
        await self.db.flush()
        logger.info("match_created", match_id=match.id, user1_id=user1_id, user2_id=user2_id)
        return match

    async def get_match_by_id(self, match_id: int) -> Match | None:
        return await self.db.get(Match, match_id)

    async def check_existing_match(self, user1_id: int, user2_id: int) -> Match | None:
        stmt = select(Match).where(Match.pair_key == pair_key(user1_id, user2_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_match_for_participant(self, match_id: int, user_id: int) -> Match:
        match = await self.get_match_by_id(match_id)
        if match is None or not match.involves(user_id):
            raise NotFound("Match not found")
        return match

    async def get_matches_for_user(self, user_id: int) -> list[tuple[Match, User]]:
        """Matches involving ``user_id`` (newest first) paired with the other user."""
        stmt = (
            select(Match)
            .where(or_(Match.user1_id == user_id, Match.user2_id == user_id))
            .order_by(Match.created_at.desc(), Match.id.desc())
        )
        result = await self.db.execute(stmt)
        matches = list(result.scalars().all())

        others = await self._users_by_id(m.other_user_id(user_id) for m in matches)
        return [
            (m, others[m.other_user_id(user_id)])
            for m in matches
            if m.other_user_id(user_id) in others
        ]

    # ── Messages ──────────────────────────────────────────────────────────

    async def create_message(self, match_id: int, sender_id: int, content: str) -> tuple[Message, Match]:
        """Persist a chat message from one of the match's participants."""
        if not isinstance(content, str) or not content.strip():
            raise ValidationFailed("Message content cannot be empty")
        max_length = get_settings().MESSAGE_MAX_LENGTH
        if len(content) > max_length:
            raise ValidationFailed(f"Message content exceeds {max_length} characters")

        match = await self.get_match_for_participant(match_id, sender_id)

        message = Message(match_id=match.id, sender_id=sender_id, content=content)
        self.db.add(message)
        await self.db.flush()

        logger.info("message_created", message_id=message.id, match_id=match.id, sender_id=sender_id)
        return message, match

    async def get_messages_for_match(self, match_id: int, user_id: int) -> list[tuple[Message, User]]:
        """Messages of a match the caller belongs to, oldest first."""
        await self.get_match_for_participant(match_id, user_id)

        stmt = (
            select(Message)
            .where(Message.match_id == match_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        result = await self.db.execute(stmt)
        messages = list(result.scalars().all())

        senders = await self._users_by_id(m.sender_id for m in messages)
        return [(m, senders[m.sender_id]) for m in messages if m.sender_id in senders]

    # ── Events ────────────────────────────────────────────────────────────

    async def create_event(self, creator: User, data: dict[str, Any]) -> Event:
        event = Event(
            title=data["title"],
            description=data["description"],
            location=data["location"],
            starts_at=as_utc(data["starts_at"]),
            category=data["category"],
            created_by=creator.id,
            college=creator.college,
            attendees=[],
        )
        self.db.add(event)
        await self.db.flush()
        logger.info("event_created", event_id=event.id, college=event.college)
        return event

    async def get_event_by_id(self, event_id: int, for_update: bool = False) -> Event:
        stmt = select(Event).where(Event.id == event_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        event = result.scalar_one_or_none()
        if event is None:
            raise NotFound("Event not found")
        return event

    async def set_event_attendees(self, event: Event, attendees: list[int]) -> Event:
        event.attendees = list(attendees)
        await self.db.flush()
        return event

    async def get_events_for_college(self, college: str) -> list[tuple[Event, User]]:
        stmt = (
            select(Event)
            .where(Event.college == college)
            .order_by(Event.starts_at.asc(), Event.id.asc())
        )
        result = await self.db.execute(stmt)
        events = list(result.scalars().all())

        creators = await self._users_by_id(e.created_by for e in events)
        return [(e, creators[e.created_by]) for e in events if e.created_by in creators]

    # ── Compliments ───────────────────────────────────────────────────────

    async def create_compliment(self, from_user_id: int, data: dict[str, Any]) -> Compliment:
        to_user_id = data["to_user_id"]
        if to_user_id == from_user_id:
            raise ValidationFailed("Cannot send a compliment to yourself")
        await self.require_user(to_user_id)

        compliment = Compliment(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            message=data["message"],
            is_revealed=bool(data.get("is_revealed", False)),
        )
        self.db.add(compliment)
        await self.db.flush()
        logger.info("compliment_created", compliment_id=compliment.id, to_user_id=to_user_id)
        return compliment

    async def get_compliments_for_user(self, user_id: int) -> list[tuple[Compliment, User]]:
        """Compliments received by ``user_id``, newest first, with the sender."""
        stmt = (
            select(Compliment)
            .where(Compliment.to_user_id == user_id)
            .order_by(Compliment.created_at.desc(), Compliment.id.desc())
        )
        result = await self.db.execute(stmt)
        compliments = list(result.scalars().all())

        senders = await self._users_by_id(c.from_user_id for c in compliments)
        return [(c, senders[c.from_user_id]) for c in compliments if c.from_user_id in senders]

    async def get_users_for_compliments(self, college: str, exclude_user_id: int) -> list[User]:
        stmt = (
            select(User)
            .where(
                and_(
                    User.college == college,
                    User.id != exclude_user_id,
                    User.is_profile_complete.is_(True),
                )
            )
            .order_by(User.name, User.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
