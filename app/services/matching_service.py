"""
CampusConnect — Matching Engine

Swipe recording, mutual-like detection and match creation, plus the
discovery feed and event attendance toggles.

Match creation is a check-then-insert.  It is serialised three ways:

  1. In-process ``asyncio.Lock``s for both users, taken in a fixed order, wrap
     record + check + insert + commit.  Two users liking each other at the
     same moment are handled one after the other, and so are concurrent
     swipes by one user, whose swipe lists are rewritten as a whole.
  2. The actor's row is also read ``FOR UPDATE`` where the database supports it.
  3. ``matches.pair_key`` carries a unique constraint; an insert that loses a
     race anyway (e.g. across processes) resolves to the existing row.

Only the second-arriving like creates a match; a pass never does.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Iterable
from weakref import WeakValueDictionary

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import Conflict, ValidationFailed
from app.models import Event, Match, User
from app.services.storage_service import StorageService

logger = structlog.get_logger("campusconnect.matching_service")


class KeyedLocks:
    """Lazily created ``asyncio.Lock`` per key.

    Locks are held weakly and disappear once no coroutine holds or waits on
    them, so the table does not grow with every key ever seen.
    """

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self.get(key)
        async with lock:
            yield

    @asynccontextmanager
    async def hold_all(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Hold the locks for every key, acquired in sorted order."""
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self.hold(key))
            yield


class MatchingService:
    """Swipe / match / discovery / attendance operations.

    One instance lives for the whole process (``app.state.matching``) so that
    every request shares the same lock tables.
    """

    def __init__(self, page_size: int = 10) -> None:
        self.page_size = page_size
        self._user_locks = KeyedLocks()
        self._event_locks = KeyedLocks()

        logger.info("matching_service_initialised", page_size=page_size)

    # ── Public API ────────────────────────────────────────────────────────

    async def swipe(
        self,
        db: AsyncSession,
        actor_id: int,
        target_id: int,
        is_like: bool,
    ) -> Match | None:
        """Record a swipe and, for a like, return the resulting match (if any).

        Commits before the user locks are released so the next swipe involving
        either user always observes this one.
        """
        log = logger.bind(actor_id=actor_id, target_id=target_id, is_like=is_like)

        if actor_id == target_id:
            raise ValidationFailed("Cannot swipe on yourself")

        storage = StorageService(db)
        await storage.require_user(target_id)

        async with self._user_locks.hold_all((str(actor_id), str(target_id))):
            await self.record_swipe(db, actor_id, target_id, is_like)

            match = None
            if is_like:
                match = await self.evaluate_mutual(db, actor_id, target_id)

            await db.commit()

        log.info("swipe_complete", match_id=match.id if match else None)
        return match

    async def record_swipe(
        self,
        db: AsyncSession,
        actor_id: int,
        target_id: int,
        is_like: bool,
    ) -> User:
        """Add ``target_id`` to the actor's like- or pass-set."""
        return await StorageService(db).update_user_swipes(actor_id, target_id, is_like)

    async def evaluate_mutual(
        self,
        db: AsyncSession,
        actor_id: int,
        target_id: int,
    ) -> Match | None:
        """Return the match for the pair if ``target_id`` already likes ``actor_id``.

        Creates the match row when it does not exist yet; an existing row
        (re-like, or a concurrent insert) is returned as-is.
        """
        storage = StorageService(db)

        # The target may have been loaded before another session committed a
        # swipe; re-read it so the like-set is current.
        stmt = (
            select(User)
            .where(User.id == target_id)
            .execution_options(populate_existing=True)
        )
        target = (await db.execute(stmt)).scalar_one_or_none()
        if target is None or not target.likes(actor_id):
            return None

        existing = await storage.check_existing_match(actor_id, target_id)
        if existing is not None:
            logger.info("match_already_exists", match_id=existing.id)
            return existing

        try:
            async with db.begin_nested():
                match = await storage.create_match(actor_id, target_id)
        except IntegrityError:
            logger.warning(
                "match_insert_conflict",
                actor_id=actor_id,
                target_id=target_id,
            )
            existing = await storage.check_existing_match(actor_id, target_id)
            if existing is None:
                raise Conflict("Match could not be created")
            return existing

        logger.info("mutual_match_detected", match_id=match.id)
        return match

    async def potential_matches(self, db: AsyncSession, user_id: int) -> list[User]:
        """Same-college, complete, not-yet-swiped users other than ``user_id``."""
        users = await StorageService(db).get_potential_matches(user_id, limit=self.page_size)
        logger.info("potential_matches", user_id=user_id, count=len(users))
        return users

    async def join_event(self, db: AsyncSession, event_id: int, user_id: int) -> Event:
        """Add ``user_id`` to the attendees; joining twice is a no-op."""
        async with self._event_locks.hold(str(event_id)):
            storage = StorageService(db)
            event = await storage.get_event_by_id(event_id, for_update=True)
            attendees = list(event.attendees or [])
            if user_id not in attendees:
                attendees.append(user_id)
                await storage.set_event_attendees(event, attendees)
                logger.info("event_joined", event_id=event_id, user_id=user_id)
            await db.commit()
        return event

    async def leave_event(self, db: AsyncSession, event_id: int, user_id: int) -> Event:
        """Remove ``user_id`` from the attendees; leaving as a non-member is a no-op."""
        async with self._event_locks.hold(str(event_id)):
            storage = StorageService(db)
            event = await storage.get_event_by_id(event_id, for_update=True)
            attendees = list(event.attendees or [])
            if user_id in attendees:
                await storage.set_event_attendees(
                    event, [uid for uid in attendees if uid != user_id]
                )
                logger.info("event_left", event_id=event_id, user_id=user_id)
            await db.commit()
        return event
