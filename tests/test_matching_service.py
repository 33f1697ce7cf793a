"""Tests for MatchingService — swipes, mutual matches and event attendance."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from app.exceptions import NotFound, ValidationFailed
from app.models import Match
from app.services.matching_service import KeyedLocks, MatchingService
from app.services.storage_service import StorageService


@pytest.fixture
def matching_service():
    return MatchingService(page_size=10)


async def _match_count(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(func.count(Match.id)))).scalar_one()


class TestSwipe:

    @pytest.mark.asyncio
    async def test_one_way_like_is_not_a_match(self, db, matching_service, user_factory, session_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")

        assert await matching_service.swipe(db, a.id, b.id, True) is None
        assert await _match_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_mutual_like_creates_match(self, db, matching_service, user_factory, session_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")

        await matching_service.swipe(db, b.id, a.id, True)
        match = await matching_service.swipe(db, a.id, b.id, True)

        assert match is not None
        assert match.involves(a.id) and match.involves(b.id)
        # The second liker is recorded as user1.
        assert match.user1_id == a.id
        assert await _match_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_pass_never_matches(self, db, matching_service, user_factory, session_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")

        await matching_service.swipe(db, b.id, a.id, True)
        assert await matching_service.swipe(db, a.id, b.id, False) is None
        assert await _match_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_relike_returns_existing_match(self, db, matching_service, user_factory, session_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")

        await matching_service.swipe(db, b.id, a.id, True)
        first = await matching_service.swipe(db, a.id, b.id, True)
        again = await matching_service.swipe(db, b.id, a.id, True)

        assert again.id == first.id
        assert await _match_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_concurrent_mutual_likes_make_one_match(self, matching_service, user_factory, session_factory):
        """Both users liking each other at the same time yields exactly one match."""
        async with session_factory() as setup:
            a = await user_factory(setup, "a@state.edu")
            b = await user_factory(setup, "b@state.edu")

        async def like(actor_id, target_id):
            async with session_factory() as session:
                return await matching_service.swipe(session, actor_id, target_id, True)

        results = await asyncio.gather(like(a.id, b.id), like(b.id, a.id))

        matches = [m for m in results if m is not None]
        assert len(matches) == 1
        assert await _match_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_concurrent_likes_by_one_user_all_recorded(self, matching_service, user_factory, session_factory):
        """Parallel swipes by the same user each rewrite the swipe lists; none may be lost."""
        async with session_factory() as setup:
            a = await user_factory(setup, "a@state.edu")
            targets = [await user_factory(setup, f"t{i}@state.edu") for i in range(6)]

        async def like(target_id):
            async with session_factory() as session:
                return await matching_service.swipe(session, a.id, target_id, True)

        await asyncio.gather(*(like(t.id) for t in targets))

        async with session_factory() as session:
            actor = await StorageService(session).require_user(a.id)
            assert sorted(actor.swiped_right) == sorted(t.id for t in targets)

            # Any of them liking back now completes a match.
            match = await matching_service.swipe(session, targets[0].id, a.id, True)
        assert match is not None
        assert await _match_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_self_swipe_rejected(self, db, matching_service, user_factory):
        a = await user_factory(db, "a@state.edu")
        with pytest.raises(ValidationFailed):
            await matching_service.swipe(db, a.id, a.id, True)

    @pytest.mark.asyncio
    async def test_unknown_target(self, db, matching_service, user_factory):
        a = await user_factory(db, "a@state.edu")
        with pytest.raises(NotFound):
            await matching_service.swipe(db, a.id, 999, True)


class TestPotentialMatches:

    @pytest.mark.asyncio
    async def test_liked_user_disappears_from_feed(self, db, matching_service, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")

        await matching_service.swipe(db, a.id, b.id, True)

        assert b.id not in {u.id for u in await matching_service.potential_matches(db, a.id)}
        # B has not swiped yet, so A is still offered to B.
        assert a.id in {u.id for u in await matching_service.potential_matches(db, b.id)}

    @pytest.mark.asyncio
    async def test_page_size_respected(self, db, user_factory):
        me = await user_factory(db, "me@state.edu")
        for i in range(5):
            await user_factory(db, f"u{i}@state.edu")

        service = MatchingService(page_size=3)
        assert len(await service.potential_matches(db, me.id)) == 3


class TestEvents:

    async def _event(self, db, creator):
        event = await StorageService(db).create_event(creator, {
            "title": "Movie night",
            "description": "Outdoor screening",
            "location": "Quad",
            "starts_at": datetime.now(timezone.utc) + timedelta(days=1),
            "category": "social",
        })
        await db.commit()
        return event

    @pytest.mark.asyncio
    async def test_join_is_idempotent(self, db, matching_service, user_factory):
        a = await user_factory(db, "a@state.edu")
        event = await self._event(db, a)

        await matching_service.join_event(db, event.id, a.id)
        joined = await matching_service.join_event(db, event.id, a.id)
        assert joined.attendees == [a.id]

    @pytest.mark.asyncio
    async def test_leave(self, db, matching_service, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        event = await self._event(db, a)

        await matching_service.join_event(db, event.id, a.id)
        await matching_service.join_event(db, event.id, b.id)
        left = await matching_service.leave_event(db, event.id, a.id)
        assert left.attendees == [b.id]

    @pytest.mark.asyncio
    async def test_leave_as_non_member_is_noop(self, db, matching_service, user_factory):
        a = await user_factory(db, "a@state.edu")
        event = await self._event(db, a)

        left = await matching_service.leave_event(db, event.id, a.id)
        assert left.attendees == []

    @pytest.mark.asyncio
    async def test_unknown_event(self, db, matching_service, user_factory):
        a = await user_factory(db, "a@state.edu")
        with pytest.raises(NotFound):
            await matching_service.join_event(db, 999, a.id)


class TestKeyedLocks:

    def test_same_key_same_lock(self):
        locks = KeyedLocks()
        first = locks.get("1:2")
        assert locks.get("1:2") is first
        assert locks.get("1:3") is not first

    @pytest.mark.asyncio
    async def test_hold_all_takes_every_lock(self):
        locks = KeyedLocks()
        async with locks.hold_all(["7", "3", "7"]):
            assert locks.get("3").locked()
            assert locks.get("7").locked()
        assert not locks.get("3").locked()

    @pytest.mark.asyncio
    async def test_overlapping_holds_do_not_deadlock(self):
        locks = KeyedLocks()
        order = []

        async def worker(name, keys):
            async with locks.hold_all(keys):
                order.append(name)
                await asyncio.sleep(0)

        await asyncio.wait_for(
            asyncio.gather(worker("ab", ["a", "b"]), worker("ba", ["b", "a"])),
            timeout=1,
        )
        assert sorted(order) == ["ab", "ba"]

    @pytest.mark.asyncio
    async def test_unused_locks_are_released(self):
        locks = KeyedLocks()
        async with locks.hold("1:2"):
            assert len(locks) == 1
        assert len(locks) == 0
