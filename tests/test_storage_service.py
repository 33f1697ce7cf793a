"""Tests for StorageService against a temporary SQLite database."""
from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import NotFound, Unauthenticated, ValidationFailed
from app.services.storage_service import StorageService


class TestUsers:

    @pytest.mark.asyncio
    async def test_create_user_hashes_password(self, db, user_factory):
        user = await user_factory(db, "ada@state.edu")
        assert user.password != "hunter22"
        assert user.password.startswith("$2")
        assert user.swiped_left == [] and user.swiped_right == []

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, db, user_factory):
        await user_factory(db, "ada@state.edu")
        with pytest.raises(ValidationFailed, match="Email already registered"):
            await user_factory(db, "ADA@state.edu")

    @pytest.mark.asyncio
    async def test_authenticate(self, db, user_factory):
        user = await user_factory(db, "ada@state.edu")
        storage = StorageService(db)

        assert (await storage.authenticate("ada@state.edu", "hunter22")).id == user.id
        with pytest.raises(Unauthenticated):
            await storage.authenticate("ada@state.edu", "wrong-password")
        with pytest.raises(Unauthenticated):
            await storage.authenticate("nobody@state.edu", "hunter22")

    @pytest.mark.asyncio
    async def test_update_user_partial(self, db, user_factory):
        user = await user_factory(db, "ada@state.edu", complete=False)
        storage = StorageService(db)

        updated = await storage.update_user(user.id, {"bio": "hello", "is_profile_complete": True})
        assert updated.bio == "hello"
        assert updated.is_profile_complete is True
        assert updated.name == "Ada"

    @pytest.mark.asyncio
    async def test_update_user_rejects_swipe_lists(self, db, user_factory):
        user = await user_factory(db, "ada@state.edu")
        with pytest.raises(ValidationFailed):
            await StorageService(db).update_user(user.id, {"swiped_right": [1]})

    @pytest.mark.asyncio
    async def test_update_unknown_user(self, db):
        with pytest.raises(NotFound):
            await StorageService(db).update_user(404, {"bio": "x"})


class TestSwipes:

    @pytest.mark.asyncio
    async def test_latest_swipe_wins(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        storage = StorageService(db)

        await storage.update_user_swipes(a.id, b.id, False)
        user = await storage.update_user_swipes(a.id, b.id, True)
        assert user.swiped_left == []
        assert user.swiped_right == [b.id]

    @pytest.mark.asyncio
    async def test_repeat_swipe_not_duplicated(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        storage = StorageService(db)

        await storage.update_user_swipes(a.id, b.id, True)
        user = await storage.update_user_swipes(a.id, b.id, True)
        assert user.swiped_right == [b.id]


class TestPotentialMatches:

    @pytest.mark.asyncio
    async def test_filters(self, db, user_factory):
        me = await user_factory(db, "me@state.edu")
        visible = await user_factory(db, "visible@state.edu")
        swiped = await user_factory(db, "swiped@state.edu")
        await user_factory(db, "incomplete@state.edu", complete=False)
        await user_factory(db, "elsewhere@tech.edu", college="Tech Institute")

        storage = StorageService(db)
        await storage.update_user_swipes(me.id, swiped.id, False)
        await db.commit()

        result = await storage.get_potential_matches(me.id)
        assert [u.id for u in result] == [visible.id]

    @pytest.mark.asyncio
    async def test_page_size(self, db, user_factory):
        me = await user_factory(db, "me@state.edu")
        for i in range(12):
            await user_factory(db, f"user{i}@state.edu")

        result = await StorageService(db).get_potential_matches(me.id, limit=10)
        assert len(result) == 10
        assert me.id not in {u.id for u in result}


class TestMatchesAndMessages:

    @pytest.mark.asyncio
    async def test_match_lookup_is_unordered(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        storage = StorageService(db)

        match = await storage.create_match(a.id, b.id)
        assert (await storage.check_existing_match(b.id, a.id)).id == match.id

    @pytest.mark.asyncio
    async def test_matches_for_user_carry_other_user(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        storage = StorageService(db)
        await storage.create_match(a.id, b.id)

        [(_, other_for_a)] = await storage.get_matches_for_user(a.id)
        [(_, other_for_b)] = await storage.get_matches_for_user(b.id)
        assert other_for_a.id == b.id
        assert other_for_b.id == a.id

    @pytest.mark.asyncio
    async def test_messages_in_order(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        storage = StorageService(db)
        match = await storage.create_match(a.id, b.id)

        await storage.create_message(match.id, a.id, "hi")
        await storage.create_message(match.id, b.id, "hey")
        rows = await storage.get_messages_for_match(match.id, b.id)

        assert [m.content for m, _ in rows] == ["hi", "hey"]
        assert [s.id for _, s in rows] == [a.id, b.id]

    @pytest.mark.asyncio
    async def test_timestamps_read_back_as_utc(self, db, user_factory, session_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        storage = StorageService(db)
        match = await storage.create_match(a.id, b.id)
        sent, _ = await storage.create_message(match.id, a.id, "hi")
        event = await storage.create_event(a, {
            "title": "Brunch",
            "description": "d",
            "location": "Hall",
            "starts_at": datetime(2030, 5, 1, 9, 30, tzinfo=timezone(timedelta(hours=-4))),
            "category": "social",
        })
        await db.commit()

        async with session_factory() as fresh:
            storage = StorageService(fresh)
            [(message, sender)] = await storage.get_messages_for_match(match.id, b.id)
            [(stored_event, _)] = await storage.get_events_for_college("State University")

        assert message.created_at == sent.created_at
        assert message.created_at.utcoffset() == timedelta(0)
        assert sender.created_at.utcoffset() == timedelta(0)
        assert stored_event.id == event.id
        assert stored_event.starts_at == datetime(2030, 5, 1, 13, 30, tzinfo=timezone.utc)
        assert stored_event.starts_at.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_outsider_cannot_post_or_read(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        c = await user_factory(db, "c@state.edu")
        storage = StorageService(db)
        match = await storage.create_match(a.id, b.id)

        with pytest.raises(NotFound, match="Match not found"):
            await storage.create_message(match.id, c.id, "let me in")
        with pytest.raises(NotFound):
            await storage.get_messages_for_match(match.id, c.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", "x" * 2001])
    async def test_invalid_content(self, db, user_factory, content):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        storage = StorageService(db)
        match = await storage.create_match(a.id, b.id)

        with pytest.raises(ValidationFailed):
            await storage.create_message(match.id, a.id, content)


class TestEventsAndCompliments:

    @pytest.mark.asyncio
    async def test_events_scoped_to_college_and_ordered(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        other = await user_factory(db, "o@tech.edu", college="Tech Institute")
        storage = StorageService(db)
        now = datetime.now(timezone.utc)

        def event(title, when):
            return {
                "title": title,
                "description": "d",
                "location": "Quad",
                "starts_at": when,
                "category": "social",
            }

        await storage.create_event(a, event("later", now + timedelta(days=2)))
        await storage.create_event(a, event("sooner", now + timedelta(days=1)))
        await storage.create_event(other, event("elsewhere", now))

        rows = await storage.get_events_for_college("State University")
        assert [e.title for e, _ in rows] == ["sooner", "later"]
        assert all(creator.id == a.id for _, creator in rows)
        assert all(e.attendees == [] for e, _ in rows)

    @pytest.mark.asyncio
    async def test_unknown_event(self, db):
        with pytest.raises(NotFound):
            await StorageService(db).get_event_by_id(123)

    @pytest.mark.asyncio
    async def test_compliment_rules(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        storage = StorageService(db)

        with pytest.raises(ValidationFailed):
            await storage.create_compliment(a.id, {"to_user_id": a.id, "message": "me!"})
        with pytest.raises(NotFound):
            await storage.create_compliment(a.id, {"to_user_id": 999, "message": "hi"})

        compliment = await storage.create_compliment(a.id, {"to_user_id": b.id, "message": "nice smile"})
        assert compliment.is_revealed is False
        [(received, sender)] = await storage.get_compliments_for_user(b.id)
        assert received.id == compliment.id
        assert sender.id == a.id

    @pytest.mark.asyncio
    async def test_users_for_compliments(self, db, user_factory):
        a = await user_factory(db, "a@state.edu")
        b = await user_factory(db, "b@state.edu")
        await user_factory(db, "c@state.edu", complete=False)
        await user_factory(db, "d@tech.edu", college="Tech Institute")

        users = await StorageService(db).get_users_for_compliments(a.college, a.id)
        assert [u.id for u in users] == [b.id]
