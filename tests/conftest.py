"""Shared pytest fixtures for CampusConnect tests."""
import asyncio
import os
import tempfile

# Settings are read once per process, so the environment has to be in place
# before anything under ``app`` is imported.
_DB_DIR = tempfile.mkdtemp(prefix="campusconnect-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from starlette.websockets import WebSocketState  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base, async_session_factory, engine  # noqa: E402
from app.services.storage_service import StorageService  # noqa: E402


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest_asyncio.fixture
async def session_factory():
    """Fresh schema; yields the application's session factory."""
    await _reset_schema()
    yield async_session_factory


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def client():
    """TestClient with a running lifespan over a fresh schema."""
    from fastapi.testclient import TestClient

    from app.main import app

    asyncio.run(_reset_schema())
    with TestClient(app) as test_client:
        yield test_client


# ── Helpers ───────────────────────────────────────────────────────────────────

async def make_user(db, email, college="State University", complete=True, **fields):
    """Create (and by default complete) a user, committing the row."""
    storage = StorageService(db)
    user = await storage.create_user({
        "email": email,
        "password": "hunter22",
        "name": fields.pop("name", email.split("@")[0].title()),
        "age": fields.pop("age", 21),
        "college": college,
        "interests": fields.pop("interests", ["hiking"]),
    })
    if complete or fields:
        await storage.update_user(user.id, {"is_profile_complete": complete, **fields})
    await db.commit()
    return user


class FakeChannel:
    """Stands in for a Starlette WebSocket in registry and router tests."""

    def __init__(self, open_=True):
        state = WebSocketState.CONNECTED if open_ else WebSocketState.DISCONNECTED
        self.client_state = state
        self.application_state = state
        self.send_json = AsyncMock()
        self.close = AsyncMock(side_effect=self._closed)

    async def _closed(self, code=1000, reason=None):
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    @property
    def sent(self):
        return [call.args[0] for call in self.send_json.await_args_list]


@pytest.fixture
def fake_channel():
    return FakeChannel()


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def channel_factory():
    return FakeChannel
