"""
CampusConnect — Shared FastAPI dependencies.

Long-lived components (session registry, matching engine, chat router) are
created in the application lifespan and hung off ``app.state``; these
helpers hand them to route functions.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import Unauthenticated
from app.models.user import User
from app.services.chat_router import ChatRouter
from app.services.matching_service import MatchingService
from app.services.session_registry import SessionIdentity, SessionRegistry

bearer_scheme = HTTPBearer(auto_error=False)


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_matching(request: Request) -> MatchingService:
    return request.app.state.matching


def get_chat_router(request: Request) -> ChatRouter:
    return request.app.state.chat_router


async def get_session_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Bearer token from the ``Authorization`` header."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    return credentials.credentials


async def get_current_identity(
    token: str = Depends(get_session_token),
    sessions: SessionRegistry = Depends(get_sessions),
) -> SessionIdentity:
    return sessions.require(token)


async def get_current_user(
    identity: SessionIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """The authenticated user row; a session for a vanished user is rejected."""
    user = await db.get(User, identity.user_id)
    if user is None:
        raise Unauthenticated("User not found")
    return user
