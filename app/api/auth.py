"""
CampusConnect — Auth API

Registration, login, logout and "who am I".  A successful register or login
mints a fresh session token that the client sends as a bearer token and as
the ``sessionId`` query parameter of the chat WebSocket.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_session_token, get_sessions
from app.database import get_db
from app.models.user import User
from app.schemas.user import (
    AuthResponse,
    LoginRequest,
    MessageResult,
    RegisterRequest,
    UserResponse,
)
from app.services.session_registry import SessionRegistry
from app.services.storage_service import StorageService

logger = structlog.get_logger("campusconnect.api.auth")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST /register — Create an account and log in
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/register",
    response_model=AuthResponse,
    summary="Register a new user",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AuthResponse:
    """Create the user, then issue a session token for them."""
    log = logger.bind(college=payload.college)
    log.info("register_start")

    user = await StorageService(db).create_user(payload.model_dump())
    # The row must be durable before a token can point at it.
    await db.commit()

    token = sessions.create_session(user.id, user.email)
    log.info("register_complete", user_id=user.id)
    return AuthResponse(user=UserResponse.model_validate(user), session_id=token)


# ──────────────────────────────────────────────────────────────────────────────
# POST /login
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in with email and password",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AuthResponse:
    user = await StorageService(db).authenticate(payload.email, payload.password)
    token = sessions.create_session(user.id, user.email)
    logger.info("login_complete", user_id=user.id)
    return AuthResponse(user=UserResponse.model_validate(user), session_id=token)


# ──────────────────────────────────────────────────────────────────────────────
# POST /logout
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/logout",
    response_model=MessageResult,
    summary="Revoke the current session token",
)
async def logout(
    token: str = Depends(get_session_token),
    sessions: SessionRegistry = Depends(get_sessions),
) -> MessageResult:
    sessions.require(token)
    sessions.revoke(token)
    return MessageResult(message="Logged out successfully")


# ──────────────────────────────────────────────────────────────────────────────
# GET /me
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the authenticated user",
)
async def me(current_user: User = Depends(get_current_user)) -> User:
    return current_user
