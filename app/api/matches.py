"""
CampusConnect — Matches API

Lists the caller's matches and exposes the HTTP side of chat: fetching a
match's history and sending a message without a live WebSocket.  Messages
sent here are pushed to the peer's channel when they have one open.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_chat_router, get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.match import MatchResponse, MessageCreate, MessageResponse
from app.schemas.user import UserResponse
from app.services.chat_router import ChatRouter, serialize_message
from app.services.storage_service import StorageService

logger = structlog.get_logger("campusconnect.api.matches")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET / — List matches
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=list[MatchResponse],
    summary="List the caller's matches",
)
async def list_matches(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[MatchResponse]:
    """Newest first; each item carries the other participant as ``otherUser``."""
    rows = await StorageService(db).get_matches_for_user(current_user.id)

    items = [
        MatchResponse(
            id=match.id,
            user1_id=match.user1_id,
            user2_id=match.user2_id,
            created_at=match.created_at,
            other_user=UserResponse.model_validate(other),
        )
        for match, other in rows
    ]
    logger.info("list_matches_complete", user_id=current_user.id, count=len(items))
    return items


# ──────────────────────────────────────────────────────────────────────────────
# GET /{match_id}/messages — Chat history
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{match_id}/messages",
    response_model=list[MessageResponse],
    summary="Get the messages of a match",
)
async def list_messages(
    match_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[MessageResponse]:
    rows = await StorageService(db).get_messages_for_match(match_id, current_user.id)
    return [serialize_message(message, sender) for message, sender in rows]


# ──────────────────────────────────────────────────────────────────────────────
# POST /{match_id}/messages — Send a message over HTTP
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{match_id}/messages",
    response_model=MessageResponse,
    summary="Send a message to a match",
)
async def send_message(
    match_id: int,
    payload: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    chat_router: ChatRouter = Depends(get_chat_router),
) -> MessageResponse:
    """Persist the message, then forward it to the peer if they are connected.

    This is also the fallback path for clients whose WebSocket send failed.
    """
    log = logger.bind(user_id=current_user.id, match_id=match_id)

    message, match = await StorageService(db).create_message(
        match_id, current_user.id, payload.content
    )
    result = serialize_message(message, current_user)
    # Durable before the peer can be told about it.
    await db.commit()

    delivered = await chat_router.deliver(match.other_user_id(current_user.id), result)
    log.info("send_message_complete", message_id=result.id, delivered=delivered)
    return result
