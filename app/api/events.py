"""
CampusConnect — Events API

Campus events are scoped to the caller's college.  Joining and leaving are
idempotent.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_matching
from app.database import get_db
from app.models.event import Event
from app.models.user import User
from app.schemas.event import EventCreate, EventResponse, EventWithCreator
from app.schemas.user import MessageResult, UserResponse
from app.services.matching_service import MatchingService
from app.services.storage_service import StorageService

logger = structlog.get_logger("campusconnect.api.events")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET / — Events at the caller's college
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=list[EventWithCreator],
    summary="List events at the caller's college",
)
async def list_events(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[EventWithCreator]:
    """Ordered by start time, each with its creator."""
    rows = await StorageService(db).get_events_for_college(current_user.college)
    return [
        EventWithCreator(
            **EventResponse.model_validate(event).model_dump(),
            creator=UserResponse.model_validate(creator),
        )
        for event, creator in rows
    ]


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Create event
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=EventResponse,
    summary="Create an event at the caller's college",
)
async def create_event(
    payload: EventCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Event:
    event = await StorageService(db).create_event(current_user, payload.model_dump())
    logger.info("create_event_complete", event_id=event.id, user_id=current_user.id)
    return event


# ──────────────────────────────────────────────────────────────────────────────
# POST /{event_id}/join and /{event_id}/leave
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{event_id}/join",
    response_model=MessageResult,
    summary="Join an event",
)
async def join_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    matching: MatchingService = Depends(get_matching),
) -> MessageResult:
    await matching.join_event(db, event_id, current_user.id)
    return MessageResult(message="Joined event successfully")


@router.post(
    "/{event_id}/leave",
    response_model=MessageResult,
    summary="Leave an event",
)
async def leave_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    matching: MatchingService = Depends(get_matching),
) -> MessageResult:
    await matching.leave_event(db, event_id, current_user.id)
    return MessageResult(message="Left event successfully")
