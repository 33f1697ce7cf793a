"""
CampusConnect — Compliments API

Anonymous compliments between students of the same college.  The recipient
only sees who sent one when the sender chose to reveal themselves.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.models.compliment import Compliment
from app.models.user import User
from app.schemas.compliment import ComplimentCreate, ComplimentResponse, ReceivedCompliment
from app.schemas.user import UserResponse
from app.services.storage_service import StorageService

logger = structlog.get_logger("campusconnect.api.compliments")

router = APIRouter()


@router.get(
    "",
    response_model=list[ReceivedCompliment],
    summary="List compliments received by the caller",
)
async def list_compliments(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ReceivedCompliment]:
    rows = await StorageService(db).get_compliments_for_user(current_user.id)

    items: list[ReceivedCompliment] = []
    for compliment, sender in rows:
        revealed = compliment.is_revealed
        items.append(ReceivedCompliment(
            id=compliment.id,
            from_user_id=compliment.from_user_id if revealed else None,
            to_user_id=compliment.to_user_id,
            message=compliment.message,
            is_revealed=revealed,
            created_at=compliment.created_at,
            from_user=UserResponse.model_validate(sender) if revealed else None,
        ))
    return items


@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="List users the caller can compliment",
)
async def list_compliment_targets(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[User]:
    return await StorageService(db).get_users_for_compliments(
        current_user.college, current_user.id
    )


@router.post(
    "",
    response_model=ComplimentResponse,
    summary="Send a compliment",
)
async def create_compliment(
    payload: ComplimentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Compliment:
    compliment = await StorageService(db).create_compliment(current_user.id, payload.model_dump())
    logger.info(
        "create_compliment_complete",
        compliment_id=compliment.id,
        is_revealed=compliment.is_revealed,
    )
    return compliment
