"""
CampusConnect — Swipe API

Discovery feed and swipe recording.  A right swipe on someone who already
liked the caller creates (or returns) the pair's single match.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_matching
from app.database import get_db
from app.models.user import User
from app.schemas.match import SwipeRequest, SwipeResponse
from app.schemas.user import UserResponse
from app.services.matching_service import MatchingService

logger = structlog.get_logger("campusconnect.api.swipe")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /potential-matches — Discovery feed
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/potential-matches",
    response_model=list[UserResponse],
    summary="Get discovery feed candidates",
)
async def potential_matches(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    matching: MatchingService = Depends(get_matching),
) -> list[User]:
    """Same-college users with complete profiles the caller has not swiped
    on yet, excluding the caller."""
    return await matching.potential_matches(db, current_user.id)


# ──────────────────────────────────────────────────────────────────────────────
# POST /{target_user_id} — Record swipe action
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{target_user_id}",
    response_model=SwipeResponse,
    response_model_exclude_none=True,
    summary="Swipe left or right on a user",
)
async def swipe(
    target_user_id: int,
    payload: SwipeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    matching: MatchingService = Depends(get_matching),
) -> SwipeResponse:
    log = logger.bind(
        user_id=current_user.id,
        target_id=target_user_id,
        is_right_swipe=payload.is_right_swipe,
    )
    log.info("swipe_start")

    match = await matching.swipe(db, current_user.id, target_user_id, payload.is_right_swipe)

    if match is None:
        return SwipeResponse(match=False)
    log.info("swipe_matched", match_id=match.id)
    return SwipeResponse(match=True, match_id=match.id)
