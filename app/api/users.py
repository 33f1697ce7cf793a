"""
CampusConnect — Users API

Profile editing for the authenticated user.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.user import ProfileUpdate, UserResponse
from app.services.storage_service import StorageService

logger = structlog.get_logger("campusconnect.api.users")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# PUT /profile — Update own profile
# ──────────────────────────────────────────────────────────────────────────────

@router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update the authenticated user's profile",
)
async def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Apply a partial profile update.

    Only fields present in the request body are changed.  Swipe lists,
    email and password are not editable here.
    """
    updates = payload.model_dump(exclude_unset=True)
    log = logger.bind(user_id=current_user.id, fields=sorted(updates))
    log.info("update_profile_start")

    user = await StorageService(db).update_user(current_user.id, updates)

    log.info("update_profile_complete", is_profile_complete=user.is_profile_complete)
    return user
