"""
CampusConnect — Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire HTTP API surface with one ``include_router`` call.
The WebSocket endpoint lives in ``app.api.realtime`` and is mounted at the
application root.
"""

from fastapi import APIRouter

from app.api import auth, compliments, events, matches, swipe, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(swipe.router, prefix="/swipe", tags=["Swipe"])
router.include_router(matches.router, prefix="/matches", tags=["Matches"])
router.include_router(events.router, prefix="/events", tags=["Events"])
router.include_router(compliments.router, prefix="/compliments", tags=["Compliments"])
