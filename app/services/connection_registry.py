"""
CampusConnect — Connection Registry

Tracks which live WebSocket channel belongs to which user.  At most one
channel is active per user: registering a new channel replaces the old
mapping (last connection wins).  Unregistering is identity-checked so that a
stale channel closing late never evicts the newer one that replaced it.

Register / unregister are linearized with an ``asyncio.Lock``; lookups are
plain dict reads on the event loop.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from starlette.websockets import WebSocketState

logger = structlog.get_logger("campusconnect.connection_registry")

# Close code sent to live channels on process shutdown ("going away").
SHUTDOWN_CLOSE_CODE = 1001


def is_channel_open(channel: Any) -> bool:
    """True while both sides of a Starlette WebSocket are connected."""
    return (
        getattr(channel, "client_state", None) == WebSocketState.CONNECTED
        and getattr(channel, "application_state", None) == WebSocketState.CONNECTED
    )


class ConnectionRegistry:
    """user id -> open channel, one channel per user."""

    def __init__(self) -> None:
        self._channels: dict[int, Any] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._channels

    async def register(self, user_id: int, channel: Any) -> Any | None:
        """Map ``user_id`` to ``channel``; return the channel it replaced."""
        async with self._lock:
            previous = self._channels.get(user_id)
            self._channels[user_id] = channel

        if previous is not None and previous is not channel:
            logger.info("channel_replaced", user_id=user_id)
        else:
            logger.info("channel_registered", user_id=user_id)
        return previous

    async def unregister(self, user_id: int, channel: Any | None = None) -> bool:
        """Drop the mapping for ``user_id``.

        When ``channel`` is given the mapping is only removed if it still
        points at that exact channel.
        """
        async with self._lock:
            current = self._channels.get(user_id)
            if current is None:
                return False
            if channel is not None and current is not channel:
                logger.info("channel_unregister_skipped_stale", user_id=user_id)
                return False
            del self._channels[user_id]

        logger.info("channel_unregistered", user_id=user_id)
        return True

    def lookup(self, user_id: int) -> Any | None:
        return self._channels.get(user_id)

    def connected_user_ids(self) -> list[int]:
        return list(self._channels)

    async def close_all(self) -> None:
        """Close and forget every channel (process shutdown)."""
        async with self._lock:
            channels = list(self._channels.items())
            self._channels.clear()

        for user_id, channel in channels:
            if not is_channel_open(channel):
                continue
            try:
                await channel.close(code=SHUTDOWN_CLOSE_CODE)
            except Exception:
                logger.exception("channel_close_failed", user_id=user_id)

        logger.info("connection_registry_closed", closed=len(channels))
