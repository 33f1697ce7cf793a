"""
CampusConnect — Real-Time Router

Handles the life of one WebSocket chat channel and the routing of the chat
events it carries.

Channel state machine::

    CONNECTING --(token valid)--> OPEN --(close / error)--> CLOSED
        \\--(token missing / unknown)--------------------->/

For every ``chat_message`` event received while OPEN:

  1. parse (malformed events are logged and dropped),
  2. persist with sender = the channel's user,
  3. resolve the match's other participant,
  4. push ``new_message`` to the peer's channel if it is open.

A peer without a channel simply fetches the durable message later.  Failures
in steps 2-4 are logged and never close the sender's channel; a failed
persist is reported back as ``send_failed`` so the client can retry over
HTTP.  Events from one channel are processed strictly in arrival order.
"""

from __future__ import annotations

import enum
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.exceptions import CampusConnectError
from app.models import Message, User
from app.schemas.match import MessageResponse
from app.schemas.realtime import ChatMessageEvent, NewMessageEvent, SendFailedEvent
from app.schemas.user import UserResponse
from app.services.connection_registry import ConnectionRegistry, is_channel_open
from app.services.session_registry import SessionIdentity, SessionRegistry
from app.services.storage_service import StorageService

logger = structlog.get_logger("campusconnect.chat_router")


def serialize_message(message: Message, sender: User) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        match_id=message.match_id,
        sender_id=message.sender_id,
        content=message.content,
        created_at=message.created_at,
        sender=UserResponse.model_validate(sender),
    )


class ChatRouter:
    """Persist-then-forward routing of chat messages between matched users."""

    def __init__(
        self,
        connections: ConnectionRegistry,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self.connections = connections
        self.session_factory = session_factory

    async def handle_text(self, user_id: int, channel: Any, raw: str) -> MessageResponse | None:
        """Entry point for one inbound frame from ``user_id``'s channel."""
        try:
            event = ChatMessageEvent.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "chat_event_malformed",
                user_id=user_id,
                errors=exc.error_count(),
            )
            return None

        return await self.route_message(user_id, event.match_id, event.content, channel)

    async def route_message(
        self,
        sender_id: int,
        match_id: int,
        content: str,
        channel: Any | None = None,
    ) -> MessageResponse | None:
        """Persist a message and forward it to the other participant."""
        log = logger.bind(sender_id=sender_id, match_id=match_id)

        try:
            async with self.session_factory() as db:
                storage = StorageService(db)
                message, match = await storage.create_message(match_id, sender_id, content)
                sender = await storage.require_user(sender_id)
                payload = serialize_message(message, sender)
                await db.commit()
        except CampusConnectError as exc:
            log.warning("chat_message_rejected", reason=exc.message)
            await self._notify_failure(channel, match_id, exc.message)
            return None
        except Exception:
            log.exception("chat_message_persist_failed")
            await self._notify_failure(channel, match_id, "Message could not be sent")
            return None

        peer_id = match.other_user_id(sender_id)
        delivered = await self.deliver(peer_id, payload)
        log.info(
            "chat_message_routed",
            message_id=payload.id,
            peer_id=peer_id,
            delivered=delivered,
        )
        return payload

    async def deliver(self, peer_id: int, payload: MessageResponse) -> bool:
        """Push ``new_message`` to ``peer_id`` if they have an open channel."""
        channel = self.connections.lookup(peer_id)
        if channel is None or not is_channel_open(channel):
            return False

        try:
            await channel.send_json(NewMessageEvent(message=payload).to_wire())
        except Exception:
            logger.exception("chat_delivery_failed", peer_id=peer_id)
            await self.connections.unregister(peer_id, channel)
            return False
        return True

    async def _notify_failure(self, channel: Any | None, match_id: int, reason: str) -> None:
        if channel is None or not is_channel_open(channel):
            return
        try:
            await channel.send_json(
                SendFailedEvent(match_id=match_id, message=reason).to_wire()
            )
        except Exception:
            logger.exception("send_failed_notification_failed", match_id=match_id)


class ChannelState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ChatConnection:
    """One WebSocket channel, from handshake to close."""

    def __init__(
        self,
        websocket: Any,
        sessions: SessionRegistry,
        connections: ConnectionRegistry,
        router: ChatRouter,
        policy_violation_code: int = 1008,
    ) -> None:
        self.websocket = websocket
        self.sessions = sessions
        self.connections = connections
        self.router = router
        self.policy_violation_code = policy_violation_code
        self.state = ChannelState.CONNECTING
        self.identity: SessionIdentity | None = None

    @property
    def user_id(self) -> int | None:
        return self.identity.user_id if self.identity else None

    async def open(self, token: str | None) -> bool:
        """Validate ``token``; accept and register, or close with 1008."""
        identity = self.sessions.resolve(token)
        if identity is None:
            logger.warning("channel_rejected", reason="unauthenticated")
            self.state = ChannelState.CLOSED
            await self.websocket.close(code=self.policy_violation_code, reason="Unauthorized")
            return False

        self.identity = identity
        await self.websocket.accept()
        await self.connections.register(identity.user_id, self.websocket)
        self.state = ChannelState.OPEN
        logger.info("channel_open", user_id=identity.user_id)
        return True

    async def serve(self) -> None:
        """Receive loop; returns once the channel is closed."""
        if self.state is not ChannelState.OPEN:
            return

        try:
            while True:
                frame = await self.websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    logger.info(
                        "channel_disconnected",
                        user_id=self.user_id,
                        code=frame.get("code"),
                    )
                    break

                raw = frame.get("text")
                if raw is None and frame.get("bytes") is not None:
                    raw = frame["bytes"].decode("utf-8", errors="replace")
                if raw is None:
                    continue

                await self.router.handle_text(self.user_id, self.websocket, raw)
        except Exception:
            logger.exception("channel_transport_error", user_id=self.user_id)
        finally:
            await self.close()

    async def close(self) -> None:
        if self.state is ChannelState.CLOSED:
            return
        self.state = ChannelState.CLOSED

        await self.connections.unregister(self.user_id, self.websocket)
        if is_channel_open(self.websocket):
            try:
                await self.websocket.close()
            except Exception:
                logger.exception("channel_close_failed", user_id=self.user_id)
        logger.info("channel_closed", user_id=self.user_id)
