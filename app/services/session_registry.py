"""
CampusConnect — Session Registry

Maps opaque bearer tokens to an authenticated identity.  Tokens are minted
fresh on every register/login, carried on every authenticated HTTP request
(``Authorization: Bearer <token>``) and on real-time channel establishment
(``/ws?sessionId=<token>``), and revoked on logout.  There is no expiry.

The registry is an ordinary object owned by the application lifespan so it
can be replaced by an external keyed store without touching its callers.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

import structlog

from app.exceptions import Unauthenticated

logger = structlog.get_logger("campusconnect.session_registry")


@dataclass(frozen=True)
class SessionIdentity:
    user_id: int
    email: str


class SessionRegistry:
    """In-process token -> identity map."""

    def __init__(self, token_bytes: int = 32) -> None:
        self._token_bytes = token_bytes
        self._sessions: dict[str, SessionIdentity] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create_session(self, user_id: int, email: str) -> str:
        token = secrets.token_urlsafe(self._token_bytes)
        self._sessions[token] = SessionIdentity(user_id=user_id, email=email)
        logger.info("session_created", user_id=user_id)
        return token

    def resolve(self, token: str | None) -> SessionIdentity | None:
        if not token:
            return None
        return self._sessions.get(token)

    def require(self, token: str | None) -> SessionIdentity:
        """Resolve ``token`` or raise ``Unauthenticated``."""
        identity = self.resolve(token)
        if identity is None:
            raise Unauthenticated()
        return identity

    def revoke(self, token: str | None) -> None:
        if not token:
            return
        identity = self._sessions.pop(token, None)
        if identity is not None:
            logger.info("session_revoked", user_id=identity.user_id)

    def clear(self) -> None:
        self._sessions.clear()
