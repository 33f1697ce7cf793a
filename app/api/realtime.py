"""
CampusConnect — Real-time chat endpoint

``GET /ws?sessionId=<token>`` upgrades to a WebSocket.  An unknown or missing
token closes the handshake with code 1008; otherwise the channel is
registered for the user and served until it closes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, WebSocket

from app.config import get_settings
from app.services.chat_router import ChatConnection

router = APIRouter()


@router.websocket(get_settings().WS_PATH)
async def chat_channel(
    websocket: WebSocket,
    session_id: Optional[str] = Query(None, alias="sessionId"),
) -> None:
    state = websocket.app.state
    connection = ChatConnection(
        websocket,
        sessions=state.sessions,
        connections=state.connections,
        router=state.chat_router,
        policy_violation_code=get_settings().WS_POLICY_VIOLATION_CODE,
    )
    if await connection.open(session_id):
        await connection.serve()
