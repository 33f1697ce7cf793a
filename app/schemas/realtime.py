from pydantic import Field, StrictInt, StrictStr
from typing import Literal

from app.schemas.base import CamelModel
from app.schemas.match import MessageResponse

class ChatMessageEvent(CamelModel):
    """Inbound: ``{"type": "chat_message", "matchId": 1, "content": "hi"}``."""

    type: Literal["chat_message"]
    match_id: StrictInt
    content: StrictStr = Field(min_length=1)

class NewMessageEvent(CamelModel):
    type: Literal["new_message"] = "new_message"
    message: MessageResponse

class SendFailedEvent(CamelModel):
    type: Literal["send_failed"] = "send_failed"
    match_id: int
    message: str
