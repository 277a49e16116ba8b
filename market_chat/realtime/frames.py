"""Payloads carried over the realtime channel.

Services build outbound frames from these; the gateway validates inbound
ones. The REST layer reuses ``MessageResponse`` for its message endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from market_chat.core.schemas import CamelModel


class MessageResponse(CamelModel):
    id: int
    chat_room_id: int
    sender_id: int
    content: str
    kind: str
    is_read: bool
    created_at: datetime


class ChatUpdated(CamelModel):
    room_id: int
    last_message: str


class SocketFrame(BaseModel):
    event: str = Field(..., min_length=1)
    data: Any = None


class SocketMessageIn(CamelModel):
    room_id: int
    content: str = Field(..., max_length=2000)
