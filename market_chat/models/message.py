from enum import StrEnum

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from market_chat.db.base import Base


class MessageKind(StrEnum):
    TEXT = "TEXT"
    PRICE_OFFER = "PRICE_OFFER"
    PRICE_RESULT = "PRICE_RESULT"


class Message(Base):
    __tablename__ = "messages"

    chat_room_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    # Plain text for TEXT; a JSON document for the offer kinds
    content: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(
        String(20), default=MessageKind.TEXT.value, server_default="TEXT"
    )
    is_read: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )

    __table_args__ = (
        Index("ix_messages_room_created", "chat_room_id", "created_at"),
    )
