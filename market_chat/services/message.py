"""Message pipeline: persist, summarize, fan out.

Plain text sends and the offer flow both write through ``persist_message``
and announce through ``publish_message``, so every chat-visible event
follows the same sequence.
"""

import logging
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.core.errors import ForbiddenError, InvalidInputError
from market_chat.db.base import utcnow
from market_chat.models.chat_room import ChatRoom
from market_chat.models.message import Message, MessageKind
from market_chat.realtime.channels import chat_channel, user_channel
from market_chat.realtime.frames import ChatUpdated, MessageResponse
from market_chat.realtime.publisher import EventPublisher

logger = logging.getLogger(__name__)


async def update_room_summary(
    db: AsyncSession, room_id: int, summary: str, at: datetime
) -> None:
    """Move the room's last-message summary forward, never backwards.

    A write carrying an older timestamp than the stored one (a slower
    concurrent request) leaves the summary alone.
    """
    await db.execute(
        update(ChatRoom)
        .where(
            ChatRoom.id == room_id,
            or_(ChatRoom.last_message_at.is_(None), ChatRoom.last_message_at <= at),
        )
        .values(last_message=summary, last_message_at=at)
        .execution_options(synchronize_session=False)
    )


async def persist_message(
    db: AsyncSession,
    room: ChatRoom,
    sender_id: int,
    content: str,
    kind: MessageKind = MessageKind.TEXT,
    *,
    summary: str | None = None,
) -> Message:
    """Stage a message and the room summary in the caller's transaction."""
    now = utcnow()
    message = Message(
        chat_room_id=room.id,
        sender_id=sender_id,
        content=content,
        kind=kind.value,
        is_read=False,
        created_at=now,
        updated_at=now,
    )
    db.add(message)
    await db.flush()
    await update_room_summary(db, room.id, summary if summary is not None else content, now)
    return message


async def publish_message(
    publisher: EventPublisher,
    room: ChatRoom,
    message: Message,
    summary: str,
    recipient_id: int,
) -> None:
    """Announce a committed message to the room and to the recipient's inbox."""
    await publisher.publish(
        chat_channel(room.id),
        "new_message",
        MessageResponse.model_validate(message).model_dump(mode="json", by_alias=True),
    )
    await publisher.publish(
        user_channel(recipient_id),
        "chat_updated",
        ChatUpdated(room_id=room.id, last_message=summary).model_dump(by_alias=True),
    )


async def send_message(
    db: AsyncSession,
    publisher: EventPublisher,
    room_id: int,
    sender_id: int,
    content: str,
    kind: MessageKind = MessageKind.TEXT,
) -> Message:
    result = await db.execute(select(ChatRoom).where(ChatRoom.id == room_id))
    room = result.scalar_one_or_none()
    if room is None or not room.has_participant(sender_id):
        raise ForbiddenError("You are not a participant in this chat")

    if kind == MessageKind.TEXT:
        content = content.strip()
        if not content:
            raise InvalidInputError("Message content must not be empty")

    message = await persist_message(db, room, sender_id, content, kind)
    await db.commit()

    logger.info(
        "Message sent",
        extra={"room_id": room.id, "message_id": message.id, "sender_id": sender_id},
    )
    await publish_message(
        publisher, room, message, content, room.other_participant(sender_id)
    )
    return message


async def mark_room_read(db: AsyncSession, room_id: int, reader_id: int) -> int:
    """Mark the counterpart's unread messages in the room as read.

    The reader's own messages are never touched. Returns the number of
    messages that changed; a repeat call returns 0.
    """
    result = await db.execute(
        update(Message)
        .where(
            Message.chat_room_id == room_id,
            Message.sender_id != reader_id,
            Message.is_read == False,  # noqa: E712
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
