"""Chat room resolution and read models.

A room is keyed by (listing, buyer); the seller is copied from the listing
when the room is created. The unique constraint on that pair is the only
guard against two requests creating the same room.
"""

import logging

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.core.errors import ForbiddenError, InvalidOperationError, NotFoundError
from market_chat.models.chat_room import ChatRoom
from market_chat.models.listing import Listing, ListingImage
from market_chat.models.message import Message
from market_chat.services.message import mark_room_read
from market_chat.services.user import get_user_by_id, get_users_by_ids

logger = logging.getLogger(__name__)


async def get_listing(db: AsyncSession, listing_id: int) -> Listing:
    result = await db.execute(select(Listing).where(Listing.id == listing_id))
    listing = result.scalar_one_or_none()
    if listing is None:
        raise NotFoundError("Listing not found")
    return listing


async def _find_room(db: AsyncSession, listing_id: int, buyer_id: int) -> ChatRoom | None:
    result = await db.execute(
        select(ChatRoom).where(
            ChatRoom.listing_id == listing_id, ChatRoom.buyer_id == buyer_id
        )
    )
    return result.scalar_one_or_none()


async def get_or_create_room(
    db: AsyncSession, listing_id: int, buyer_id: int
) -> tuple[ChatRoom, bool]:
    """Return the room for (listing, buyer) and whether it was just created.

    Rejects a seller trying to open a room on their own listing; every entry
    point that creates rooms goes through here.
    """
    listing = await get_listing(db, listing_id)
    seller_id = listing.seller_id
    if seller_id == buyer_id:
        raise InvalidOperationError("You cannot start a chat on your own listing")

    room = await _find_room(db, listing_id, buyer_id)
    if room is not None:
        return room, False

    room = ChatRoom(listing_id=listing_id, buyer_id=buyer_id, seller_id=seller_id)
    db.add(room)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request inserted the same pair first
        await db.rollback()
        room = await _find_room(db, listing_id, buyer_id)
        if room is None:
            raise
        logger.info(
            "Chat room creation raced, reusing existing room",
            extra={"room_id": room.id, "listing_id": listing_id, "buyer_id": buyer_id},
        )
        return room, False

    await db.refresh(room)
    logger.info(
        "Chat room created",
        extra={"room_id": room.id, "listing_id": listing_id, "buyer_id": buyer_id},
    )
    return room, True


async def get_room(db: AsyncSession, room_id: int) -> ChatRoom | None:
    result = await db.execute(select(ChatRoom).where(ChatRoom.id == room_id))
    return result.scalar_one_or_none()


async def get_room_for_participant(
    db: AsyncSession, room_id: int, user_id: int
) -> ChatRoom:
    room = await get_room(db, room_id)
    if room is None:
        raise NotFoundError("Chat room not found")
    if not room.has_participant(user_id):
        raise ForbiddenError("You are not a participant in this chat")
    return room


async def _thumbnails(db: AsyncSession, listing_ids: set[int]) -> dict[int, str]:
    if not listing_ids:
        return {}
    result = await db.execute(
        select(ListingImage.listing_id, ListingImage.image_url).where(
            ListingImage.listing_id.in_(listing_ids),
            ListingImage.display_order == 0,
        )
    )
    return {listing_id: url for listing_id, url in result.all()}


async def list_rooms_for_user(db: AsyncSession, user_id: int) -> list[dict]:
    """Rooms the user takes part in, most recently active first.

    Each entry carries the counterpart profile, the listing thumbnail and the
    number of the counterpart's messages the user has not read yet.
    """
    result = await db.execute(
        select(ChatRoom)
        .where(or_(ChatRoom.buyer_id == user_id, ChatRoom.seller_id == user_id))
        .order_by(
            func.coalesce(ChatRoom.last_message_at, ChatRoom.created_at).desc(),
            ChatRoom.id.desc(),
        )
    )
    rooms = list(result.scalars().all())
    if not rooms:
        return []

    room_ids = [room.id for room in rooms]
    users = await get_users_by_ids(db, {room.other_participant(user_id) for room in rooms})
    thumbnails = await _thumbnails(
        db, {room.listing_id for room in rooms if room.listing_id is not None}
    )

    unread_result = await db.execute(
        select(Message.chat_room_id, func.count(Message.id))
        .where(
            and_(
                Message.chat_room_id.in_(room_ids),
                Message.sender_id != user_id,
                Message.is_read == False,  # noqa: E712
            )
        )
        .group_by(Message.chat_room_id)
    )
    unread = {room_id: count for room_id, count in unread_result.all()}

    return [
        {
            "room": room,
            "other_user": users.get(room.other_participant(user_id)),
            "thumbnail_url": thumbnails.get(room.listing_id),
            "unread_count": unread.get(room.id, 0),
        }
        for room in rooms
    ]


async def get_room_detail(db: AsyncSession, room_id: int, user_id: int) -> dict:
    """Room, counterpart, listing summary and full history.

    Opening the room marks the counterpart's messages as read. The returned
    messages keep the read flags they had before this call.
    """
    room = await get_room_for_participant(db, room_id, user_id)
    other_user = await get_user_by_id(db, room.other_participant(user_id))

    listing_info = None
    if room.listing_id is not None:
        result = await db.execute(select(Listing).where(Listing.id == room.listing_id))
        listing = result.scalar_one_or_none()
        if listing is not None:
            thumbnails = await _thumbnails(db, {listing.id})
            listing_info = {
                "id": listing.id,
                "title": listing.title,
                "price": listing.price,
                "is_free": listing.is_free,
                "status": listing.status,
                "thumbnail_url": thumbnails.get(listing.id),
            }

    messages_result = await db.execute(
        select(Message)
        .where(Message.chat_room_id == room.id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    messages = list(messages_result.scalars().all())

    await mark_room_read(db, room.id, user_id)

    return {
        "room": room,
        "other_user": other_user,
        "listing": listing_info,
        "messages": messages,
    }
