from datetime import datetime

from pydantic import Field

from market_chat.core.schemas import CamelModel
from market_chat.realtime.frames import MessageResponse


# ---------------------------------------------------------------------------
# Shared summaries
# ---------------------------------------------------------------------------


class UserSummary(CamelModel):
    id: int
    nickname: str
    profile_image: str | None = None


class ListingSummary(CamelModel):
    id: int
    title: str
    price: int | None = None
    is_free: bool = False
    status: str
    thumbnail_url: str | None = None


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatRoomCreate(CamelModel):
    listing_id: int


class ChatRoomResponse(CamelModel):
    id: int
    listing_id: int | None
    buyer_id: int
    seller_id: int
    last_message: str | None = None
    last_message_at: datetime | None = None
    created_at: datetime


class ChatRoomListItem(ChatRoomResponse):
    other_user: UserSummary | None = None
    thumbnail_url: str | None = None
    unread_count: int = 0


class MessageCreate(CamelModel):
    content: str = Field(..., max_length=2000)


class ChatRoomDetailResponse(CamelModel):
    room: ChatRoomResponse
    other_user: UserSummary | None = None
    listing: ListingSummary | None = None
    messages: list[MessageResponse]


# ---------------------------------------------------------------------------
# Price offers
# ---------------------------------------------------------------------------


class OfferCreate(CamelModel):
    listing_id: int
    offer_price: int = Field(..., gt=0)


class PriceOfferResponse(CamelModel):
    id: int
    listing_id: int
    buyer_id: int
    seller_id: int
    chat_room_id: int
    offer_message_id: int
    result_message_id: int | None = None
    offer_price: int
    status: str
    responded_at: datetime | None = None
    created_at: datetime


class OfferCreateResponse(CamelModel):
    offer: PriceOfferResponse
    chat_room_id: int


class OfferEnvelope(CamelModel):
    offer: PriceOfferResponse


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationResponse(CamelModel):
    id: int
    user_id: int
    type: str
    title: str | None = None
    body: str | None = None
    link: str | None = None
    is_read: bool
    created_at: datetime


class ReadAllResponse(CamelModel):
    updated: int
