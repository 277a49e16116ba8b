from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.api.schemas import (
    ChatRoomCreate,
    ChatRoomDetailResponse,
    ChatRoomListItem,
    ChatRoomResponse,
    ListingSummary,
    MessageCreate,
    MessageResponse,
    UserSummary,
)
from market_chat.core.config import settings
from market_chat.core.deps import get_db, get_publisher
from market_chat.core.rate_limit import limiter
from market_chat.core.security import get_current_user
from market_chat.models.user import User
from market_chat.realtime.publisher import EventPublisher
from market_chat.services import chat_room as chat_room_svc
from market_chat.services import message as message_svc

router = APIRouter(prefix="/chats", tags=["chats"])


@router.post("", response_model=ChatRoomResponse, status_code=status.HTTP_201_CREATED)
async def open_chat(
    body: ChatRoomCreate,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    room, created = await chat_room_svc.get_or_create_room(db, body.listing_id, user.id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return room


@router.get("", response_model=list[ChatRoomListItem])
async def list_chats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    entries = await chat_room_svc.list_rooms_for_user(db, user.id)
    return [
        ChatRoomListItem(
            **ChatRoomResponse.model_validate(entry["room"]).model_dump(),
            other_user=UserSummary.model_validate(entry["other_user"])
            if entry["other_user"]
            else None,
            thumbnail_url=entry["thumbnail_url"],
            unread_count=entry["unread_count"],
        )
        for entry in entries
    ]


@router.get("/{room_id}", response_model=ChatRoomDetailResponse)
async def get_chat(
    room_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    detail = await chat_room_svc.get_room_detail(db, room_id, user.id)
    other_user = detail["other_user"]
    listing = detail["listing"]
    return ChatRoomDetailResponse(
        room=ChatRoomResponse.model_validate(detail["room"]),
        other_user=UserSummary.model_validate(other_user) if other_user else None,
        listing=ListingSummary.model_validate(listing) if listing else None,
        messages=[MessageResponse.model_validate(m) for m in detail["messages"]],
    )


@router.post(
    "/{room_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.rate_limit_messages)
async def post_message(
    request: Request,
    room_id: int,
    body: MessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    return await message_svc.send_message(db, publisher, room_id, user.id, body.content)
