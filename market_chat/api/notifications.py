from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.api.schemas import NotificationResponse, ReadAllResponse
from market_chat.core.config import settings
from market_chat.core.deps import get_db
from market_chat.core.security import get_current_user
from market_chat.models.user import User
from market_chat.services import notification as notification_svc

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await notification_svc.list_notifications(
        db, user.id, limit=settings.notifications_page_size
    )


@router.patch("/read-all", response_model=ReadAllResponse)
async def read_all_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_svc.mark_all_notifications_read(db, user.id)
    return ReadAllResponse(updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def read_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await notification_svc.mark_notification_read(db, notification_id, user.id)
