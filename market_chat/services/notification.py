"""Notification records for offer events.

Only enqueues rows; push/e-mail delivery belongs to the notification
service that consumes this table.
"""

import logging
from enum import StrEnum

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.core.errors import NotFoundError
from market_chat.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationType(StrEnum):
    PRICE = "PRICE"


def enqueue_notification(
    db: AsyncSession,
    *,
    user_id: int,
    type: NotificationType,
    title: str,
    body: str,
    link: str | None = None,
) -> Notification:
    """Stage a notification in the caller's transaction (no flush, no commit)."""
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        body=body,
        link=link,
        is_read=False,
    )
    db.add(notification)
    logger.info(
        "Notification enqueued",
        extra={"user_id": user_id, "notification_type": type.value, "link": link},
    )
    return notification


async def list_notifications(
    db: AsyncSession, user_id: int, limit: int = 50
) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_notification_read(
    db: AsyncSession, notification_id: int, user_id: int
) -> Notification:
    result = await db.execute(
        select(Notification).where(Notification.id == notification_id)
    )
    notification = result.scalar_one_or_none()
    # Someone else's notification is reported as missing
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification not found")

    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification


async def mark_all_notifications_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
