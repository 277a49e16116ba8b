"""Tests for notification listing and read state."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import auth_headers
from market_chat.core.errors import NotFoundError
from market_chat.models.notification import Notification
from market_chat.services.notification import (
    NotificationType,
    enqueue_notification,
    mark_notification_read,
)


def _mock_db(scalar_result=None):
    db = AsyncMock()
    db.add = MagicMock()
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = scalar_result
    db.execute = AsyncMock(return_value=mock_result)
    return db


async def _seed(db, user_id: int, count: int) -> list[int]:
    rows = [
        Notification(user_id=user_id, type="PRICE", title=f"Price offer {i}", body="body")
        for i in range(count)
    ]
    db.add_all(rows)
    await db.commit()
    return [row.id for row in rows]


class TestEnqueueNotification:
    def test_stages_without_commit(self):
        db = _mock_db()

        notification = enqueue_notification(
            db,
            user_id=7,
            type=NotificationType.PRICE,
            title="Price offer",
            body="buyer offered 40,000 KRW.",
            link="/chats/3",
        )

        db.add.assert_called_once_with(notification)
        db.commit.assert_not_called()
        assert notification.user_id == 7
        assert notification.type == "PRICE"
        assert notification.is_read is False


class TestMarkNotificationRead:
    @pytest.mark.asyncio
    async def test_other_users_notification_is_not_found(self):
        notification = Notification(user_id=2, type="PRICE")
        db = _mock_db(scalar_result=notification)

        with pytest.raises(NotFoundError):
            await mark_notification_read(db, 1, user_id=1)
        db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing(self):
        db = _mock_db(scalar_result=None)
        with pytest.raises(NotFoundError):
            await mark_notification_read(db, 1, user_id=1)


class TestNotificationsApi:
    @pytest.mark.asyncio
    async def test_list_newest_first(self, client, db, market):
        ids = await _seed(db, market.buyer_id, 3)
        await _seed(db, market.seller_id, 1)

        resp = await client.get("/api/notifications", headers=auth_headers(market.buyer_id))

        assert resp.status_code == 200
        body = resp.json()
        assert [n["id"] for n in body] == sorted(ids, reverse=True)
        assert all(n["userId"] == market.buyer_id for n in body)
        assert body[0]["isRead"] is False

    @pytest.mark.asyncio
    async def test_read_one(self, client, db, market):
        [notification_id] = await _seed(db, market.buyer_id, 1)

        resp = await client.patch(
            f"/api/notifications/{notification_id}/read",
            headers=auth_headers(market.buyer_id),
        )

        assert resp.status_code == 200
        assert resp.json()["isRead"] is True

    @pytest.mark.asyncio
    async def test_read_someone_elses(self, client, db, market):
        [notification_id] = await _seed(db, market.buyer_id, 1)

        resp = await client.patch(
            f"/api/notifications/{notification_id}/read",
            headers=auth_headers(market.stranger_id),
        )

        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_read_all(self, client, db, market):
        await _seed(db, market.buyer_id, 2)
        await _seed(db, market.seller_id, 1)

        first = await client.patch(
            "/api/notifications/read-all", headers=auth_headers(market.buyer_id)
        )
        second = await client.patch(
            "/api/notifications/read-all", headers=auth_headers(market.buyer_id)
        )

        assert first.json() == {"updated": 2}
        assert second.json() == {"updated": 0}

        seller_view = await client.get("/api/notifications", headers=auth_headers(market.seller_id))
        assert seller_view.json()[0]["isRead"] is False
