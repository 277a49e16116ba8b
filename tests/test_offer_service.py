"""Tests for price offers: creation, duplicate guard and the seller's answer."""

import json

import pytest
from sqlalchemy import func, select

from market_chat.core.errors import (
    DuplicateOfferError,
    ForbiddenError,
    InvalidInputError,
    InvalidOperationError,
    NotFoundError,
    OfferNotPendingError,
)
from market_chat.models.chat_room import ChatRoom
from market_chat.models.listing import Listing
from market_chat.models.message import Message
from market_chat.models.notification import Notification
from market_chat.models.price_offer import PriceOffer
from market_chat.services.offer import (
    create_offer,
    format_price,
    respond_to_offer,
)
from market_chat.services.offer_state_machine import OfferDecision


async def _count(db, model) -> int:
    return await db.scalar(select(func.count(model.id)))


async def _room_summary(db, room_id: int) -> str | None:
    return await db.scalar(select(ChatRoom.last_message).where(ChatRoom.id == room_id))


async def _notifications(db, user_id: int) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


class TestFormatPrice:
    def test_thousands_separator(self):
        assert format_price(40000) == "40,000 KRW"

    def test_small_amount(self):
        assert format_price(900) == "900 KRW"


class TestCreateOffer:
    @pytest.mark.asyncio
    async def test_creates_offer_message_and_notification(self, db, market, publisher):
        offer, room_id = await create_offer(
            db, publisher, market.listing_id, market.buyer_id, 40000
        )

        assert offer.status == "PENDING"
        assert offer.offer_price == 40000
        assert offer.buyer_id == market.buyer_id
        assert offer.seller_id == market.seller_id
        assert offer.chat_room_id == room_id

        message = await db.scalar(select(Message).where(Message.id == offer.offer_message_id))
        assert message.kind == "PRICE_OFFER"
        assert message.sender_id == market.buyer_id
        assert json.loads(message.content) == {
            "offerPrice": 40000,
            "offerId": offer.id,
            "type": "PRICE_OFFER",
        }
        assert await _room_summary(db, room_id) == "Price offer: 40,000 KRW"

        [notification] = await _notifications(db, market.seller_id)
        assert notification.type == "PRICE"
        assert notification.title == "Price offer"
        assert notification.body == "buyer offered 40,000 KRW."
        assert notification.link == f"/chats/{room_id}"
        assert notification.is_read is False

    @pytest.mark.asyncio
    async def test_reuses_existing_room(self, db, market, publisher):
        _, first_room = await create_offer(db, publisher, market.listing_id, market.buyer_id, 40000)
        first = await db.scalar(select(PriceOffer))
        await respond_to_offer(db, publisher, first.id, market.seller_id, OfferDecision.REJECT)

        _, second_room = await create_offer(db, publisher, market.listing_id, market.buyer_id, 45000)

        assert second_room == first_room
        assert await _count(db, ChatRoom) == 1

    @pytest.mark.asyncio
    async def test_publishes_after_commit(self, db, market, publisher):
        offer, room_id = await create_offer(
            db, publisher, market.listing_id, market.buyer_id, 40000
        )

        [(event, data)] = publisher.on(f"chat:{room_id}")
        assert event == "new_message"
        assert data["id"] == offer.offer_message_id
        assert data["kind"] == "PRICE_OFFER"
        assert json.loads(data["content"])["offerId"] == offer.id

        assert publisher.on(f"user:{market.seller_id}") == [
            ("chat_updated", {"roomId": room_id, "lastMessage": "Price offer: 40,000 KRW"})
        ]

    @pytest.mark.asyncio
    async def test_second_pending_offer_conflicts(self, db, market, publisher):
        await create_offer(db, publisher, market.listing_id, market.buyer_id, 40000)
        publisher.events.clear()

        with pytest.raises(DuplicateOfferError) as exc_info:
            await create_offer(db, publisher, market.listing_id, market.buyer_id, 35000)

        assert exc_info.value.status_code == 409
        assert await _count(db, PriceOffer) == 1
        assert await _count(db, Message) == 1
        assert len(await _notifications(db, market.seller_id)) == 1
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_other_buyer_may_offer_concurrently(self, db, market, publisher):
        await create_offer(db, publisher, market.listing_id, market.buyer_id, 40000)
        await create_offer(db, publisher, market.listing_id, market.stranger_id, 42000)

        assert await _count(db, PriceOffer) == 2
        assert await _count(db, ChatRoom) == 2

    @pytest.mark.asyncio
    async def test_seller_cannot_offer_on_own_listing(self, db, market, publisher):
        with pytest.raises(InvalidOperationError):
            await create_offer(db, publisher, market.listing_id, market.seller_id, 40000)

        assert await _count(db, PriceOffer) == 0
        assert await _count(db, ChatRoom) == 0
        assert await _count(db, Message) == 0

    @pytest.mark.asyncio
    async def test_listing_not_for_sale(self, db, market, publisher):
        listing = await db.get(Listing, market.listing_id)
        listing.status = "RESERVED"
        await db.commit()

        with pytest.raises(InvalidOperationError):
            await create_offer(db, publisher, market.listing_id, market.buyer_id, 40000)
        assert await _count(db, PriceOffer) == 0

    @pytest.mark.asyncio
    async def test_listing_without_offers(self, db, market, publisher):
        listing = await db.get(Listing, market.listing_id)
        listing.allow_offer = False
        await db.commit()

        with pytest.raises(InvalidOperationError):
            await create_offer(db, publisher, market.listing_id, market.buyer_id, 40000)
        assert await _count(db, ChatRoom) == 0

    @pytest.mark.asyncio
    async def test_unknown_listing(self, db, market, publisher):
        with pytest.raises(NotFoundError):
            await create_offer(db, publisher, 9999, market.buyer_id, 40000)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", [0, -100])
    async def test_price_must_be_positive(self, db, market, publisher, price):
        with pytest.raises(InvalidInputError):
            await create_offer(db, publisher, market.listing_id, market.buyer_id, price)


class TestRespondToOffer:
    @pytest.mark.asyncio
    async def test_accept(self, db, market, publisher):
        offer, room_id = await create_offer(
            db, publisher, market.listing_id, market.buyer_id, 40000
        )
        publisher.events.clear()

        answered = await respond_to_offer(
            db, publisher, offer.id, market.seller_id, OfferDecision.ACCEPT
        )

        assert answered.status == "ACCEPTED"
        assert answered.responded_at is not None
        assert answered.result_message_id is not None

        result_message = await db.scalar(
            select(Message).where(Message.id == answered.result_message_id)
        )
        assert result_message.kind == "PRICE_RESULT"
        assert result_message.sender_id == market.seller_id
        assert json.loads(result_message.content) == {
            "offerId": offer.id,
            "offerPrice": 40000,
            "status": "ACCEPTED",
            "type": "PRICE_RESULT",
        }
        assert await _room_summary(db, room_id) == "Price offer accepted"

        [notification] = await _notifications(db, market.buyer_id)
        assert notification.title == "Offer accepted"
        assert notification.body == "seller accepted your offer of 40,000 KRW!"
        assert notification.link == f"/chats/{room_id}"

        [(event, data)] = publisher.on(f"chat:{room_id}")
        assert event == "new_message"
        assert data["kind"] == "PRICE_RESULT"
        assert publisher.on(f"user:{market.buyer_id}") == [
            ("chat_updated", {"roomId": room_id, "lastMessage": "Price offer accepted"})
        ]

    @pytest.mark.asyncio
    async def test_reject(self, db, market, publisher):
        offer, room_id = await create_offer(
            db, publisher, market.listing_id, market.buyer_id, 40000
        )

        answered = await respond_to_offer(
            db, publisher, offer.id, market.seller_id, OfferDecision.REJECT
        )

        assert answered.status == "REJECTED"
        assert await _room_summary(db, room_id) == "Price offer rejected"
        [notification] = await _notifications(db, market.buyer_id)
        assert notification.title == "Offer declined"
        assert notification.body == "seller declined your offer of 40,000 KRW."

    @pytest.mark.asyncio
    async def test_new_offer_allowed_after_answer(self, db, market, publisher):
        offer, _ = await create_offer(db, publisher, market.listing_id, market.buyer_id, 40000)
        await respond_to_offer(db, publisher, offer.id, market.seller_id, OfferDecision.REJECT)

        second, _ = await create_offer(db, publisher, market.listing_id, market.buyer_id, 45000)

        assert second.status == "PENDING"
        assert await _count(db, PriceOffer) == 2

    @pytest.mark.asyncio
    async def test_only_seller_may_answer(self, db, market, publisher):
        offer, _ = await create_offer(db, publisher, market.listing_id, market.buyer_id, 40000)
        offer_id = offer.id
        publisher.events.clear()

        for user_id in (market.buyer_id, market.stranger_id):
            with pytest.raises(ForbiddenError):
                await respond_to_offer(db, publisher, offer_id, user_id, OfferDecision.ACCEPT)

        status = await db.scalar(select(PriceOffer.status).where(PriceOffer.id == offer_id))
        assert status == "PENDING"
        assert await _count(db, Message) == 1
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_second_answer_rejected_without_side_effects(self, db, market, publisher):
        offer, room_id = await create_offer(
            db, publisher, market.listing_id, market.buyer_id, 40000
        )
        await respond_to_offer(db, publisher, offer.id, market.seller_id, OfferDecision.ACCEPT)
        publisher.events.clear()

        with pytest.raises(OfferNotPendingError) as exc_info:
            await respond_to_offer(db, publisher, offer.id, market.seller_id, OfferDecision.REJECT)

        assert exc_info.value.status_code == 400
        status = await db.scalar(select(PriceOffer.status).where(PriceOffer.id == offer.id))
        assert status == "ACCEPTED"
        assert await _count(db, Message) == 2
        assert len(await _notifications(db, market.buyer_id)) == 1
        assert await _room_summary(db, room_id) == "Price offer accepted"
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_lost_race_is_not_pending(self, db, market, publisher, session_factory):
        """An answer committed by another request after the status check wins."""
        offer, _ = await create_offer(db, publisher, market.listing_id, market.buyer_id, 40000)
        offer_id = offer.id

        async with session_factory() as other:
            winner = await other.get(PriceOffer, offer_id)
            winner.status = "REJECTED"
            await other.commit()

        # ``offer`` in this session still reads PENDING
        with pytest.raises(OfferNotPendingError):
            await respond_to_offer(db, publisher, offer_id, market.seller_id, OfferDecision.ACCEPT)

        assert await _count(db, Message) == 1

    @pytest.mark.asyncio
    async def test_unknown_offer(self, db, market, publisher):
        with pytest.raises(NotFoundError):
            await respond_to_offer(db, publisher, 777, market.seller_id, OfferDecision.ACCEPT)
