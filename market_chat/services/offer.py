"""Price offers: creation by the buyer and a single answer by the seller.

Each state change is one transaction covering the offer row, the chat
message, the room summary and the notification. Realtime events go out only
after that transaction commits.
"""

import json
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.core.config import settings
from market_chat.core.errors import (
    DuplicateOfferError,
    ForbiddenError,
    InvalidInputError,
    InvalidOperationError,
    NotFoundError,
    OfferNotPendingError,
)
from market_chat.db.base import utcnow
from market_chat.models.listing import ListingStatus
from market_chat.models.message import MessageKind
from market_chat.models.price_offer import PriceOffer
from market_chat.realtime.publisher import EventPublisher
from market_chat.services.chat_room import get_listing, get_or_create_room, get_room
from market_chat.services.message import persist_message, publish_message
from market_chat.services.notification import NotificationType, enqueue_notification
from market_chat.services.offer_state_machine import (
    InvalidOfferTransitionError,
    OfferDecision,
    OfferStatus,
    validate_transition,
)
from market_chat.services.user import display_name, get_user_by_id

logger = logging.getLogger(__name__)

_RESULT_SUMMARIES = {
    OfferStatus.ACCEPTED: "Price offer accepted",
    OfferStatus.REJECTED: "Price offer rejected",
}

_RESULT_NOTIFICATIONS = {
    OfferStatus.ACCEPTED: ("Offer accepted", "{name} accepted your offer of {price}!"),
    OfferStatus.REJECTED: ("Offer declined", "{name} declined your offer of {price}."),
}


def format_price(amount: int) -> str:
    """Render an amount with thousands separators, e.g. ``40,000 KRW``."""
    return f"{amount:,} {settings.currency_label}"


def offer_message_content(offer_price: int, offer_id: int | None = None) -> str:
    payload: dict = {"offerPrice": offer_price}
    if offer_id is not None:
        payload["offerId"] = offer_id
    payload["type"] = MessageKind.PRICE_OFFER.value
    return json.dumps(payload)


def result_message_content(offer: PriceOffer, status: OfferStatus) -> str:
    return json.dumps({
        "offerId": offer.id,
        "offerPrice": offer.offer_price,
        "status": status.value,
        "type": MessageKind.PRICE_RESULT.value,
    })


async def get_offer(db: AsyncSession, offer_id: int) -> PriceOffer:
    result = await db.execute(select(PriceOffer).where(PriceOffer.id == offer_id))
    offer = result.scalar_one_or_none()
    if offer is None:
        raise NotFoundError("Offer not found")
    return offer


async def create_offer(
    db: AsyncSession,
    publisher: EventPublisher,
    listing_id: int,
    buyer_id: int,
    offer_price: int,
) -> tuple[PriceOffer, int]:
    """Create a PENDING offer and post it into the buyer/seller chat.

    Returns the offer and the id of the chat room it was posted in.
    """
    if offer_price <= 0:
        raise InvalidInputError("Offer price must be a positive amount")

    listing = await get_listing(db, listing_id)
    seller_id = listing.seller_id
    if seller_id == buyer_id:
        raise InvalidOperationError("You cannot make an offer on your own listing")
    if listing.status != ListingStatus.SALE:
        raise InvalidOperationError("Offers can only be made on listings that are for sale")
    if not listing.allow_offer:
        raise InvalidOperationError("This listing does not accept price offers")

    room, _ = await get_or_create_room(db, listing_id, buyer_id)
    buyer = await get_user_by_id(db, buyer_id)

    price_text = format_price(offer_price)
    summary = f"Price offer: {price_text}"

    # Message first so the offer can reference it; the offer id is back-filled below
    message = await persist_message(
        db,
        room,
        buyer_id,
        offer_message_content(offer_price),
        MessageKind.PRICE_OFFER,
        summary=summary,
    )
    offer = PriceOffer(
        listing_id=listing_id,
        buyer_id=buyer_id,
        seller_id=seller_id,
        chat_room_id=room.id,
        offer_message_id=message.id,
        offer_price=offer_price,
        status=OfferStatus.PENDING.value,
    )
    db.add(offer)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateOfferError("You already have a pending offer on this listing") from exc

    message.content = offer_message_content(offer_price, offer.id)
    enqueue_notification(
        db,
        user_id=seller_id,
        type=NotificationType.PRICE,
        title="Price offer",
        body=f"{display_name(buyer, 'A buyer')} offered {price_text}.",
        link=f"/chats/{room.id}",
    )
    await db.commit()

    logger.info(
        "Price offer created",
        extra={
            "offer_id": offer.id,
            "listing_id": listing_id,
            "buyer_id": buyer_id,
            "room_id": room.id,
        },
    )
    await publish_message(publisher, room, message, summary, seller_id)
    return offer, room.id


async def respond_to_offer(
    db: AsyncSession,
    publisher: EventPublisher,
    offer_id: int,
    acting_user_id: int,
    decision: OfferDecision,
) -> PriceOffer:
    """Accept or reject a PENDING offer on behalf of its seller."""
    offer = await get_offer(db, offer_id)
    if offer.seller_id != acting_user_id:
        raise ForbiddenError("Only the seller can respond to this offer")

    try:
        new_status = validate_transition(offer.status, decision)
    except InvalidOfferTransitionError as exc:
        raise OfferNotPendingError("This offer has already been answered") from exc

    room = await get_room(db, offer.chat_room_id)
    if room is None:
        raise NotFoundError("Chat room not found")

    now = utcnow()
    # Conditional on PENDING so only one of two racing answers wins
    result = await db.execute(
        update(PriceOffer)
        .where(PriceOffer.id == offer.id, PriceOffer.status == OfferStatus.PENDING.value)
        .values(status=new_status.value, responded_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise OfferNotPendingError("This offer has already been answered")

    summary = _RESULT_SUMMARIES[new_status]
    message = await persist_message(
        db,
        room,
        acting_user_id,
        result_message_content(offer, new_status),
        MessageKind.PRICE_RESULT,
        summary=summary,
    )
    offer.status = new_status.value
    offer.responded_at = now
    offer.result_message_id = message.id

    seller = await get_user_by_id(db, acting_user_id)
    title, body = _RESULT_NOTIFICATIONS[new_status]
    enqueue_notification(
        db,
        user_id=offer.buyer_id,
        type=NotificationType.PRICE,
        title=title,
        body=body.format(
            name=display_name(seller, "The seller"),
            price=format_price(offer.offer_price),
        ),
        link=f"/chats/{offer.chat_room_id}",
    )
    await db.commit()

    logger.info(
        "Price offer answered",
        extra={"offer_id": offer.id, "status": new_status.value, "seller_id": acting_user_id},
    )
    await publish_message(publisher, room, message, summary, offer.buyer_id)
    return offer
