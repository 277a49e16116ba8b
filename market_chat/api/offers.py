from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.api.schemas import (
    OfferCreate,
    OfferCreateResponse,
    OfferEnvelope,
    PriceOfferResponse,
)
from market_chat.core.config import settings
from market_chat.core.deps import get_db, get_publisher
from market_chat.core.rate_limit import limiter
from market_chat.core.security import get_current_user
from market_chat.models.user import User
from market_chat.realtime.publisher import EventPublisher
from market_chat.services import offer as offer_svc
from market_chat.services.offer_state_machine import OfferDecision

router = APIRouter(prefix="/offers", tags=["offers"])


@router.post("", response_model=OfferCreateResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_offers)
async def create_offer(
    request: Request,
    body: OfferCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    offer, room_id = await offer_svc.create_offer(
        db, publisher, body.listing_id, user.id, body.offer_price
    )
    return OfferCreateResponse(
        offer=PriceOfferResponse.model_validate(offer), chat_room_id=room_id
    )


@router.patch("/{offer_id}/accept", response_model=OfferEnvelope)
async def accept_offer(
    offer_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    offer = await offer_svc.respond_to_offer(
        db, publisher, offer_id, user.id, OfferDecision.ACCEPT
    )
    return OfferEnvelope(offer=PriceOfferResponse.model_validate(offer))


@router.patch("/{offer_id}/reject", response_model=OfferEnvelope)
async def reject_offer(
    offer_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    offer = await offer_svc.respond_to_offer(
        db, publisher, offer_id, user.id, OfferDecision.REJECT
    )
    return OfferEnvelope(offer=PriceOfferResponse.model_validate(offer))
