from enum import StrEnum

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from market_chat.db.base import Base


class ListingStatus(StrEnum):
    SALE = "SALE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"


class Listing(Base):
    """Item for sale. Owned by the listing service; read only here."""

    __tablename__ = "listings"

    seller_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_free: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ListingStatus.SALE.value, server_default="SALE"
    )
    allow_offer: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )


class ListingImage(Base):
    __tablename__ = "listing_images"

    listing_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    image_url: Mapped[str] = mapped_column(String(512), nullable=False)
    display_order: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
