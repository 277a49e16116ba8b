from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from market_chat.db.base import Base


class ChatRoom(Base):
    __tablename__ = "chat_rooms"

    listing_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("listings.id", ondelete="SET NULL"), nullable=True
    )
    buyer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    seller_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    last_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("listing_id", "buyer_id", name="uq_chat_rooms_listing_buyer"),
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    def other_participant(self, user_id: int) -> int:
        return self.seller_id if user_id == self.buyer_id else self.buyer_id
