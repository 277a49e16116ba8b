from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from market_chat.db.base import Base


class User(Base):
    """Marketplace profile. Owned by the profile service; read only here."""

    __tablename__ = "users"

    nickname: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    profile_image: Mapped[str | None] = mapped_column(String(512), nullable=True)
