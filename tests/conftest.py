from collections.abc import AsyncGenerator
from types import SimpleNamespace
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from market_chat.core.config import settings
from market_chat.core.deps import get_db, get_publisher
from market_chat.core.rate_limit import limiter
from market_chat.db.base import Base
from market_chat.main import app
from market_chat.models.listing import Listing, ListingImage
from market_chat.models.user import User

limiter.enabled = False


class RecordingPublisher:
    """EventPublisher that remembers every published frame."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, Any]] = []

    async def publish(self, channel: str, event: str, data: Any) -> None:
        self.events.append((channel, event, data))

    def on(self, channel: str) -> list[tuple[str, Any]]:
        return [(event, data) for c, event, data in self.events if c == channel]


def auth_headers(user_id: int) -> dict[str, str]:
    token = jwt.encode(
        {"sub": str(user_id)}, settings.jwt_secret, algorithm=settings.jwt_algorithm
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
async def market(db: AsyncSession) -> SimpleNamespace:
    """A seller with one listing, a buyer, and an unrelated user.

    Only ids are handed out; ORM instances expire whenever a service rolls
    back the shared session.
    """
    seller = User(nickname="seller", profile_image="https://img.example/seller.png")
    buyer = User(nickname="buyer")
    stranger = User(nickname="stranger")
    db.add_all([seller, buyer, stranger])
    await db.flush()

    listing = Listing(seller_id=seller.id, title="Desk lamp", price=50000, allow_offer=True)
    db.add(listing)
    await db.flush()
    db.add_all([
        ListingImage(listing_id=listing.id, image_url="https://img.example/lamp-1.jpg", display_order=0),
        ListingImage(listing_id=listing.id, image_url="https://img.example/lamp-2.jpg", display_order=1),
    ])
    await db.commit()

    return SimpleNamespace(
        seller_id=seller.id,
        buyer_id=buyer.id,
        stranger_id=stranger.id,
        listing_id=listing.id,
    )


@pytest.fixture
async def client(
    session_factory, publisher: RecordingPublisher
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the FastAPI app (no real server)."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_publisher] = lambda: publisher
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
