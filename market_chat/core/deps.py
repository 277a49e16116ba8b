from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.db.session import async_session_factory
from market_chat.realtime.publisher import EventPublisher


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session.

    The session is automatically closed when the request finishes.
    """
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_publisher(request: Request) -> EventPublisher:
    """Return the process-wide publisher built in the application lifespan."""
    return request.app.state.publisher
