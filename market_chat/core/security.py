"""Identity checks for HTTP requests and websocket handshakes.

Tokens are issued by the external identity provider; this service only
verifies them against the shared secret and resolves the ``sub`` claim to a
local user row.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.core.config import settings
from market_chat.core.deps import get_db
from market_chat.core.errors import UnauthenticatedError
from market_chat.models.user import User
from market_chat.services.user import get_user_by_id

bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict:
    """Decode and validate a JWT access token."""
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as exc:
        raise UnauthenticatedError("Invalid or expired token") from exc


async def authenticate_token(db: AsyncSession, token: str | None) -> User:
    """Resolve a bearer token to its user or raise UnauthenticatedError."""
    if not token:
        raise UnauthenticatedError("Authentication token required")

    payload = decode_access_token(token)
    user_id_str = payload.get("sub")
    if user_id_str is None:
        raise UnauthenticatedError("Token payload missing subject")

    try:
        user_id = int(user_id_str)
    except (ValueError, TypeError) as exc:
        raise UnauthenticatedError("Invalid token subject") from exc

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise UnauthenticatedError("User not found")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency: extract and return the current User from the Bearer token."""
    token = credentials.credentials if credentials is not None else None
    return await authenticate_token(db, token)
