"""Websocket gateway for chat.

Authenticates the handshake, subscribes the socket to its owner's personal
channel, and dispatches inbound frames. Failures while handling a frame are
logged and dropped; the client gets no error frame.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from market_chat.core.errors import AppError, InvalidInputError, UnauthenticatedError
from market_chat.core.security import authenticate_token
from market_chat.realtime.channels import chat_channel, user_channel
from market_chat.realtime.frames import SocketFrame, SocketMessageIn
from market_chat.realtime.publisher import ConnectionManager, EventPublisher
from market_chat.services import chat_room as chat_room_svc
from market_chat.services import message as message_svc

logger = logging.getLogger(__name__)

# Application-defined close code for a rejected handshake
WS_UNAUTHORIZED = 4401

Handler = Callable[[WebSocket, int, Any], Awaitable[None]]


def _bearer_token(websocket: WebSocket) -> str | None:
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


async def _receive_text(websocket: WebSocket) -> str | None:
    """Next text frame, or None for a binary frame."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    return message.get("text")


def _room_id(data: Any) -> int:
    """Accept ``5``, ``"5"`` or ``{"roomId": 5}``."""
    if isinstance(data, dict):
        data = data.get("roomId", data.get("room_id"))
    if isinstance(data, bool):
        raise InvalidInputError("roomId must be an integer")
    try:
        return int(data)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("roomId must be an integer") from exc


class ChatGateway:
    def __init__(
        self,
        manager: ConnectionManager,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._manager = manager
        self._publisher = publisher
        self._session_factory = session_factory
        self._handlers: dict[str, Handler] = {
            "join_room": self.join_room,
            "leave_room": self.leave_room,
            "send_message": self.send_message,
            "read_messages": self.read_messages,
        }

    async def serve(self, websocket: WebSocket, token: str | None = None) -> None:
        """Run one connection from handshake to disconnect."""
        token = token or _bearer_token(websocket)
        async with self._session_factory() as db:
            try:
                user = await authenticate_token(db, token)
            except UnauthenticatedError as exc:
                logger.info("Websocket handshake rejected", extra={"reason": exc.message})
                await websocket.close(code=WS_UNAUTHORIZED)
                return
            user_id = user.id

        await websocket.accept()
        self._manager.subscribe(user_channel(user_id), websocket)
        logger.info("Websocket connected", extra={"user_id": user_id})

        try:
            while True:
                raw = await _receive_text(websocket)
                if raw is None:
                    logger.warning("Ignoring binary websocket frame", extra={"user_id": user_id})
                    continue
                await self.dispatch(websocket, user_id, raw)
        except WebSocketDisconnect:
            pass
        finally:
            self._manager.disconnect(websocket)
            logger.info("Websocket disconnected", extra={"user_id": user_id})

    async def dispatch(self, websocket: WebSocket, user_id: int, raw: str) -> None:
        try:
            frame = SocketFrame.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            logger.warning("Ignoring malformed websocket frame", extra={"user_id": user_id})
            return

        handler = self._handlers.get(frame.event)
        if handler is None:
            logger.warning(
                "Ignoring unknown websocket event",
                extra={"user_id": user_id, "event": frame.event},
            )
            return

        try:
            await handler(websocket, user_id, frame.data)
        except AppError as exc:
            logger.warning(
                "Websocket event rejected",
                extra={"user_id": user_id, "event": frame.event, "reason": exc.message},
            )
        except Exception:
            logger.exception(
                "Websocket event failed",
                extra={"user_id": user_id, "event": frame.event},
            )

    async def join_room(self, websocket: WebSocket, user_id: int, data: Any) -> None:
        # Membership is enforced when sending, not when listening
        self._manager.subscribe(chat_channel(_room_id(data)), websocket)

    async def leave_room(self, websocket: WebSocket, user_id: int, data: Any) -> None:
        self._manager.unsubscribe(chat_channel(_room_id(data)), websocket)

    async def send_message(self, websocket: WebSocket, user_id: int, data: Any) -> None:
        try:
            payload = SocketMessageIn.model_validate(data)
        except ValidationError as exc:
            raise InvalidInputError("send_message expects {roomId, content}") from exc

        async with self._session_factory() as db:
            await message_svc.send_message(
                db, self._publisher, payload.room_id, user_id, payload.content
            )

    async def read_messages(self, websocket: WebSocket, user_id: int, data: Any) -> None:
        room_id = _room_id(data)
        async with self._session_factory() as db:
            room = await chat_room_svc.get_room_for_participant(db, room_id, user_id)
            await message_svc.mark_room_read(db, room.id, user_id)
