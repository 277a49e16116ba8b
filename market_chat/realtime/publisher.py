"""In-process fan-out to connected websockets.

``EventPublisher`` is the only interface services see. ``ConnectionManager``
is the in-memory implementation; ``RedisEventPublisher`` in
``redis_broker`` relays through Redis when several workers serve sockets.
"""

import logging
from collections import defaultdict
from typing import Any, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    async def publish(self, channel: str, event: str, data: Any) -> None:
        """Push ``event`` to every subscriber of ``channel``. Never raises."""


class ConnectionManager:
    """Tracks which websockets listen on which channels."""

    def __init__(self) -> None:
        self._channels: dict[str, set[WebSocket]] = defaultdict(set)

    def subscribe(self, channel: str, websocket: WebSocket) -> None:
        self._channels[channel].add(websocket)

    def unsubscribe(self, channel: str, websocket: WebSocket) -> None:
        members = self._channels.get(channel)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self._channels[channel]

    def disconnect(self, websocket: WebSocket) -> None:
        """Drop the socket from every channel it joined."""
        for channel in [c for c, members in self._channels.items() if websocket in members]:
            self.unsubscribe(channel, websocket)

    def subscribers(self, channel: str) -> set[WebSocket]:
        return set(self._channels.get(channel, ()))

    async def publish(self, channel: str, event: str, data: Any) -> None:
        frame = {"event": event, "data": data}
        for websocket in self.subscribers(channel):
            try:
                await websocket.send_json(frame)
            except Exception:
                # Socket went away between receive loops
                logger.warning(
                    "Dropping websocket after failed send",
                    extra={"channel": channel, "event": event},
                )
                self.disconnect(websocket)
