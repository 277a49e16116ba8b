"""Cross-process fan-out over Redis pub/sub.

Every worker publishes frames to one Redis channel and runs a listener that
hands received frames to its local ConnectionManager, so a message sent
through worker A reaches sockets held by worker B.
"""

import asyncio
import json
import logging
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    wait_exponential,
)

from market_chat.realtime.publisher import ConnectionManager

logger = logging.getLogger(__name__)


class RedisEventPublisher:
    def __init__(self, manager: ConnectionManager, redis_url: str, channel: str) -> None:
        self._manager = manager
        self._redis = aioredis.from_url(redis_url, decode_responses=True)
        self._channel = channel
        self._listener: asyncio.Task | None = None

    async def publish(self, channel: str, event: str, data: Any) -> None:
        frame = json.dumps({"channel": channel, "event": event, "data": data}, default=str)
        try:
            await self._redis.publish(self._channel, frame)
        except RedisError:
            logger.exception("Redis publish failed, delivering locally only")
            await self._manager.publish(channel, event, data)

    async def start(self) -> None:
        self._listener = asyncio.create_task(self._listen())

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        await self._redis.aclose()

    async def relay(self, raw: str) -> None:
        """Deliver one frame received from Redis to local sockets."""
        try:
            frame = json.loads(raw)
            channel, event, data = frame["channel"], frame["event"], frame.get("data")
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring malformed realtime frame from Redis")
            return
        await self._manager.publish(channel, event, data)

    @retry(
        retry=retry_if_exception_type(RedisError),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        logger.info("Subscribed to realtime relay", extra={"redis_channel": self._channel})
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                await self.relay(message["data"])
        finally:
            await pubsub.aclose()
