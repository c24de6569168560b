"""Live ETA frames: local WebSocket fan-out mirrored to Redis.

Frames are orjson-encoded ``{"type": ..., "etas": [...]}`` objects. Redis
gets the latest frame under STATE_KEY and every frame on CHANNEL, for
consumers outside this process. ETAs do not survive a restart, so the
state key is reset when the broadcaster connects.
"""

import asyncio
import logging

import orjson
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from fleet_eta.config import settings

logger = logging.getLogger(__name__)

CHANNEL = "fleet:etas"
STATE_KEY = "fleet:etas:state"
# Frames buffered per client before it is considered too slow and dropped
CLIENT_BUFFER = 10


def encode_frame(kind: str, etas: list[dict]) -> bytes:
    return orjson.dumps({"type": kind, "etas": etas})


class Broadcaster:
    """Pushes ETA update frames to subscribed clients and Redis."""

    def __init__(self) -> None:
        self._redis: aioredis.Redis | None = None
        self._clients: set[asyncio.Queue] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self) -> None:
        if not settings.redis_url:
            logger.info("REDIS_URL not set - ETA frames stay in-process")
            return
        self._redis = aioredis.from_url(settings.redis_url, decode_responses=False)
        try:
            await self._redis.delete(STATE_KEY)
        except RedisError:
            logger.exception("Could not reset %s in Redis", STATE_KEY)

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()

    async def publish(self, etas: list[dict]) -> None:
        """Send an update frame carrying the full current ETA list."""
        frame = encode_frame("update", etas)
        await self._mirror(frame)
        self._fan_out(frame)

    async def _mirror(self, frame: bytes) -> None:
        if self._redis is None:
            return
        try:
            async with self._redis.pipeline(transaction=False) as pipe:
                pipe.set(STATE_KEY, frame)
                pipe.publish(CHANNEL, frame)
                await pipe.execute()
        except RedisError:
            logger.exception("Failed to mirror ETA frame to Redis")

    def _fan_out(self, frame: bytes) -> None:
        slow = set()
        for q in self._clients:
            try:
                q.put_nowait(frame)
            except asyncio.QueueFull:
                slow.add(q)
        if slow:
            logger.warning("Dropping %d ETA feed client(s) that fell behind", len(slow))
        self._clients -= slow

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=CLIENT_BUFFER)
        self._clients.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        self._clients.discard(q)
