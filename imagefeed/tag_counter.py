"""
imagefeed Tag Counter
Per-image tag counts that survive thousands of concurrent increments/decrements.
Supports a Redis-backed store (INCRBY/DECRBY) or an in-memory fallback.
"""

import asyncio
import threading
from typing import Optional, Union

import redis.asyncio as aioredis

from .config import REDIS_KEYS, get_redis_url


class InMemoryTagCounter:
    """
    Lock-guarded in-memory counter.

    Same interface as RedisTagCounter. The lock makes each read-modify-write
    atomic even when callers run in worker threads.
    """

    backend = "memory"

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: dict[int, int] = {}

    async def increment(self, image_id: int, by: int = 1) -> int:
        with self._lock:
            value = self._counts.get(image_id, 0) + by
            self._counts[image_id] = value
            return value

    async def decrement(self, image_id: int, by: int = 1) -> int:
        return await self.increment(image_id, -by)

    async def get(self, image_id: int) -> int:
        with self._lock:
            return self._counts.get(image_id, 0)

    async def reset(self, image_id: int) -> None:
        with self._lock:
            self._counts.pop(image_id, None)

    async def close(self) -> None:
        """No-op for in-memory counter."""
        pass


class RedisTagCounter:
    """Redis-backed counter. INCRBY/DECRBY are atomic on the server."""

    backend = "redis"

    def __init__(self, redis_url: Optional[str] = None, client: Optional[aioredis.Redis] = None):
        self.redis_url = redis_url or get_redis_url()
        self._redis: Optional[aioredis.Redis] = client

    @property
    def redis_client(self) -> aioredis.Redis:
        """Lazy-load Redis connection."""
        if self._redis is None:
            self._redis = aioredis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    def _key(self, image_id: int) -> str:
        return f"{REDIS_KEYS['tag_count']}{image_id}"

    async def increment(self, image_id: int, by: int = 1) -> int:
        return int(await self.redis_client.incrby(self._key(image_id), by))

    async def decrement(self, image_id: int, by: int = 1) -> int:
        return int(await self.redis_client.decrby(self._key(image_id), by))

    async def get(self, image_id: int) -> int:
        raw = await self.redis_client.get(self._key(image_id))
        return int(raw) if raw is not None else 0

    async def reset(self, image_id: int) -> None:
        await self.redis_client.delete(self._key(image_id))

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None


AnyTagCounter = Union[RedisTagCounter, InMemoryTagCounter]


async def get_tag_counter(redis_url: Optional[str] = None) -> AnyTagCounter:
    """Auto-detect backend: tries a Redis ping, falls back to in-memory."""
    client = aioredis.from_url(redis_url or get_redis_url(), decode_responses=True)
    try:
        await client.ping()
    except Exception as e:
        await client.aclose()
        print(f"[TagCounter] Redis unavailable ({e}), using in-memory backend")
        return InMemoryTagCounter()

    print("[TagCounter] Using Redis backend")
    return RedisTagCounter(redis_url, client=client)


async def perform_tag_burst(
    counter: AnyTagCounter,
    image_id: int,
    increments: int = 3000,
    decrements: int = 1000,
    concurrency: int = 64,
) -> int:
    """
    Fire `increments` +1 and `decrements` -1 operations concurrently.

    `concurrency` caps operations in flight so a Redis backend does not open
    one connection per operation. Returns the count after every operation
    has landed.
    """
    sem = asyncio.Semaphore(concurrency)

    async def _bounded(op, by: int) -> int:
        async with sem:
            return await op(image_id, by)

    ops = [_bounded(counter.increment, 1) for _ in range(increments)]
    ops.extend(_bounded(counter.decrement, 1) for _ in range(decrements))
    await asyncio.gather(*ops)
    return await counter.get(image_id)
