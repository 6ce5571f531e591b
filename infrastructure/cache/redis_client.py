"""Async Redis connection factory and lazily-connected shared handle.

create_redis_client() returns an async redis.Redis client, or None if the
connection fails. LazyRedisConnection owns the process-wide client: it
connects on first use, reuses the client afterwards, and retries on the next
call after a failed attempt. All callers must handle the None case gracefully.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.logging import get_logger

log = get_logger(__name__)

RedisFactory = Callable[[str, float], Awaitable[Optional[aioredis.Redis]]]


def _mask(redis_url: str) -> str:
    return redis_url.split("@")[-1]


async def create_redis_client(
    redis_url: str, connect_timeout: float = 2.0
) -> Optional[aioredis.Redis]:
    """Connect to Redis and return a client, or None on failure."""
    client: Optional[aioredis.Redis] = None
    try:
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=connect_timeout,
            socket_timeout=connect_timeout,
        )
        await client.ping()
        log.info("redis_connected", uri=_mask(redis_url))
        return client
    except RedisError as e:
        log.warning(
            "redis_connection_failed", error=str(e), error_type=type(e).__name__
        )
    except Exception as e:
        log.warning("redis_unexpected_error", error=str(e), error_type=type(e).__name__)

    if client is not None:
        await client.aclose()
    return None


class LazyRedisConnection:
    """Connect-once, retry-on-failure owner of the shared Redis client.

    Callers that queue while an attempt is in flight take that attempt's
    result, success or failure. A failed attempt leaves no client behind, so
    the next call arriving after it tries again.
    """

    def __init__(
        self,
        redis_url: Optional[str],
        connect_timeout: float = 2.0,
        factory: RedisFactory = create_redis_client,
    ) -> None:
        self._redis_url = redis_url
        self._connect_timeout = connect_timeout
        self._factory = factory
        self._client: Optional[aioredis.Redis] = None
        self._lock = asyncio.Lock()
        self._attempts = 0

    @property
    def configured(self) -> bool:
        return bool(self._redis_url)

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def get(self) -> Optional[aioredis.Redis]:
        if self._client is not None:
            return self._client
        if not self._redis_url:
            return None
        seen = self._attempts
        async with self._lock:
            # An attempt that finished while we queued answers for us too
            if self._client is None and self._attempts == seen:
                try:
                    self._client = await self._factory(
                        self._redis_url, self._connect_timeout
                    )
                finally:
                    self._attempts += 1
        return self._client

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.aclose()
        except Exception as e:
            log.warning("redis_close_failed", error=str(e))
