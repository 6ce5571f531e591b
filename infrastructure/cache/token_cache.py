"""Redis cache of upstream-verified Turnstile tokens.

A token is stored as ``turnstile:<token> -> "valid"`` with a fixed TTL and
only ever after a successful upstream verification. Redis failures never
raise out of this module: lookups report UNAVAILABLE, stores become no-ops.
"""

from enum import Enum

from infrastructure.cache.redis_client import LazyRedisConnection
from shared.logging import get_logger

log = get_logger(__name__)

VALID_MARKER = "valid"
DEFAULT_TTL_SECONDS = 600


class CacheLookup(str, Enum):
    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


class TokenCache:
    def __init__(
        self, connection: LazyRedisConnection, ttl_seconds: int = DEFAULT_TTL_SECONDS
    ) -> None:
        self._connection = connection
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(token: str) -> str:
        return f"turnstile:{token}"

    async def lookup(self, token: str) -> CacheLookup:
        redis = await self._connection.get()
        if redis is None:
            return CacheLookup.UNAVAILABLE
        try:
            cached = await redis.get(self.key(token))
        except Exception as e:
            log.warning(
                "turnstile_cache_get_error", error=str(e), error_type=type(e).__name__
            )
            return CacheLookup.UNAVAILABLE
        return CacheLookup.HIT if cached == VALID_MARKER else CacheLookup.MISS

    async def store(self, token: str) -> bool:
        """Mark a verified token as valid. Returns False if nothing was written."""
        redis = await self._connection.get()
        if redis is None:
            return False
        try:
            await redis.setex(self.key(token), self.ttl_seconds, VALID_MARKER)
            return True
        except Exception as e:
            log.error(
                "turnstile_cache_set_error", error=str(e), error_type=type(e).__name__
            )
            return False
