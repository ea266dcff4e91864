"""Redis-backed strategy list cache.

Values are JSON arrays of strategies stored with ``SET ... EX ttl`` under
``{prefix}strategies:{user_id}``; invalidation is a plain ``DEL``.

Uses ``redis.asyncio`` for non-blocking I/O.
"""

from __future__ import annotations

import json
import logging

import redis.asyncio as aioredis

from tradelog.core.models import Strategy

logger = logging.getLogger(__name__)


def _strategies_key(prefix: str, user_id: str) -> str:
    return f"{prefix}strategies:{user_id}"


class RedisStrategyCache:
    """Async Redis implementation of :class:`IStrategyCache`.

    Args:
        redis_url: Redis connection URL (e.g. ``redis://localhost:6379/0``).
        prefix: Key namespace prefix. Defaults to ``"tradelog:"``.
        ttl_seconds: Lifetime of a cached list.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        prefix: str = "tradelog:",
        ttl_seconds: int = 3600,
        client: aioredis.Redis | None = None,
    ) -> None:
        self._url = redis_url
        self._prefix = prefix
        self._ttl = ttl_seconds
        self._redis: aioredis.Redis | None = client

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        """Establish the Redis connection pool."""
        if self._redis is not None:
            return
        self._redis = aioredis.from_url(
            self._url,
            decode_responses=False,
            max_connections=20,
        )
        await self._redis.ping()
        logger.info("Redis connected: %s", self._url.split("@")[-1])

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis connection closed.")

    @property
    def redis(self) -> aioredis.Redis:
        """Return the underlying Redis client, raising if not connected."""
        if self._redis is None:
            raise RuntimeError(
                "RedisStrategyCache not connected. Call connect() first."
            )
        return self._redis

    # -- cache operations ----------------------------------------------------

    async def get(self, user_id: str) -> list[Strategy] | None:
        raw = await self.redis.get(_strategies_key(self._prefix, user_id))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return [Strategy.model_validate(item) for item in json.loads(raw)]

    async def set(self, user_id: str, strategies: list[Strategy]) -> None:
        payload = json.dumps([s.model_dump(mode="json") for s in strategies])
        await self.redis.set(
            _strategies_key(self._prefix, user_id), payload, ex=self._ttl,
        )

    async def invalidate(self, user_id: str) -> None:
        await self.redis.delete(_strategies_key(self._prefix, user_id))
        logger.debug("Invalidated strategy cache for user %s", user_id)
