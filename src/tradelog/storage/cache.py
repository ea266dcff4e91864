"""Per-user strategy list cache.

Strategy lists are read on every page that renders strategies, so they
are cached per user with a TTL and invalidated explicitly whenever a
strategy or one of its trades changes.

This module provides:

*  ``IStrategyCache`` -- the protocol.
*  ``TTLStrategyCache`` -- in-process dict with clock-driven expiry.

A Redis-backed variant lives in :mod:`tradelog.storage.redis_cache`.
"""

from __future__ import annotations

import logging
from typing import Protocol

from tradelog.core.clock import IClock, WallClock
from tradelog.core.models import Strategy

logger = logging.getLogger(__name__)


class IStrategyCache(Protocol):
    async def get(self, user_id: str) -> list[Strategy] | None: ...

    async def set(self, user_id: str, strategies: list[Strategy]) -> None: ...

    async def invalidate(self, user_id: str) -> None: ...


class TTLStrategyCache:
    """In-process TTL cache keyed by user id.

    Args:
        ttl_seconds: Lifetime of a cached list.
        clock: Time source; :class:`WallClock` by default.
    """

    def __init__(self, ttl_seconds: float = 3600, clock: IClock | None = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock or WallClock()
        self._entries: dict[str, tuple[float, list[Strategy]]] = {}

    async def get(self, user_id: str) -> list[Strategy] | None:
        hit = self._entries.get(user_id)
        if hit is None:
            return None
        expires_at, strategies = hit
        if self._clock.monotonic() >= expires_at:
            del self._entries[user_id]
            return None
        return [s.model_copy(deep=True) for s in strategies]

    async def set(self, user_id: str, strategies: list[Strategy]) -> None:
        self._entries[user_id] = (
            self._clock.monotonic() + self._ttl,
            [s.model_copy(deep=True) for s in strategies],
        )

    async def invalidate(self, user_id: str) -> None:
        if self._entries.pop(user_id, None) is not None:
            logger.debug("Invalidated strategy cache for user %s", user_id)

    def __len__(self) -> int:
        return len(self._entries)
