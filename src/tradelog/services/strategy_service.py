"""Strategy CRUD with a cached per-user strategy list."""

from __future__ import annotations

import logging

from tradelog.analytics.rollup import StrategyPerformanceRollup
from tradelog.core.clock import IClock, WallClock
from tradelog.core.errors import NotFoundError, StrategyInUseError
from tradelog.core.models import Strategy, StrategyPerformance
from tradelog.core.scope import require_user
from tradelog.storage.cache import IStrategyCache, TTLStrategyCache
from tradelog.storage.interfaces import IRecordStore

from .inputs import StrategyChanges, StrategyDraft

logger = logging.getLogger(__name__)


class StrategyService:
    """Strategy records and their performance snapshots.

    The snapshot is owned by :class:`StrategyPerformanceRollup`; updates
    here only touch descriptive fields.
    """

    def __init__(
        self,
        store: IRecordStore,
        cache: IStrategyCache | None = None,
        rollup: StrategyPerformanceRollup | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or WallClock()
        self._cache = cache if cache is not None else TTLStrategyCache(clock=self._clock)
        self._rollup = rollup or StrategyPerformanceRollup(store)

    async def list_strategies(self, user_id: str | None) -> list[Strategy]:
        """Newest first; served from the cache while it is fresh."""
        uid = require_user(user_id)
        cached = await self._cache.get(uid)
        if cached is not None:
            return cached
        strategies = await self._store.list_strategies(uid)
        await self._cache.set(uid, strategies)
        return strategies

    async def get_strategy(self, user_id: str | None, strategy_id: str) -> Strategy:
        uid = require_user(user_id)
        strategy = await self._store.get_strategy(uid, strategy_id)
        if strategy is None:
            raise NotFoundError("Strategy", strategy_id)
        return strategy

    async def create_strategy(self, user_id: str | None, draft: StrategyDraft) -> Strategy:
        uid = require_user(user_id)
        now = self._clock.now()
        strategy = Strategy(
            user_id=uid,
            performance=StrategyPerformance.zero(),
            created_at=now,
            updated_at=now,
            **draft.model_dump(),
        )
        strategy = await self._store.add_strategy(strategy)
        await self._invalidate(uid)
        logger.info("Created strategy %s (%s)", strategy.strategy_id, strategy.name)
        return strategy

    async def update_strategy(
        self, user_id: str | None, strategy_id: str, changes: StrategyChanges,
    ) -> Strategy:
        uid = require_user(user_id)
        existing = await self.get_strategy(uid, strategy_id)
        updated = existing.model_copy(
            update={**changes.model_dump(exclude_unset=True), "updated_at": self._clock.now()},
        )
        saved = await self._store.save_strategy(updated)
        await self._invalidate(uid)
        return saved

    async def delete_strategy(self, user_id: str | None, strategy_id: str) -> None:
        """Delete a strategy that no trade references.

        Raises:
            NotFoundError: No such strategy for this user.
            StrategyInUseError: Trades still reference the strategy.
        """
        uid = require_user(user_id)
        await self.get_strategy(uid, strategy_id)
        trade_count = await self._store.count_strategy_trades(uid, strategy_id)
        if trade_count > 0:
            raise StrategyInUseError(strategy_id, trade_count)
        await self._store.delete_strategy(uid, strategy_id)
        await self._invalidate(uid)
        logger.info("Deleted strategy %s", strategy_id)

    async def recompute_performance(
        self, user_id: str | None, strategy_id: str,
    ) -> StrategyPerformance:
        """Rebuild the snapshot on demand (repair after a failed roll-up)."""
        uid = require_user(user_id)
        performance = await self._rollup.recompute(uid, strategy_id)
        await self._invalidate(uid)
        return performance

    async def _invalidate(self, uid: str) -> None:
        try:
            await self._cache.invalidate(uid)
        except Exception:
            logger.exception("Strategy cache invalidation failed for user %s", uid)
