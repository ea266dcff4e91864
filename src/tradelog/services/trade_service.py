"""Trade mutations and the strategy roll-up they trigger.

A trade is created CLOSED when both exit price and exit date are given.
Whenever a mutation changes a strategy's set of closed trades (or the
P/L of one of them) the strategy's performance snapshot is recomputed
after the write commits:

* create of an already-closed trade
* any update of a trade that is closed afterwards (closing it, or editing
  a closed trade: stop loss and exit date feed the snapshot as well as P/L)
* reassignment of a closed trade to another strategy (both strategies)
* delete of a closed trade

Edits to an open trade that stays open never trigger a recompute.
Roll-up and cache invalidation failures are logged but do not undo the
mutation; the next successful recompute restores the snapshot.
"""

from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError

from tradelog.analytics.rollup import StrategyPerformanceRollup
from tradelog.analytics.stats import pnl_percentage, realized_pnl
from tradelog.core.clock import IClock, WallClock
from tradelog.core.enums import TradeStatus
from tradelog.core.errors import InvalidTradeError, NotFoundError
from tradelog.core.models import Page, Trade, TradeFilters
from tradelog.core.scope import require_user
from tradelog.observability.metrics import record_rollup_failure, record_trade_mutation
from tradelog.storage.cache import IStrategyCache
from tradelog.storage.interfaces import IRecordStore

from .inputs import TradeChanges, TradeDraft

logger = logging.getLogger(__name__)


def with_pnl(trade: Trade) -> Trade:
    """Return *trade* with pnl fields derived from its prices."""
    if trade.exit_price is None:
        return trade.model_copy(update={"pnl": None, "pnl_percentage": None})
    pnl = realized_pnl(
        trade.side, trade.entry_price, trade.exit_price, trade.quantity, trade.fees,
    )
    return trade.model_copy(
        update={
            "pnl": pnl,
            "pnl_percentage": pnl_percentage(pnl, trade.entry_price, trade.quantity),
        },
    )


def _build(data: dict) -> Trade:
    try:
        return Trade(**data)
    except ValidationError as exc:
        raise InvalidTradeError(str(exc)) from exc


class TradeService:
    """Create, update, delete and list trades for one store.

    Args:
        store: Record store.
        rollup: Strategy roll-up; built over *store* when omitted.
        cache: Strategy list cache to invalidate on every mutation.
        clock: Supplies ``updated_at`` timestamps.
    """

    def __init__(
        self,
        store: IRecordStore,
        rollup: StrategyPerformanceRollup | None = None,
        cache: IStrategyCache | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._store = store
        self._rollup = rollup or StrategyPerformanceRollup(store)
        self._cache = cache
        self._clock = clock or WallClock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_trade(self, user_id: str | None, trade_id: str) -> Trade:
        uid = require_user(user_id)
        trade = await self._store.get_trade(uid, trade_id)
        if trade is None:
            raise NotFoundError("Trade", trade_id)
        return trade

    async def list_trades(
        self, user_id: str | None, filters: TradeFilters | None = None,
    ) -> Page[Trade]:
        uid = require_user(user_id)
        return await self._store.list_trades(uid, filters or TradeFilters())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_trade(self, user_id: str | None, draft: TradeDraft) -> Trade:
        uid = require_user(user_id)
        await self._require_strategy(uid, draft.strategy_id)

        data = draft.model_dump()
        closed = draft.exit_price is not None and draft.exit_date is not None
        if not closed:
            # A lone exit price or date is kept off an open trade
            data.update(exit_price=None, exit_date=None)
        now = self._clock.now()
        trade = _build({
            **data,
            "user_id": uid,
            "status": TradeStatus.CLOSED if closed else TradeStatus.OPEN,
            "created_at": now,
            "updated_at": now,
        })
        if closed:
            trade = with_pnl(trade)

        trade = await self._store.add_trade(trade)
        record_trade_mutation("create")
        logger.info(
            "Created %s trade %s (%s %s)",
            trade.status.value, trade.trade_id, trade.side.value, trade.symbol,
        )
        if closed:
            await self._recompute(uid, [trade.strategy_id])
        await self._invalidate(uid)
        return trade

    async def update_trade(
        self, user_id: str | None, trade_id: str, changes: TradeChanges,
    ) -> Trade:
        """Apply *changes*; closes the trade when its exit becomes complete.

        Raises:
            NotFoundError: Trade (or a newly referenced strategy) is missing.
            InvalidTradeError: Reopening a closed trade, closing without
                exit price and date, or an otherwise invalid result.
        """
        uid = require_user(user_id)
        existing = await self.get_trade(uid, trade_id)
        updates = changes.model_dump(exclude_unset=True)
        requested = updates.pop("status", None)

        if existing.is_closed and requested == TradeStatus.OPEN:
            raise InvalidTradeError(f"Closed trade {trade_id} cannot be reopened")

        new_strategy = updates.get("strategy_id", existing.strategy_id)
        if new_strategy != existing.strategy_id:
            await self._require_strategy(uid, new_strategy)

        merged = {**existing.model_dump(), **updates}
        exit_complete = merged["exit_price"] is not None and merged["exit_date"] is not None
        closing = not existing.is_closed and (
            requested == TradeStatus.CLOSED or exit_complete
        )
        if (closing or existing.is_closed) and not exit_complete:
            raise InvalidTradeError(
                f"Trade {trade_id} needs an exit price and exit date to be closed"
            )
        if requested == TradeStatus.OPEN and exit_complete:
            raise InvalidTradeError(
                f"Open trade {trade_id} cannot carry an exit price and exit date"
            )

        merged["status"] = (
            TradeStatus.CLOSED if closing or existing.is_closed else TradeStatus.OPEN
        )
        merged["updated_at"] = self._clock.now()
        trade = _build(merged)

        if trade.is_closed:
            trade = with_pnl(trade)

        trade = await self._store.save_trade(trade)
        record_trade_mutation("close" if closing else "update")
        logger.info("Updated trade %s (closing=%s)", trade_id, closing)

        affected: list[str] = []
        if trade.is_closed:
            affected.append(trade.strategy_id)
        if existing.is_closed and new_strategy != existing.strategy_id:
            affected.append(existing.strategy_id)
        await self._recompute(uid, affected)
        await self._invalidate(uid)
        return trade

    async def delete_trade(self, user_id: str | None, trade_id: str) -> Trade:
        uid = require_user(user_id)
        deleted = await self._store.delete_trade(uid, trade_id)
        if deleted is None:
            raise NotFoundError("Trade", trade_id)

        record_trade_mutation("delete")
        logger.info("Deleted trade %s", trade_id)
        if deleted.is_closed:
            await self._recompute(uid, [deleted.strategy_id])
        await self._invalidate(uid)
        return deleted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _require_strategy(self, uid: str, strategy_id: str) -> None:
        if await self._store.get_strategy(uid, strategy_id) is None:
            raise NotFoundError("Strategy", strategy_id)

    async def _recompute(self, uid: str, strategy_ids: Iterable[str]) -> None:
        for strategy_id in dict.fromkeys(strategy_ids):
            try:
                await self._rollup.recompute(uid, strategy_id)
            except Exception:
                record_rollup_failure()
                logger.exception(
                    "Performance recompute failed for strategy %s", strategy_id,
                )

    async def _invalidate(self, uid: str) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.invalidate(uid)
        except Exception:
            logger.exception("Strategy cache invalidation failed for user %s", uid)
