"""Strategy performance roll-up.

Each strategy carries a cached performance snapshot so strategy lists
render without touching the trade history.  The snapshot is a
materialized view: :meth:`StrategyPerformanceRollup.recompute` rebuilds
it from *all* of the strategy's closed trades and replaces it whole.
It is never patched incrementally.

Trade mutations call ``recompute`` after they commit.  Two mutations on
the same strategy can interleave their read-then-write sequences and
leave a stale snapshot behind; this is accepted, since the next
recompute for that strategy restores the true aggregate.  No lock is
taken.

Usage::

    rollup = StrategyPerformanceRollup(store)
    perf = await rollup.recompute(user_id, strategy_id)
    rows = await rollup.performance_by_strategy(user_id)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

from tradelog.core.errors import NotFoundError
from tradelog.core.models import StrategyPerfRow, StrategyPerformance, Trade
from tradelog.core.scope import require_user
from tradelog.observability.metrics import record_rollup, time_aggregation
from tradelog.storage.interfaces import IRecordStore

from .metrics import chronological
from .stats import average, max_drawdown, profit_factor, split_gross, win_rate

logger = logging.getLogger(__name__)

UNKNOWN_STRATEGY = "Unknown Strategy"


def avg_risk_reward(trades: Sequence[Trade]) -> float:
    """Mean realized reward multiple of the winning trades.

    Risk is the entry-to-stop distance.  Only trades with a positive risk
    and a positive reward contribute; losers and break-evens answer a
    different question (expectancy) and are left out.
    """
    multiples: list[float] = []
    for trade in trades:
        if trade.exit_price is None:
            continue
        risk = abs(float(trade.entry_price) - float(trade.stop_loss))
        if risk <= 0:
            continue
        reward = (float(trade.exit_price) - float(trade.entry_price)) * trade.side.sign
        if reward > 0:
            multiples.append(reward / risk)
    return average(multiples)


def compute_performance(trades: Sequence[Trade]) -> StrategyPerformance:
    """Full snapshot for one strategy's closed trades.

    No trades is a valid state and yields the all-zero snapshot.
    """
    if not trades:
        return StrategyPerformance.zero()

    ordered = chronological(trades)
    pnls = [t.pnl_value for t in ordered]
    wins = sum(1 for p in pnls if p > 0)
    gross_profit, gross_loss = split_gross(pnls)

    return StrategyPerformance(
        total_trades=len(pnls),
        win_rate=win_rate(wins, len(pnls)),
        profit_factor=profit_factor(gross_profit, gross_loss),
        avg_risk_reward=avg_risk_reward(ordered),
        max_drawdown=max_drawdown(pnls),
        net_pnl=sum(pnls),
    )


class StrategyPerformanceRollup:
    """Recomputes and persists strategy performance snapshots."""

    def __init__(self, store: IRecordStore) -> None:
        self._store = store

    async def recompute(
        self, user_id: str | None, strategy_id: str,
    ) -> StrategyPerformance:
        """Rebuild and store the snapshot of one strategy.

        Raises:
            UnauthorizedError: No user scope.
            NotFoundError: The strategy does not exist for this user.
        """
        uid = require_user(user_id)
        strategy = await self._store.get_strategy(uid, strategy_id)
        if strategy is None:
            raise NotFoundError("Strategy", strategy_id)

        with time_aggregation("strategy_rollup"):
            trades = await self._store.closed_trades(uid, strategy_id=strategy_id)
            performance = compute_performance(trades)

        await self._store.save_strategy_performance(uid, strategy_id, performance)
        record_rollup(reset=not trades)
        logger.info(
            "Recomputed strategy %s performance from %d closed trades",
            strategy_id, len(trades),
        )
        return performance

    async def performance_by_strategy(self, user_id: str | None) -> list[StrategyPerfRow]:
        """Live per-strategy rows, best net P/L first.

        Computed on demand with the same function as the cached snapshot,
        so both views agree whenever the cache is fresh.
        """
        uid = require_user(user_id)
        with time_aggregation("performance_by_strategy"):
            trades = await self._store.closed_trades(uid)
            strategies = await self._store.list_strategies(uid)

        names = {s.strategy_id: s.name for s in strategies}
        grouped: dict[str, list[Trade]] = defaultdict(list)
        for trade in trades:
            grouped[trade.strategy_id].append(trade)

        rows = [
            StrategyPerfRow(
                strategy_id=sid,
                name=names.get(sid, UNKNOWN_STRATEGY),
                **compute_performance(group).model_dump(),
            )
            for sid, group in grouped.items()
        ]
        rows.sort(key=lambda r: (-r.net_pnl, r.name))
        return rows
