"""Summary metrics over a user's closed trades.

Turns the closed trades of a window into the dashboard summary block:
total P/L, win rate, max drawdown, trade count, average P/L and profit
factor.  Break-even trades count toward the total but are neither wins
nor losses.

Usage::

    aggregator = TradeMetricsAggregator(store)
    summary = await aggregator.summary(user_id, DateRange(start=a, end=b))
    print(summary.win_rate, summary.max_drawdown)
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from tradelog.core.models import DateRange, MetricsSummary, Trade
from tradelog.core.scope import require_user
from tradelog.observability.metrics import time_aggregation
from tradelog.storage.interfaces import IRecordStore

from .stats import average, max_drawdown, profit_factor, split_gross, win_rate

logger = logging.getLogger(__name__)


def chronological(trades: Iterable[Trade]) -> list[Trade]:
    """Trades ordered by exit date; undated trades sort first.

    The sort is stable, so trades sharing an exit date keep store order.
    """
    return sorted(
        trades,
        key=lambda t: (t.exit_date is not None, t.exit_date.timestamp() if t.exit_date else 0.0),
    )


def summarize(trades: Sequence[Trade]) -> MetricsSummary:
    """Compute the summary block for already-filtered closed trades."""
    ordered = chronological(trades)
    pnls = [t.pnl_value for t in ordered]
    total = len(pnls)
    if total == 0:
        return MetricsSummary()

    wins = sum(1 for p in pnls if p > 0)
    gross_profit, gross_loss = split_gross(pnls)
    total_pnl = sum(pnls)

    return MetricsSummary(
        total_pnl=total_pnl,
        win_rate=win_rate(wins, total),
        max_drawdown=max_drawdown(pnls),
        total_trades=total,
        avg_profit=average(pnls),
        profit_factor=profit_factor(gross_profit, gross_loss),
    )


class TradeMetricsAggregator:
    """Summary metrics for one user, optionally limited to a window.

    The window applies to the exit date and is inclusive on both ends.
    """

    def __init__(self, store: IRecordStore) -> None:
        self._store = store

    async def summary(
        self, user_id: str | None, window: DateRange | None = None,
    ) -> MetricsSummary:
        uid = require_user(user_id)
        with time_aggregation("summary"):
            trades = await self._store.closed_trades(uid, window=window)
            result = summarize(trades)
        logger.debug(
            "Summarised %d closed trades for user %s", result.total_trades, uid,
        )
        return result
