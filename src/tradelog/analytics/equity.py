"""Equity curve and monthly trend series.

Both series are built from closed trades in exit-date order.  An empty
series is a valid answer (no trades in the window), not an error.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from tradelog.core.models import DateRange, EquityPoint, Trade, TrendPoint
from tradelog.core.scope import require_user
from tradelog.observability.metrics import time_aggregation
from tradelog.storage.interfaces import IRecordStore

from .metrics import chronological
from .stats import profit_factor, split_gross, win_rate


def equity_curve(trades: Sequence[Trade]) -> list[EquityPoint]:
    """One cumulative P/L point per closed trade, in exit-date order."""
    points: list[EquityPoint] = []
    running = 0.0
    for trade in chronological(trades):
        if trade.exit_date is None:
            continue
        running += trade.pnl_value
        points.append(EquityPoint(date=trade.exit_date, value=running))
    return points


def monthly_trend(trades: Sequence[Trade]) -> list[TrendPoint]:
    """Win rate and profit factor per calendar month of exit date."""
    buckets: dict[tuple[int, int], list[float]] = defaultdict(list)
    for trade in trades:
        if trade.exit_date is None:
            continue
        buckets[(trade.exit_date.year, trade.exit_date.month)].append(trade.pnl_value)

    points: list[TrendPoint] = []
    for (year, month) in sorted(buckets):
        pnls = buckets[(year, month)]
        wins = sum(1 for p in pnls if p > 0)
        gross_profit, gross_loss = split_gross(pnls)
        points.append(
            TrendPoint(
                period_label=f"{year:04d}-{month:02d}",
                win_rate=win_rate(wins, len(pnls)),
                profit_factor=profit_factor(gross_profit, gross_loss),
            )
        )
    return points


class EquityTrendBuilder:
    """Time series views over a user's closed trades."""

    def __init__(self, store: IRecordStore) -> None:
        self._store = store

    async def equity_curve(
        self, user_id: str | None, window: DateRange | None = None,
    ) -> list[EquityPoint]:
        uid = require_user(user_id)
        with time_aggregation("equity_curve"):
            trades = await self._store.closed_trades(uid, window=window)
            return equity_curve(trades)

    async def monthly_trend(
        self, user_id: str | None, window: DateRange | None = None,
    ) -> list[TrendPoint]:
        uid = require_user(user_id)
        with time_aggregation("monthly_trend"):
            trades = await self._store.closed_trades(uid, window=window)
            return monthly_trend(trades)
