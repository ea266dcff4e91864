"""Daily P/L heatmap for one calendar month.

Only days with at least one closed trade are returned; the caller fills
the remaining calendar cells with zeros.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date, datetime, time, timezone, tzinfo
from typing import Sequence

from tradelog.core.clock import IClock, WallClock
from tradelog.core.models import DateRange, HeatmapCell, Trade
from tradelog.core.scope import require_user
from tradelog.observability.metrics import time_aggregation
from tradelog.storage.interfaces import IRecordStore


def month_range(year: int, month: int, tz: tzinfo | None = timezone.utc) -> DateRange:
    """Inclusive range covering every instant of the calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(
        start=datetime.combine(date(year, month, 1), time.min, tzinfo=tz),
        end=datetime.combine(date(year, month, last_day), time.max, tzinfo=tz),
    )


def daily_pnl(trades: Sequence[Trade], tz: tzinfo | None = timezone.utc) -> list[HeatmapCell]:
    """Sum and count closed-trade P/L per calendar day of exit."""
    totals: dict[date, list[float]] = defaultdict(list)
    for trade in trades:
        if trade.exit_date is None:
            continue
        moment = trade.exit_date
        if tz is not None and moment.tzinfo is not None:
            moment = moment.astimezone(tz)
        totals[moment.date()].append(trade.pnl_value)

    return [
        HeatmapCell(
            day=day.day,
            date=day.strftime("%Y-%m-%d"),
            value=sum(values),
            count=len(values),
        )
        for day, values in sorted(totals.items())
    ]


class HeatmapBuilder:
    """Day-bucketed P/L for a month; defaults to the clock's current month.

    Args:
        store: Record store.
        clock: Supplies "now" when no year/month is requested.
        tz: Calendar used for day boundaries.
    """

    def __init__(
        self,
        store: IRecordStore,
        clock: IClock | None = None,
        tz: tzinfo | None = timezone.utc,
    ) -> None:
        self._store = store
        self._clock = clock or WallClock()
        self._tz = tz

    async def daily_pnl(
        self,
        user_id: str | None,
        year: int | None = None,
        month: int | None = None,
    ) -> list[HeatmapCell]:
        uid = require_user(user_id)
        now = self._clock.now()
        window = month_range(
            year if year is not None else now.year,
            month if month is not None else now.month,
            self._tz,
        )
        with time_aggregation("heatmap"):
            trades = await self._store.closed_trades(uid, window=window)
            return daily_pnl(trades, self._tz)
