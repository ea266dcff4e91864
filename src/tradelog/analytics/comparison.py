"""Current vs preceding period comparison.

The preceding window has the same length as the requested one and ends
one millisecond before it starts, so the two never overlap.  An "all
time" request has no preceding period and reports every delta as 0.
"""

from __future__ import annotations

from datetime import timedelta

from tradelog.core.models import DateRange, MetricsComparison, MetricsSummary
from tradelog.core.scope import require_user
from tradelog.storage.interfaces import IRecordStore

from .metrics import TradeMetricsAggregator
from .stats import percentage_change

# Gap between the end of the preceding window and the start of the current one
PERIOD_GAP = timedelta(milliseconds=1)

_COMPARED_FIELDS = (
    "total_pnl",
    "win_rate",
    "max_drawdown",
    "total_trades",
    "avg_profit",
    "profit_factor",
)


def previous_window(window: DateRange) -> DateRange:
    """Equal-length window immediately before *window*."""
    duration = window.end - window.start
    prev_end = window.start - PERIOD_GAP
    return DateRange(start=prev_end - duration, end=prev_end)


def compare(
    current: MetricsSummary,
    previous: MetricsSummary | None,
    previous_range: DateRange | None = None,
) -> MetricsComparison:
    """Attach percentage deltas to *current*.

    With ``previous=None`` every delta is 0.
    """
    changes = {
        f"{name}_change": percentage_change(
            getattr(current, name),
            getattr(previous, name) if previous is not None else None,
        )
        for name in _COMPARED_FIELDS
    }
    return MetricsComparison(
        **current.model_dump(),
        **changes,
        previous_window=previous_range,
    )


class PeriodComparison:
    """Dashboard metrics with change indicators against the prior period."""

    def __init__(self, store: IRecordStore) -> None:
        self._aggregator = TradeMetricsAggregator(store)

    async def metrics(
        self, user_id: str | None, window: DateRange | None = None,
    ) -> MetricsComparison:
        uid = require_user(user_id)
        current = await self._aggregator.summary(uid, window)
        if window is None:
            return compare(current, None)

        prior = previous_window(window)
        previous = await self._aggregator.summary(uid, prior)
        return compare(current, previous, prior)
