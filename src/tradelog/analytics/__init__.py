"""Analytics over trade and journal records.

- **Statistics**: drawdown, profit factor, percentage change
- **Metrics**: dashboard summary and period comparison
- **Series**: equity curve and monthly trend
- **Roll-up**: cached per-strategy performance snapshots
- **Psychology**: emotion vs outcome correlation, insight bundle
- **Heatmap**: daily P/L for a calendar month
"""

from __future__ import annotations

from .comparison import PeriodComparison
from .equity import EquityTrendBuilder
from .heatmap import HeatmapBuilder
from .metrics import TradeMetricsAggregator
from .psychology import PsychologyEngine
from .rollup import StrategyPerformanceRollup
from .tags import top_trade_tags

__all__ = [
    "EquityTrendBuilder",
    "HeatmapBuilder",
    "PeriodComparison",
    "PsychologyEngine",
    "StrategyPerformanceRollup",
    "TradeMetricsAggregator",
    "top_trade_tags",
]
