"""Core domain models used across the trade journal.

Persisted records (``Trade``, ``Strategy``, ``JournalEntry``) and the
derived read models the analytics layer emits.  Derived models are never
stored; they serialise directly with ``model_dump(mode="json")``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from .enums import (
    AssetClass,
    Emotion,
    InsightSource,
    StrategyStatus,
    TradeMood,
    TradeSide,
    TradeStatus,
)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# ---------------------------------------------------------------------------
# Query windows
# ---------------------------------------------------------------------------

class DateRange(BaseModel):
    """Closed date window; both ends are inclusive."""

    model_config = ConfigDict(frozen=True)

    start: UtcDatetime
    end: UtcDatetime

    @model_validator(mode="after")
    def _ordered(self) -> DateRange:
        if self.start > self.end:
            raise ValueError("DateRange start must not be after end")
        return self

    def contains(self, moment: datetime | None) -> bool:
        return moment is not None and self.start <= moment <= self.end


# ---------------------------------------------------------------------------
# Trade
# ---------------------------------------------------------------------------

class Trade(BaseModel):
    """A single logged trade.

    ``pnl`` and ``pnl_percentage`` are derived at close time from the
    prices, quantity and fees; they are never edited independently.
    A trade is CLOSED exactly when both ``exit_price`` and ``exit_date``
    are present.
    """

    trade_id: str = Field(default_factory=_new_id)
    user_id: str
    symbol: str
    side: TradeSide
    strategy_id: str

    entry_price: Decimal
    exit_price: Decimal | None = None
    stop_loss: Decimal
    target: Decimal | None = None
    quantity: Decimal
    fees: Decimal = Decimal("0")

    pnl: Decimal | None = None
    pnl_percentage: float | None = None
    status: TradeStatus = TradeStatus.OPEN

    entry_date: UtcDatetime
    exit_date: UtcDatetime | None = None

    tags: list[str] = Field(default_factory=list)
    notes: str = ""
    emotion: TradeMood | None = None
    screenshots: list[str] = Field(default_factory=list)

    created_at: UtcDatetime = Field(default_factory=_utcnow)
    updated_at: UtcDatetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _status_matches_exit(self) -> Trade:
        has_exit = self.exit_price is not None and self.exit_date is not None
        if self.status == TradeStatus.CLOSED and not has_exit:
            raise ValueError("closed trade requires exit_price and exit_date")
        if self.status == TradeStatus.OPEN and has_exit:
            raise ValueError("trade with exit_price and exit_date must be closed")
        return self

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    @property
    def pnl_value(self) -> float:
        """Realized P/L as float; 0.0 while the trade is open."""
        return float(self.pnl) if self.pnl is not None else 0.0


# ---------------------------------------------------------------------------
# Strategy
# ---------------------------------------------------------------------------

class StrategyPerformance(BaseModel):
    """Cached performance snapshot of a strategy.

    Always replaced as a whole; a materialized view of the strategy's
    closed trades.
    """

    model_config = ConfigDict(frozen=True)

    total_trades: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    avg_risk_reward: float = 0.0
    max_drawdown: float = 0.0
    net_pnl: float = 0.0

    @classmethod
    def zero(cls) -> StrategyPerformance:
        return cls()


class Strategy(BaseModel):
    """A user-defined trading strategy."""

    strategy_id: str = Field(default_factory=_new_id)
    user_id: str
    name: str
    asset_class: AssetClass
    description: str = ""
    rules: str = ""
    target_win_rate: float | None = None
    min_risk_reward: float | None = None
    status: StrategyStatus = StrategyStatus.ACTIVE
    performance: StrategyPerformance = Field(default_factory=StrategyPerformance.zero)

    created_at: UtcDatetime = Field(default_factory=_utcnow)
    updated_at: UtcDatetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------------

class JournalEntry(BaseModel):
    """A psychological journal entry, optionally linked to one trade."""

    entry_id: str = Field(default_factory=_new_id)
    user_id: str
    trade_id: str | None = None
    date: UtcDatetime
    emotion: Emotion
    stress_level: int = Field(default=5, ge=1, le=10)
    profitability: float = 0.0  # Self-assessment, independent of trade pnl
    entry: str
    tags: list[str] = Field(default_factory=list)

    # Populated on read when the linked trade still exists
    trade: Trade | None = Field(default=None, exclude=True)

    created_at: UtcDatetime = Field(default_factory=_utcnow)
    updated_at: UtcDatetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Listing filters and pages
# ---------------------------------------------------------------------------

class TradeFilters(BaseModel):
    symbol: str | None = None  # Case-insensitive substring
    strategy_id: str | None = None
    status: TradeStatus | None = None
    window: DateRange | None = None  # Applied to entry_date
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=500)


class JournalFilters(BaseModel):
    window: DateRange | None = None  # Applied to date
    emotion: Emotion | None = None
    tags: list[str] = Field(default_factory=list)  # Match any
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=500)


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


# ---------------------------------------------------------------------------
# Derived read models
# ---------------------------------------------------------------------------

class MetricsSummary(BaseModel):
    total_pnl: float = 0.0
    win_rate: float = 0.0
    max_drawdown: float = 0.0
    total_trades: int = 0
    avg_profit: float = 0.0
    profit_factor: float = 0.0


class MetricsComparison(MetricsSummary):
    """Current-period metrics with percentage change vs the prior period."""

    total_pnl_change: float = 0.0
    win_rate_change: float = 0.0
    max_drawdown_change: float = 0.0
    total_trades_change: float = 0.0
    avg_profit_change: float = 0.0
    profit_factor_change: float = 0.0
    previous_window: DateRange | None = None


class EquityPoint(BaseModel):
    date: UtcDatetime
    value: float


class TrendPoint(BaseModel):
    period_label: str  # "YYYY-MM"
    win_rate: float
    profit_factor: float


class StrategyPerfRow(BaseModel):
    strategy_id: str
    name: str
    total_trades: int
    win_rate: float
    profit_factor: float
    avg_risk_reward: float
    max_drawdown: float
    net_pnl: float


class EmotionPnLRow(BaseModel):
    emotion: str
    avg_pnl: float
    avg_stress_level: float | None  # None for trade-tag derived rows
    count: int


class EmotionCorrelation(BaseModel):
    source: InsightSource
    rows: list[EmotionPnLRow]


class EmotionProfitability(BaseModel):
    emotion: str
    avg_profitability: float


class PsychologyInsights(BaseModel):
    source: InsightSource
    dominant_mood: str
    most_common_emotion: str | None
    top_tags: list[str]
    emotion_profitability: list[EmotionProfitability]
    mindset_score: float


class HeatmapCell(BaseModel):
    day: int
    date: str  # "YYYY-MM-DD"
    value: float
    count: int


class TagCount(BaseModel):
    tag: str
    count: int
