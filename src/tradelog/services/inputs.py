"""Validated payloads accepted by the mutation services.

``*Draft`` models create a record; ``*Changes`` models carry a partial
update where only explicitly set fields are applied.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from tradelog.core.enums import (
    AssetClass,
    Emotion,
    StrategyStatus,
    TradeMood,
    TradeSide,
    TradeStatus,
)


class TradeDraft(BaseModel):
    symbol: str = Field(min_length=1)
    side: TradeSide
    strategy_id: str
    entry_price: Decimal = Field(gt=0)
    exit_price: Decimal | None = Field(default=None, gt=0)
    stop_loss: Decimal
    target: Decimal | None = None
    quantity: Decimal = Field(gt=0)
    fees: Decimal = Field(default=Decimal("0"), ge=0)
    entry_date: datetime
    exit_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    notes: str = ""
    emotion: TradeMood | None = None
    screenshots: list[str] = Field(default_factory=list)


class TradeChanges(BaseModel):
    symbol: str | None = Field(default=None, min_length=1)
    side: TradeSide | None = None
    strategy_id: str | None = None
    entry_price: Decimal | None = Field(default=None, gt=0)
    exit_price: Decimal | None = Field(default=None, gt=0)
    stop_loss: Decimal | None = None
    target: Decimal | None = None
    quantity: Decimal | None = Field(default=None, gt=0)
    fees: Decimal | None = Field(default=None, ge=0)
    status: TradeStatus | None = None
    entry_date: datetime | None = None
    exit_date: datetime | None = None
    tags: list[str] | None = None
    notes: str | None = None
    emotion: TradeMood | None = None
    screenshots: list[str] | None = None


class StrategyDraft(BaseModel):
    name: str = Field(min_length=1)
    asset_class: AssetClass
    description: str = ""
    rules: str = ""
    target_win_rate: float | None = Field(default=None, ge=0, le=100)
    min_risk_reward: float | None = Field(default=None, ge=0)
    status: StrategyStatus = StrategyStatus.ACTIVE


class StrategyChanges(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    asset_class: AssetClass | None = None
    description: str | None = None
    rules: str | None = None
    target_win_rate: float | None = Field(default=None, ge=0, le=100)
    min_risk_reward: float | None = Field(default=None, ge=0)
    status: StrategyStatus | None = None


class JournalDraft(BaseModel):
    trade_id: str | None = None
    date: datetime
    emotion: Emotion
    stress_level: int = Field(default=5, ge=1, le=10)
    profitability: float = 0.0
    entry: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)


class JournalChanges(BaseModel):
    trade_id: str | None = None
    date: datetime | None = None
    emotion: Emotion | None = None
    stress_level: int | None = Field(default=None, ge=1, le=10)
    profitability: float | None = None
    entry: str | None = Field(default=None, min_length=1)
    tags: list[str] | None = None
