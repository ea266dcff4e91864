"""SQLAlchemy ORM models for the trade journal database.

String primary keys carry the domain ids (hex UUIDs).  Every table is
indexed on ``user_id`` since every query is scoped to one user.

Relationships:
    StrategyRow 1--* TradeRow         (strategy_id, not enforced: trades may
                                       outlive a renamed strategy)
    TradeRow    1--* JournalEntryRow  (trade_id, optional)
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# TradeRow
# ---------------------------------------------------------------------------

class TradeRow(Base):
    """Persisted trade.

    ``pnl`` / ``pnl_percentage`` are written only when the trade closes or a
    closed trade's pricing fields change.
    """

    __tablename__ = "trades"

    trade_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    side: Mapped[str] = mapped_column(String(8), nullable=False)
    strategy_id: Mapped[str] = mapped_column(String(64), nullable=False)

    entry_price: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False)
    exit_price: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    stop_loss: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False)
    target: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False)
    fees: Mapped[Decimal] = mapped_column(Numeric(24, 8), default=Decimal("0"))

    pnl: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    pnl_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(8), nullable=False, default="open")

    entry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    exit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    tags: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="")
    emotion: Mapped[str | None] = mapped_column(String(16), nullable=True)
    screenshots: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_trades_user_id", "user_id"),
        Index("ix_trades_status", "status"),
        Index("ix_trades_user_status_exit", "user_id", "status", "exit_date"),
        Index("ix_trades_user_strategy", "user_id", "strategy_id"),
        Index("ix_trades_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<TradeRow(trade_id={self.trade_id!r}, symbol={self.symbol!r}, "
            f"status={self.status!r})>"
        )


# ---------------------------------------------------------------------------
# StrategyRow
# ---------------------------------------------------------------------------

class StrategyRow(Base):
    """Persisted strategy with its cached performance snapshot columns."""

    __tablename__ = "strategies"

    strategy_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    asset_class: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    rules: Mapped[str] = mapped_column(Text, default="")
    target_win_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    min_risk_reward: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(8), nullable=False, default="active")

    # Performance snapshot, rewritten as a unit by the roll-up
    perf_total_trades: Mapped[int] = mapped_column(Integer, default=0)
    perf_win_rate: Mapped[float] = mapped_column(Float, default=0.0)
    perf_profit_factor: Mapped[float] = mapped_column(Float, default=0.0)
    perf_avg_risk_reward: Mapped[float] = mapped_column(Float, default=0.0)
    perf_max_drawdown: Mapped[float] = mapped_column(Float, default=0.0)
    perf_net_pnl: Mapped[float] = mapped_column(Float, default=0.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_strategies_user_id", "user_id"),
        Index("ix_strategies_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<StrategyRow(strategy_id={self.strategy_id!r}, name={self.name!r})>"


# ---------------------------------------------------------------------------
# JournalEntryRow
# ---------------------------------------------------------------------------

class JournalEntryRow(Base):
    """Persisted psychological journal entry."""

    __tablename__ = "journal_entries"

    entry_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    trade_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    emotion: Mapped[str] = mapped_column(String(16), nullable=False)
    stress_level: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    profitability: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    entry: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_journal_entries_user_id", "user_id"),
        Index("ix_journal_entries_user_date", "user_id", "date"),
        Index("ix_journal_entries_trade_id", "trade_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<JournalEntryRow(entry_id={self.entry_id!r}, "
            f"emotion={self.emotion!r})>"
        )
