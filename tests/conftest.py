"""Shared fixtures for the tradelog test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tradelog.core.clock import SimClock
from tradelog.core.enums import AssetClass, Emotion, TradeMood, TradeSide, TradeStatus
from tradelog.core.models import JournalEntry, Strategy, Trade
from tradelog.storage.memory import InMemoryRecordStore

USER = "user-1"
OTHER_USER = "user-2"
BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Store and clock
# ---------------------------------------------------------------------------

@pytest.fixture
def store() -> InMemoryRecordStore:
    """Return an empty in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
def sim_clock() -> SimClock:
    """Return a SimClock starting at 2024-06-01 00:00 UTC."""
    return SimClock(start=datetime(2024, 6, 1, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_trade():
    """Factory for trades.

    With ``pnl`` given the trade is closed at an exit price that realizes
    exactly that P/L on one unit; otherwise it is open.
    """

    def _make(
        pnl: float | None = None,
        *,
        exit_date: datetime | None = None,
        entry_date: datetime | None = None,
        user_id: str = USER,
        strategy_id: str = "strat-1",
        side: TradeSide = TradeSide.LONG,
        entry_price: str = "1000",
        stop_loss: str = "990",
        emotion: TradeMood | None = None,
        tags: list[str] | None = None,
        symbol: str = "AAPL",
    ) -> Trade:
        entry = Decimal(entry_price)
        entry_date = entry_date or BASE_TIME
        fields: dict = {}
        if pnl is not None:
            move = Decimal(str(pnl)) * side.sign
            fields = {
                "exit_price": entry + move,
                "exit_date": exit_date or entry_date + timedelta(hours=1),
                "pnl": Decimal(str(pnl)),
                "pnl_percentage": float(Decimal(str(pnl)) / entry * 100),
                "status": TradeStatus.CLOSED,
            }
        return Trade(
            user_id=user_id,
            symbol=symbol,
            side=side,
            strategy_id=strategy_id,
            entry_price=entry,
            stop_loss=Decimal(stop_loss),
            quantity=Decimal("1"),
            entry_date=entry_date,
            emotion=emotion,
            tags=tags or [],
            **fields,
        )

    return _make


@pytest.fixture
def make_strategy():
    def _make(
        strategy_id: str = "strat-1",
        name: str = "Breakout",
        user_id: str = USER,
        created_at: datetime | None = None,
    ) -> Strategy:
        return Strategy(
            strategy_id=strategy_id,
            user_id=user_id,
            name=name,
            asset_class=AssetClass.EQUITY,
            created_at=created_at or BASE_TIME,
        )

    return _make


@pytest.fixture
def make_entry():
    def _make(
        emotion: Emotion,
        *,
        trade_id: str | None = None,
        stress_level: int = 5,
        profitability: float = 0.0,
        date: datetime | None = None,
        tags: list[str] | None = None,
        user_id: str = USER,
    ) -> JournalEntry:
        return JournalEntry(
            user_id=user_id,
            trade_id=trade_id,
            date=date or BASE_TIME,
            emotion=emotion,
            stress_level=stress_level,
            profitability=profitability,
            entry="Session notes",
            tags=tags or [],
        )

    return _make
