"""Test SQL store row conversion and error wrapping without a database."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from tradelog.core.enums import Emotion, TradeMood
from tradelog.core.errors import StoreError
from tradelog.core.models import StrategyPerformance
from tradelog.storage.postgres.store import (
    SqlRecordStore,
    _journal_to_row,
    _performance_values,
    _row_to_journal,
    _row_to_strategy,
    _row_to_trade,
    _strategy_to_row,
    _trade_to_row,
)

USER = "user-1"


class TestConversions:
    def test_trade_round_trip(self, make_trade):
        trade = make_trade(
            42.5, emotion=TradeMood.CONFIDENT, tags=["breakout"],
        ).model_copy(update={"fees": Decimal("1.25")})
        row = _trade_to_row(trade)
        assert row.side == "long"
        assert row.status == "closed"
        assert row.emotion == "confident"
        assert _row_to_trade(row) == trade

    def test_open_trade_without_mood(self, make_trade):
        row = _trade_to_row(make_trade())
        assert row.emotion is None
        assert row.exit_price is None
        assert _row_to_trade(row).emotion is None

    def test_strategy_round_trip(self, make_strategy):
        strategy = make_strategy().model_copy(
            update={"performance": StrategyPerformance(total_trades=4, win_rate=50.0)},
        )
        row = _strategy_to_row(strategy)
        assert row.perf_total_trades == 4
        assert _row_to_strategy(row) == strategy

    def test_performance_values_cover_every_column(self):
        values = _performance_values(StrategyPerformance(net_pnl=12.0))
        assert set(values) == {
            "perf_total_trades",
            "perf_win_rate",
            "perf_profit_factor",
            "perf_avg_risk_reward",
            "perf_max_drawdown",
            "perf_net_pnl",
        }
        assert values["perf_net_pnl"] == 12.0

    def test_journal_with_joined_trade(self, make_trade, make_entry):
        trade = make_trade(10)
        entry = make_entry(Emotion.FEARFUL, trade_id=trade.trade_id, tags=["news"])
        restored = _row_to_journal(_journal_to_row(entry), _trade_to_row(trade))
        assert restored.emotion == Emotion.FEARFUL
        assert restored.tags == ["news"]
        assert restored.trade == trade

    def test_journal_without_trade(self, make_entry):
        restored = _row_to_journal(_journal_to_row(make_entry(Emotion.CALM)))
        assert restored.trade is None


class TestErrorWrapping:
    @pytest.mark.asyncio
    async def test_driver_error_becomes_store_error(self):
        session = MagicMock()
        session.execute = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("connection refused"))
        )
        session.commit = AsyncMock()
        session.rollback = AsyncMock()
        session.close = AsyncMock()
        store = SqlRecordStore(MagicMock(return_value=session))

        with pytest.raises(StoreError) as exc_info:
            await store.closed_trades(USER)
        assert isinstance(exc_info.value.__cause__, OperationalError)
        session.rollback.assert_awaited_once()
        session.close.assert_awaited_once()
