"""Test TradeMetricsAggregator summary metrics."""

from datetime import datetime, timedelta, timezone

import pytest

from tradelog.analytics.metrics import TradeMetricsAggregator, chronological, summarize
from tradelog.core.errors import UnauthorizedError
from tradelog.core.models import DateRange

USER = "user-1"
T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


class TestSummarize:
    def test_empty(self):
        summary = summarize([])
        assert summary.total_trades == 0
        assert summary.total_pnl == 0.0
        assert summary.avg_profit == 0.0
        assert summary.win_rate == 0.0
        assert summary.profit_factor == 0.0
        assert summary.max_drawdown == 0.0

    def test_example_sequence(self, make_trade):
        trades = [
            make_trade(pnl, exit_date=T0 + timedelta(days=i))
            for i, pnl in enumerate([100, -40, 60, -20])
        ]
        summary = summarize(trades)
        assert summary.total_pnl == 100.0
        assert summary.total_trades == 4
        assert summary.win_rate == 50.0
        assert summary.profit_factor == pytest.approx(160 / 60)
        assert summary.avg_profit == 25.0
        assert summary.max_drawdown == 40.0

    def test_break_even_counts_toward_total_only(self, make_trade):
        trades = [
            make_trade(0, exit_date=T0),
            make_trade(50, exit_date=T0 + timedelta(days=1)),
        ]
        summary = summarize(trades)
        assert summary.total_trades == 2
        assert summary.win_rate == 50.0
        assert summary.profit_factor == 50.0

    def test_drawdown_uses_exit_order_not_input_order(self, make_trade):
        late_win = make_trade(100, exit_date=T0 + timedelta(days=2))
        early_loss = make_trade(-50, exit_date=T0)
        # Exit order is -50, +100: drawdown from the zero start
        assert summarize([late_win, early_loss]).max_drawdown == 50.0


class TestChronological:
    def test_undated_sorts_first(self, make_trade):
        dated = make_trade(10, exit_date=T0)
        undated = make_trade().model_copy(update={"exit_date": None})
        assert chronological([dated, undated])[0] is undated


class TestTradeMetricsAggregator:
    @pytest.mark.asyncio
    async def test_window_is_inclusive(self, store, make_trade):
        for day, pnl in ((1, 10), (5, 20), (10, 40)):
            await store.add_trade(make_trade(pnl, exit_date=T0 + timedelta(days=day)))

        window = DateRange(start=T0 + timedelta(days=1), end=T0 + timedelta(days=5))
        summary = await TradeMetricsAggregator(store).summary(USER, window)
        assert summary.total_trades == 2
        assert summary.total_pnl == 30.0

    @pytest.mark.asyncio
    async def test_open_trades_ignored(self, store, make_trade):
        await store.add_trade(make_trade())
        await store.add_trade(make_trade(25, exit_date=T0))
        summary = await TradeMetricsAggregator(store).summary(USER)
        assert summary.total_trades == 1

    @pytest.mark.asyncio
    async def test_scoped_to_user(self, store, make_trade):
        await store.add_trade(make_trade(25, exit_date=T0, user_id="someone-else"))
        summary = await TradeMetricsAggregator(store).summary(USER)
        assert summary.total_trades == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [None, "", "   "])
    async def test_missing_user_rejected(self, store, user_id):
        with pytest.raises(UnauthorizedError):
            await TradeMetricsAggregator(store).summary(user_id)
