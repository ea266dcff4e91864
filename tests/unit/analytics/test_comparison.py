"""Test period comparison against the preceding equal-length window."""

from datetime import datetime, timedelta, timezone

import pytest

from tradelog.analytics.comparison import PERIOD_GAP, PeriodComparison, previous_window
from tradelog.core.models import DateRange

USER = "user-1"


class TestPreviousWindow:
    def test_equal_length_and_adjacent(self):
        window = DateRange(
            start=datetime(2024, 2, 1, tzinfo=timezone.utc),
            end=datetime(2024, 2, 29, tzinfo=timezone.utc),
        )
        prior = previous_window(window)
        assert prior.end == window.start - PERIOD_GAP
        assert prior.end - prior.start == window.end - window.start
        assert prior.end < window.start


class TestPeriodComparison:
    @pytest.mark.asyncio
    async def test_all_time_reports_zero_deltas(self, store, make_trade):
        await store.add_trade(make_trade(100))
        result = await PeriodComparison(store).metrics(USER)
        assert result.total_pnl == 100.0
        assert result.previous_window is None
        assert result.total_pnl_change == 0.0
        assert result.win_rate_change == 0.0
        assert result.total_trades_change == 0.0
        assert result.profit_factor_change == 0.0

    @pytest.mark.asyncio
    async def test_changes_against_previous_window(self, store, make_trade):
        start = datetime(2024, 3, 11, tzinfo=timezone.utc)
        window = DateRange(start=start, end=start + timedelta(days=9))

        # Previous window: one +50 trade; current window: +75 and -25
        await store.add_trade(make_trade(50, exit_date=start - timedelta(days=3)))
        await store.add_trade(make_trade(75, exit_date=start + timedelta(days=1)))
        await store.add_trade(make_trade(-25, exit_date=start + timedelta(days=2)))

        result = await PeriodComparison(store).metrics(USER, window)
        assert result.total_pnl == 50.0
        assert result.total_pnl_change == 0.0
        assert result.total_trades == 2
        assert result.total_trades_change == 100.0
        assert result.win_rate == 50.0
        assert result.win_rate_change == -50.0
        assert result.previous_window == previous_window(window)

    @pytest.mark.asyncio
    async def test_empty_previous_window(self, store, make_trade):
        start = datetime(2024, 3, 11, tzinfo=timezone.utc)
        window = DateRange(start=start, end=start + timedelta(days=1))
        await store.add_trade(make_trade(10, exit_date=start))

        result = await PeriodComparison(store).metrics(USER, window)
        assert result.total_pnl_change == 100.0
        assert result.max_drawdown_change == 0.0
