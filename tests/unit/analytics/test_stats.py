"""Test the statistics primitives and per-trade P/L derivation."""

from decimal import Decimal

import pytest

from tradelog.analytics.stats import (
    average,
    max_drawdown,
    percentage_change,
    pnl_percentage,
    profit_factor,
    realized_pnl,
    split_gross,
    win_rate,
)
from tradelog.core.enums import TradeSide


class TestMaxDrawdown:
    def test_empty_series(self):
        assert max_drawdown([]) == 0.0

    def test_only_gains(self):
        assert max_drawdown([10.0, 20.0, 5.0]) == 0.0

    def test_drop_below_peak(self):
        # Peak 100 after +100, trough 60 after -40
        assert max_drawdown([100.0, -40.0, 60.0, -20.0]) == 40.0

    def test_opening_losses_draw_down_from_zero(self):
        assert max_drawdown([-30.0, -20.0, 10.0]) == 50.0

    def test_order_matters(self):
        assert max_drawdown([50.0, -50.0]) == 50.0
        assert max_drawdown([-50.0, 50.0]) == 50.0
        assert max_drawdown([50.0, -20.0, -30.0, 100.0]) == 50.0
        assert max_drawdown([100.0, 50.0, -20.0, -30.0]) == 50.0
        assert max_drawdown([-20.0, 100.0, -30.0]) == 30.0

    def test_recovery_keeps_worst(self):
        assert max_drawdown([10.0, -60.0, 200.0, -30.0]) == 60.0


class TestProfitFactor:
    def test_ratio(self):
        assert profit_factor(160.0, 60.0) == pytest.approx(2.6667, rel=1e-3)

    def test_no_losses_returns_gross_profit(self):
        assert profit_factor(250.0, 0.0) == 250.0

    def test_nothing_at_all(self):
        assert profit_factor(0.0, 0.0) == 0.0


class TestPercentageChange:
    def test_no_previous_period(self):
        assert percentage_change(42.0, None) == 0.0

    def test_previous_zero_current_zero(self):
        assert percentage_change(0.0, 0.0) == 0.0

    def test_previous_zero_current_nonzero(self):
        assert percentage_change(-15.0, 0.0) == 100.0
        assert percentage_change(15.0, 0.0) == 100.0

    def test_increase(self):
        assert percentage_change(150.0, 100.0) == 50.0

    def test_negative_previous_uses_magnitude(self):
        # From -100 to -50 is an improvement
        assert percentage_change(-50.0, -100.0) == 50.0


class TestWinRateAndAverage:
    def test_win_rate(self):
        assert win_rate(2, 4) == 50.0

    def test_win_rate_no_trades(self):
        assert win_rate(0, 0) == 0.0

    def test_average_empty(self):
        assert average([]) == 0.0

    def test_average(self):
        assert average([1.0, 2.0, 6.0]) == 3.0


class TestSplitGross:
    def test_break_even_is_neither(self):
        assert split_gross([100.0, 0.0, -40.0, 60.0, -20.0]) == (160.0, 60.0)


class TestRealizedPnl:
    def test_long(self):
        pnl = realized_pnl(TradeSide.LONG, Decimal("100"), Decimal("110"), Decimal("5"))
        assert pnl == Decimal("50")

    def test_short(self):
        pnl = realized_pnl(TradeSide.SHORT, Decimal("100"), Decimal("110"), Decimal("5"))
        assert pnl == Decimal("-50")

    def test_fees_subtracted(self):
        pnl = realized_pnl(
            TradeSide.LONG, Decimal("100"), Decimal("110"), Decimal("5"), Decimal("2.5"),
        )
        assert pnl == Decimal("47.5")

    def test_percentage_of_cost_basis(self):
        assert pnl_percentage(Decimal("50"), Decimal("100"), Decimal("5")) == 10.0

    def test_percentage_without_cost_basis(self):
        assert pnl_percentage(Decimal("50"), Decimal("0"), Decimal("5")) == 0.0
