"""Test strategy performance recompute and the live per-strategy view."""

from datetime import datetime, timedelta, timezone

import pytest

from tradelog.analytics.rollup import (
    UNKNOWN_STRATEGY,
    StrategyPerformanceRollup,
    avg_risk_reward,
    compute_performance,
)
from tradelog.core.enums import TradeSide
from tradelog.core.errors import NotFoundError
from tradelog.core.models import StrategyPerformance

USER = "user-1"
T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


class TestAvgRiskReward:
    def test_losing_trade_excluded(self, make_trade):
        # Entry 1000, stop 990 -> risk 10; exit 995 is a loss
        loser = make_trade(-5, stop_loss="990")
        assert avg_risk_reward([loser]) == 0.0

    def test_winning_trade_multiple(self, make_trade):
        winner = make_trade(30, stop_loss="990")
        assert avg_risk_reward([winner]) == 3.0

    def test_mixed_averages_winners_only(self, make_trade):
        trades = [
            make_trade(30, stop_loss="990"),
            make_trade(10, stop_loss="990"),
            make_trade(-10, stop_loss="990"),
        ]
        assert avg_risk_reward(trades) == 2.0

    def test_short_side(self, make_trade):
        # Short from 1000 with stop 1010 closed at 980
        winner = make_trade(20, side=TradeSide.SHORT, stop_loss="1010")
        assert avg_risk_reward([winner]) == 2.0

    def test_zero_risk_skipped(self, make_trade):
        assert avg_risk_reward([make_trade(30, stop_loss="1000")]) == 0.0

    def test_break_even_excluded(self, make_trade):
        assert avg_risk_reward([make_trade(0)]) == 0.0


class TestComputePerformance:
    def test_no_trades_is_zero_snapshot(self):
        assert compute_performance([]) == StrategyPerformance.zero()

    def test_snapshot_fields(self, make_trade):
        trades = [
            make_trade(pnl, exit_date=T0 + timedelta(days=i))
            for i, pnl in enumerate([100, -40, 60, -20])
        ]
        perf = compute_performance(trades)
        assert perf.total_trades == 4
        assert perf.win_rate == 50.0
        assert perf.net_pnl == 100.0
        assert perf.max_drawdown == 40.0
        assert perf.profit_factor == pytest.approx(160 / 60)
        # Winners only: 100/10 and 60/10
        assert perf.avg_risk_reward == 8.0


class TestStrategyPerformanceRollup:
    @pytest.mark.asyncio
    async def test_recompute_persists_snapshot(self, store, make_strategy, make_trade):
        await store.add_strategy(make_strategy())
        await store.add_trade(make_trade(50, strategy_id="strat-1"))
        await store.add_trade(make_trade(-10, strategy_id="strat-1", exit_date=T0))

        perf = await StrategyPerformanceRollup(store).recompute(USER, "strat-1")
        stored = await store.get_strategy(USER, "strat-1")
        assert stored.performance == perf
        assert perf.total_trades == 2
        assert perf.net_pnl == 40.0

    @pytest.mark.asyncio
    async def test_recompute_is_idempotent(self, store, make_strategy, make_trade):
        await store.add_strategy(make_strategy())
        await store.add_trade(make_trade(50))
        rollup = StrategyPerformanceRollup(store)
        first = await rollup.recompute(USER, "strat-1")
        second = await rollup.recompute(USER, "strat-1")
        assert first == second

    @pytest.mark.asyncio
    async def test_last_trade_gone_resets_to_zero(self, store, make_strategy, make_trade):
        await store.add_strategy(make_strategy())
        trade = await store.add_trade(make_trade(50))
        rollup = StrategyPerformanceRollup(store)
        await rollup.recompute(USER, "strat-1")

        await store.delete_trade(USER, trade.trade_id)
        perf = await rollup.recompute(USER, "strat-1")
        assert perf == StrategyPerformance.zero()
        assert (await store.get_strategy(USER, "strat-1")).performance.total_trades == 0

    @pytest.mark.asyncio
    async def test_open_trades_ignored(self, store, make_strategy, make_trade):
        await store.add_strategy(make_strategy())
        await store.add_trade(make_trade())
        perf = await StrategyPerformanceRollup(store).recompute(USER, "strat-1")
        assert perf.total_trades == 0

    @pytest.mark.asyncio
    async def test_missing_strategy(self, store):
        with pytest.raises(NotFoundError):
            await StrategyPerformanceRollup(store).recompute(USER, "nope")

    @pytest.mark.asyncio
    async def test_other_users_strategy_not_found(self, store, make_strategy):
        await store.add_strategy(make_strategy(user_id="user-2"))
        with pytest.raises(NotFoundError):
            await StrategyPerformanceRollup(store).recompute(USER, "strat-1")


class TestPerformanceByStrategy:
    @pytest.mark.asyncio
    async def test_rows_sorted_by_net_pnl(self, store, make_strategy, make_trade):
        await store.add_strategy(make_strategy("a", "Alpha"))
        await store.add_strategy(make_strategy("b", "Beta"))
        await store.add_trade(make_trade(10, strategy_id="a"))
        await store.add_trade(make_trade(90, strategy_id="b"))
        await store.add_trade(make_trade(-30, strategy_id="b", exit_date=T0))

        rows = await StrategyPerformanceRollup(store).performance_by_strategy(USER)
        assert [r.name for r in rows] == ["Beta", "Alpha"]
        assert rows[0].net_pnl == 60.0
        assert rows[0].total_trades == 2

    @pytest.mark.asyncio
    async def test_unknown_strategy_label(self, store, make_trade):
        await store.add_trade(make_trade(10, strategy_id="gone"))
        rows = await StrategyPerformanceRollup(store).performance_by_strategy(USER)
        assert rows[0].name == UNKNOWN_STRATEGY

    @pytest.mark.asyncio
    async def test_matches_cached_snapshot(self, store, make_strategy, make_trade):
        await store.add_strategy(make_strategy())
        for i, pnl in enumerate([20, -5, 15]):
            await store.add_trade(make_trade(pnl, exit_date=T0 + timedelta(days=i)))
        rollup = StrategyPerformanceRollup(store)
        snapshot = await rollup.recompute(USER, "strat-1")
        (row,) = await rollup.performance_by_strategy(USER)
        assert row.net_pnl == snapshot.net_pnl
        assert row.max_drawdown == snapshot.max_drawdown
        assert row.avg_risk_reward == snapshot.avg_risk_reward
