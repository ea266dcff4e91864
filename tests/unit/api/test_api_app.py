"""Test the JSON API: routing, user scoping and error mapping."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from tradelog.api import create_app
from tradelog.core.config import Settings

HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture
def client(store, sim_clock):
    return TestClient(create_app(store=store, settings=Settings(), clock=sim_clock))


def _create_strategy(client) -> str:
    resp = client.post(
        "/strategies", json={"name": "Breakout", "asset_class": "equity"}, headers=HEADERS,
    )
    assert resp.status_code == 201
    return resp.json()["strategy_id"]


def _create_trade(client, strategy_id: str, exit_price: str | None = "110", **extra) -> dict:
    body = {
        "symbol": "AAPL",
        "side": "long",
        "strategy_id": strategy_id,
        "entry_price": "100",
        "stop_loss": "95",
        "quantity": "2",
        "entry_date": "2024-06-01T09:30:00Z",
        **extra,
    }
    if exit_price is not None:
        body.update(exit_price=exit_price, exit_date="2024-06-01T15:00:00Z")
    resp = client.post("/trades", json=body, headers=HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealthAndAuth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_shutdown_disposes_database(self, store, sim_clock):
        database = AsyncMock()
        app = create_app(store=store, settings=Settings(), clock=sim_clock, database=database)
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            database.dispose.assert_not_awaited()
        database.dispose.assert_awaited_once()

    def test_missing_user_is_401(self, client):
        assert client.get("/metrics/summary").status_code == 401


class TestMetricsEndpoints:
    def test_summary_and_series(self, client):
        strategy_id = _create_strategy(client)
        _create_trade(client, strategy_id)
        _create_trade(client, strategy_id, exit_price="90")

        summary = client.get("/metrics/summary", headers=HEADERS).json()
        assert summary["total_trades"] == 2
        assert summary["total_pnl"] == 0.0
        assert summary["win_rate"] == 50.0
        assert summary["total_pnl_change"] == 0.0

        equity = client.get("/metrics/equity", headers=HEADERS).json()
        assert len(equity) == 2

        trend = client.get("/metrics/trend", headers=HEADERS).json()
        assert [p["period_label"] for p in trend] == ["2024-06"]

    def test_window_needs_both_bounds(self, client):
        resp = client.get(
            "/metrics/summary", params={"start": "2024-06-01T00:00:00Z"}, headers=HEADERS,
        )
        assert resp.status_code == 422

    def test_reversed_window(self, client):
        resp = client.get(
            "/metrics/equity",
            params={"start": "2024-06-02T00:00:00Z", "end": "2024-06-01T00:00:00Z"},
            headers=HEADERS,
        )
        assert resp.status_code == 422

    def test_windowed_summary_has_previous_window(self, client):
        resp = client.get(
            "/metrics/summary",
            params={"start": "2024-06-01T00:00:00Z", "end": "2024-06-30T23:59:59Z"},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        assert resp.json()["previous_window"] is not None

    def test_heatmap_defaults_to_clock_month(self, client):
        strategy_id = _create_strategy(client)
        _create_trade(client, strategy_id)
        cells = client.get("/metrics/heatmap", headers=HEADERS).json()
        assert cells == [{"day": 1, "date": "2024-06-01", "value": 20.0, "count": 1}]

    def test_naive_trade_dates_stay_queryable(self, client):
        strategy_id = _create_strategy(client)
        body = {
            "symbol": "AAPL",
            "side": "long",
            "strategy_id": strategy_id,
            "entry_price": "100",
            "stop_loss": "95",
            "quantity": "1",
            "entry_date": "2024-03-02T08:00:00",
            "exit_price": "105",
            "exit_date": "2024-03-02T09:00:00",
        }
        assert client.post("/trades", json=body, headers=HEADERS).status_code == 201

        heatmap = client.get(
            "/metrics/heatmap", params={"year": 2024, "month": 3}, headers=HEADERS,
        )
        assert heatmap.status_code == 200
        assert heatmap.json() == [{"day": 2, "date": "2024-03-02", "value": 5.0, "count": 1}]

        summary = client.get(
            "/metrics/summary",
            params={"start": "2024-03-01T00:00:00Z", "end": "2024-03-31T23:59:59Z"},
            headers=HEADERS,
        )
        assert summary.status_code == 200
        assert summary.json()["total_trades"] == 1

    def test_heatmap_month_validated(self, client):
        resp = client.get("/metrics/heatmap", params={"month": 13}, headers=HEADERS)
        assert resp.status_code == 422

    def test_strategies_and_tags(self, client):
        strategy_id = _create_strategy(client)
        _create_trade(client, strategy_id, tags=["gap"])
        rows = client.get("/metrics/strategies", headers=HEADERS).json()
        assert rows[0]["name"] == "Breakout"
        assert rows[0]["net_pnl"] == 20.0

        tags = client.get("/metrics/tags", headers=HEADERS).json()
        assert tags == [{"tag": "gap", "count": 1}]


class TestStrategyEndpoints:
    def test_snapshot_follows_trades(self, client):
        strategy_id = _create_strategy(client)
        trade = _create_trade(client, strategy_id)

        (listed,) = client.get("/strategies", headers=HEADERS).json()
        assert listed["performance"]["total_trades"] == 1

        client.delete(f"/trades/{trade['trade_id']}", headers=HEADERS)
        (listed,) = client.get("/strategies", headers=HEADERS).json()
        assert listed["performance"]["total_trades"] == 0

    def test_delete_in_use_is_409(self, client):
        strategy_id = _create_strategy(client)
        _create_trade(client, strategy_id, exit_price=None)
        resp = client.delete(f"/strategies/{strategy_id}", headers=HEADERS)
        assert resp.status_code == 409

    def test_recompute(self, client):
        strategy_id = _create_strategy(client)
        _create_trade(client, strategy_id)
        resp = client.post(f"/strategies/{strategy_id}/recompute", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["net_pnl"] == 20.0

    def test_recompute_unknown_is_404(self, client):
        resp = client.post("/strategies/nope/recompute", headers=HEADERS)
        assert resp.status_code == 404


class TestTradeEndpoints:
    def test_reopen_is_422(self, client):
        strategy_id = _create_strategy(client)
        trade = _create_trade(client, strategy_id)
        resp = client.patch(
            f"/trades/{trade['trade_id']}", json={"status": "open"}, headers=HEADERS,
        )
        assert resp.status_code == 422

    def test_list_paginated(self, client):
        strategy_id = _create_strategy(client)
        for _ in range(3):
            _create_trade(client, strategy_id, exit_price=None)
        page = client.get("/trades", params={"limit": 2}, headers=HEADERS).json()
        assert page["total"] == 3
        assert len(page["items"]) == 2

    def test_other_users_trade_is_404(self, client):
        strategy_id = _create_strategy(client)
        trade = _create_trade(client, strategy_id)
        resp = client.get(f"/trades/{trade['trade_id']}", headers={"X-User-Id": "user-2"})
        assert resp.status_code == 404


class TestPsychologyEndpoints:
    def test_emotions_fall_back_to_trade_moods(self, client):
        strategy_id = _create_strategy(client)
        _create_trade(client, strategy_id, emotion="calm")
        body = client.get("/psychology/emotions", headers=HEADERS).json()
        assert body["source"] == "trade_tags"
        assert body["rows"][0]["emotion"] == "calm"

    def test_journal_drives_insights(self, client):
        resp = client.post(
            "/journal",
            json={
                "date": datetime(2024, 6, 1, tzinfo=timezone.utc).isoformat(),
                "emotion": "disciplined",
                "entry": "Followed every rule",
                "tags": ["process"],
            },
            headers=HEADERS,
        )
        assert resp.status_code == 201
        assert resp.json()["stress_level"] == 5

        insights = client.get("/psychology/insights", headers=HEADERS).json()
        assert insights["source"] == "journal"
        assert insights["dominant_mood"] == "disciplined"
        assert insights["mindset_score"] == 100.0
        assert insights["top_tags"] == ["process"]
