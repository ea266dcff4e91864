"""Trade journal JSON API (FastAPI).

Serves the dashboard read models and the trade / strategy / journal
mutations.  Authentication happens upstream; the resolved user id
arrives in the ``X-User-Id`` header and scopes every query.

Date windows are given as ``start`` and ``end`` query parameters, both
or neither.  Omitting both means "all time".

Usage::

    from tradelog.api import create_app
    from tradelog.storage import InMemoryRecordStore

    app = create_app(store=InMemoryRecordStore())
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TYPE_CHECKING, AsyncIterator, Optional

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tradelog.analytics import (
    EquityTrendBuilder,
    HeatmapBuilder,
    PeriodComparison,
    PsychologyEngine,
    StrategyPerformanceRollup,
    top_trade_tags,
)
from tradelog.core.clock import IClock, WallClock
from tradelog.core.config import Settings
from tradelog.core.enums import Emotion, TradeStatus
from tradelog.core.errors import (
    InvalidTradeError,
    NotFoundError,
    StoreError,
    StrategyInUseError,
    TradeLogError,
    UnauthorizedError,
)
from tradelog.core.models import (
    DateRange,
    EmotionCorrelation,
    EquityPoint,
    HeatmapCell,
    JournalEntry,
    JournalFilters,
    MetricsComparison,
    Page,
    PsychologyInsights,
    Strategy,
    StrategyPerformance,
    StrategyPerfRow,
    TagCount,
    Trade,
    TradeFilters,
    TrendPoint,
)
from tradelog.observability.logger import bind_user, new_trace_id, set_trace_id
from tradelog.services import (
    JournalChanges,
    JournalDraft,
    JournalService,
    StrategyChanges,
    StrategyDraft,
    StrategyService,
    TradeChanges,
    TradeDraft,
    TradeService,
)
from tradelog.storage.cache import IStrategyCache, TTLStrategyCache
from tradelog.storage.interfaces import IRecordStore
from tradelog.storage.redis_cache import RedisStrategyCache

if TYPE_CHECKING:
    from tradelog.storage.postgres.connection import Database

logger = logging.getLogger(__name__)

# Domain error -> HTTP status
_STATUS_CODES: dict[type[TradeLogError], int] = {
    UnauthorizedError: 401,
    NotFoundError: 404,
    StrategyInUseError: 409,
    InvalidTradeError: 422,
    StoreError: 503,
}


def _window(start: datetime | None, end: datetime | None) -> DateRange | None:
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise HTTPException(422, "start and end must be given together")
    try:
        return DateRange(start=start, end=end)
    except ValidationError as exc:
        raise HTTPException(422, "start must not be after end") from exc


def create_app(
    store: IRecordStore,
    settings: Settings | None = None,
    cache: IStrategyCache | None = None,
    clock: IClock | None = None,
    database: Database | None = None,
) -> FastAPI:
    """Create the API application around one record store.

    A Redis cache is connected on startup and closed on shutdown; *database*,
    when given, is disposed on shutdown.
    """
    settings = settings or Settings()
    clock = clock or WallClock()
    if cache is None:
        cache = TTLStrategyCache(settings.cache.strategy_ttl_seconds, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if isinstance(cache, RedisStrategyCache):
            await cache.connect()
        try:
            yield
        finally:
            if isinstance(cache, RedisStrategyCache):
                await cache.close()
            if database is not None:
                await database.dispose()

    app = FastAPI(title="Trade Journal Analytics", lifespan=lifespan)

    rollup = StrategyPerformanceRollup(store)
    app.state.store = store
    app.state.settings = settings
    app.state.comparison = PeriodComparison(store)
    app.state.series = EquityTrendBuilder(store)
    app.state.heatmap = HeatmapBuilder(store, clock=clock)
    app.state.psychology = PsychologyEngine(store)
    app.state.rollup = rollup
    app.state.trades = TradeService(store, rollup=rollup, cache=cache, clock=clock)
    app.state.strategies = StrategyService(store, cache=cache, rollup=rollup, clock=clock)
    app.state.journal = JournalService(store, clock=clock)

    page_size = settings.api.default_page_size

    # ------------------------------------------------------------------
    # Request context
    # ------------------------------------------------------------------

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id")
        if request_id:
            set_trace_id(request_id)
        else:
            new_trace_id()
        user_id = request.headers.get("X-User-Id")
        if user_id:
            bind_user(user_id)
        return await call_next(request)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    @app.get("/metrics/summary")
    async def metrics_summary(
        x_user_id: Optional[str] = Header(default=None),
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> MetricsComparison:
        return await app.state.comparison.metrics(x_user_id, _window(start, end))

    @app.get("/metrics/equity")
    async def metrics_equity(
        x_user_id: Optional[str] = Header(default=None),
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[EquityPoint]:
        return await app.state.series.equity_curve(x_user_id, _window(start, end))

    @app.get("/metrics/trend")
    async def metrics_trend(
        x_user_id: Optional[str] = Header(default=None),
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[TrendPoint]:
        return await app.state.series.monthly_trend(x_user_id, _window(start, end))

    @app.get("/metrics/heatmap")
    async def metrics_heatmap(
        x_user_id: Optional[str] = Header(default=None),
        year: Optional[int] = Query(default=None, ge=1970, le=9999),
        month: Optional[int] = Query(default=None, ge=1, le=12),
    ) -> list[HeatmapCell]:
        return await app.state.heatmap.daily_pnl(x_user_id, year, month)

    @app.get("/metrics/strategies")
    async def metrics_strategies(
        x_user_id: Optional[str] = Header(default=None),
    ) -> list[StrategyPerfRow]:
        return await app.state.rollup.performance_by_strategy(x_user_id)

    @app.get("/metrics/tags")
    async def metrics_tags(
        x_user_id: Optional[str] = Header(default=None),
        limit: int = Query(default=10, ge=1, le=100),
    ) -> list[TagCount]:
        return await top_trade_tags(store, x_user_id, limit)

    # ------------------------------------------------------------------
    # Psychology
    # ------------------------------------------------------------------

    @app.get("/psychology/insights")
    async def psychology_insights(
        x_user_id: Optional[str] = Header(default=None),
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> PsychologyInsights:
        return await app.state.psychology.insights(x_user_id, _window(start, end))

    @app.get("/psychology/emotions")
    async def psychology_emotions(
        x_user_id: Optional[str] = Header(default=None),
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> EmotionCorrelation:
        return await app.state.psychology.emotion_correlation(
            x_user_id, _window(start, end),
        )

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    @app.get("/strategies")
    async def list_strategies(
        x_user_id: Optional[str] = Header(default=None),
    ) -> list[Strategy]:
        return await app.state.strategies.list_strategies(x_user_id)

    @app.post("/strategies", status_code=201)
    async def create_strategy(
        draft: StrategyDraft, x_user_id: Optional[str] = Header(default=None),
    ) -> Strategy:
        return await app.state.strategies.create_strategy(x_user_id, draft)

    @app.patch("/strategies/{strategy_id}")
    async def update_strategy(
        strategy_id: str,
        changes: StrategyChanges,
        x_user_id: Optional[str] = Header(default=None),
    ) -> Strategy:
        return await app.state.strategies.update_strategy(x_user_id, strategy_id, changes)

    @app.delete("/strategies/{strategy_id}", status_code=204)
    async def delete_strategy(
        strategy_id: str, x_user_id: Optional[str] = Header(default=None),
    ) -> None:
        await app.state.strategies.delete_strategy(x_user_id, strategy_id)

    @app.post("/strategies/{strategy_id}/recompute")
    async def recompute_strategy(
        strategy_id: str, x_user_id: Optional[str] = Header(default=None),
    ) -> StrategyPerformance:
        return await app.state.strategies.recompute_performance(x_user_id, strategy_id)

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    @app.get("/trades")
    async def list_trades(
        x_user_id: Optional[str] = Header(default=None),
        symbol: Optional[str] = None,
        strategy_id: Optional[str] = None,
        status: Optional[TradeStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=page_size, ge=1, le=500),
    ) -> Page[Trade]:
        filters = TradeFilters(
            symbol=symbol,
            strategy_id=strategy_id,
            status=status,
            window=_window(start, end),
            page=page,
            limit=limit,
        )
        return await app.state.trades.list_trades(x_user_id, filters)

    @app.get("/trades/{trade_id}")
    async def get_trade(
        trade_id: str, x_user_id: Optional[str] = Header(default=None),
    ) -> Trade:
        return await app.state.trades.get_trade(x_user_id, trade_id)

    @app.post("/trades", status_code=201)
    async def create_trade(
        draft: TradeDraft, x_user_id: Optional[str] = Header(default=None),
    ) -> Trade:
        return await app.state.trades.create_trade(x_user_id, draft)

    @app.patch("/trades/{trade_id}")
    async def update_trade(
        trade_id: str,
        changes: TradeChanges,
        x_user_id: Optional[str] = Header(default=None),
    ) -> Trade:
        return await app.state.trades.update_trade(x_user_id, trade_id, changes)

    @app.delete("/trades/{trade_id}", status_code=204)
    async def delete_trade(
        trade_id: str, x_user_id: Optional[str] = Header(default=None),
    ) -> None:
        await app.state.trades.delete_trade(x_user_id, trade_id)

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    @app.get("/journal")
    async def list_journal(
        x_user_id: Optional[str] = Header(default=None),
        emotion: Optional[Emotion] = None,
        tags: list[str] = Query(default=[]),
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=page_size, ge=1, le=500),
    ) -> Page[JournalEntry]:
        filters = JournalFilters(
            window=_window(start, end),
            emotion=emotion,
            tags=tags,
            page=page,
            limit=limit,
        )
        return await app.state.journal.list_entries(x_user_id, filters)

    @app.post("/journal", status_code=201)
    async def create_journal_entry(
        draft: JournalDraft, x_user_id: Optional[str] = Header(default=None),
    ) -> JournalEntry:
        return await app.state.journal.create_entry(x_user_id, draft)

    @app.patch("/journal/{entry_id}")
    async def update_journal_entry(
        entry_id: str,
        changes: JournalChanges,
        x_user_id: Optional[str] = Header(default=None),
    ) -> JournalEntry:
        return await app.state.journal.update_entry(x_user_id, entry_id, changes)

    @app.delete("/journal/{entry_id}", status_code=204)
    async def delete_journal_entry(
        entry_id: str, x_user_id: Optional[str] = Header(default=None),
    ) -> None:
        await app.state.journal.delete_entry(x_user_id, entry_id)

    # ------------------------------------------------------------------
    # Health endpoint
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    @app.exception_handler(TradeLogError)
    async def domain_error_handler(request: Request, exc: TradeLogError) -> JSONResponse:
        status = next(
            (code for kind, code in _STATUS_CODES.items() if isinstance(exc, kind)),
            500,
        )
        if status >= 500:
            logger.error("%s failed: %s", request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=status)

    return app
