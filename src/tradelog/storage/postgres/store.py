"""PostgreSQL implementation of the record store.

Each public method opens one session from the injected factory, runs its
statements in a single transaction, and converts rows back to the core
domain models (:mod:`tradelog.core.models`).  Driver and SQL failures are
re-raised as :class:`StoreError` with the original chained; nothing is
retried here.

Usage::

    database = Database(settings.database)
    store = SqlRecordStore(database.session_factory)
    trades = await store.closed_trades(user_id, window=window)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.dialects.postgresql import array

from tradelog.core.enums import (
    AssetClass,
    Emotion,
    StrategyStatus,
    TradeMood,
    TradeSide,
    TradeStatus,
)
from tradelog.core.errors import NotFoundError, StoreError
from tradelog.core.models import (
    DateRange,
    JournalEntry,
    Page,
    Strategy,
    StrategyPerformance,
    Trade,
    TradeFilters,
)

from .models import JournalEntryRow, StrategyRow, TradeRow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def _trade_to_row(trade: Trade) -> TradeRow:
    """Convert a core :class:`Trade` to an ORM :class:`TradeRow`."""
    return TradeRow(
        trade_id=trade.trade_id,
        user_id=trade.user_id,
        symbol=trade.symbol,
        side=trade.side.value,
        strategy_id=trade.strategy_id,
        entry_price=trade.entry_price,
        exit_price=trade.exit_price,
        stop_loss=trade.stop_loss,
        target=trade.target,
        quantity=trade.quantity,
        fees=trade.fees,
        pnl=trade.pnl,
        pnl_percentage=trade.pnl_percentage,
        status=trade.status.value,
        entry_date=trade.entry_date,
        exit_date=trade.exit_date,
        tags=list(trade.tags),
        notes=trade.notes,
        emotion=trade.emotion.value if trade.emotion else None,
        screenshots=list(trade.screenshots),
        created_at=trade.created_at,
        updated_at=trade.updated_at,
    )


def _row_to_trade(row: TradeRow) -> Trade:
    """Convert an ORM :class:`TradeRow` back to a core :class:`Trade`."""
    return Trade(
        trade_id=row.trade_id,
        user_id=row.user_id,
        symbol=row.symbol,
        side=TradeSide(row.side),
        strategy_id=row.strategy_id,
        entry_price=row.entry_price,
        exit_price=row.exit_price,
        stop_loss=row.stop_loss,
        target=row.target,
        quantity=row.quantity,
        fees=row.fees if row.fees is not None else 0,
        pnl=row.pnl,
        pnl_percentage=row.pnl_percentage,
        status=TradeStatus(row.status),
        entry_date=row.entry_date,
        exit_date=row.exit_date,
        tags=row.tags or [],
        notes=row.notes or "",
        emotion=TradeMood(row.emotion) if row.emotion else None,
        screenshots=row.screenshots or [],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _strategy_to_row(strategy: Strategy) -> StrategyRow:
    """Convert a core :class:`Strategy` to an ORM :class:`StrategyRow`."""
    perf = strategy.performance
    return StrategyRow(
        strategy_id=strategy.strategy_id,
        user_id=strategy.user_id,
        name=strategy.name,
        asset_class=strategy.asset_class.value,
        description=strategy.description,
        rules=strategy.rules,
        target_win_rate=strategy.target_win_rate,
        min_risk_reward=strategy.min_risk_reward,
        status=strategy.status.value,
        perf_total_trades=perf.total_trades,
        perf_win_rate=perf.win_rate,
        perf_profit_factor=perf.profit_factor,
        perf_avg_risk_reward=perf.avg_risk_reward,
        perf_max_drawdown=perf.max_drawdown,
        perf_net_pnl=perf.net_pnl,
        created_at=strategy.created_at,
        updated_at=strategy.updated_at,
    )


def _row_to_strategy(row: StrategyRow) -> Strategy:
    """Convert an ORM :class:`StrategyRow` back to a core :class:`Strategy`."""
    return Strategy(
        strategy_id=row.strategy_id,
        user_id=row.user_id,
        name=row.name,
        asset_class=AssetClass(row.asset_class),
        description=row.description or "",
        rules=row.rules or "",
        target_win_rate=row.target_win_rate,
        min_risk_reward=row.min_risk_reward,
        status=StrategyStatus(row.status),
        performance=StrategyPerformance(
            total_trades=row.perf_total_trades or 0,
            win_rate=row.perf_win_rate or 0.0,
            profit_factor=row.perf_profit_factor or 0.0,
            avg_risk_reward=row.perf_avg_risk_reward or 0.0,
            max_drawdown=row.perf_max_drawdown or 0.0,
            net_pnl=row.perf_net_pnl or 0.0,
        ),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _performance_values(performance: StrategyPerformance) -> dict[str, float | int]:
    """Column values for a full snapshot replacement."""
    return {
        "perf_total_trades": performance.total_trades,
        "perf_win_rate": performance.win_rate,
        "perf_profit_factor": performance.profit_factor,
        "perf_avg_risk_reward": performance.avg_risk_reward,
        "perf_max_drawdown": performance.max_drawdown,
        "perf_net_pnl": performance.net_pnl,
    }


def _journal_to_row(entry: JournalEntry) -> JournalEntryRow:
    """Convert a core :class:`JournalEntry` to an ORM :class:`JournalEntryRow`."""
    return JournalEntryRow(
        entry_id=entry.entry_id,
        user_id=entry.user_id,
        trade_id=entry.trade_id,
        date=entry.date,
        emotion=entry.emotion.value,
        stress_level=entry.stress_level,
        profitability=entry.profitability,
        entry=entry.entry,
        tags=list(entry.tags),
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _row_to_journal(row: JournalEntryRow, trade_row: TradeRow | None = None) -> JournalEntry:
    """Convert an ORM :class:`JournalEntryRow` (and joined trade) to a core entry."""
    return JournalEntry(
        entry_id=row.entry_id,
        user_id=row.user_id,
        trade_id=row.trade_id,
        date=row.date,
        emotion=Emotion(row.emotion),
        stress_level=row.stress_level,
        profitability=row.profitability,
        entry=row.entry,
        tags=row.tags or [],
        trade=_row_to_trade(trade_row) if trade_row is not None else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# SqlRecordStore
# ---------------------------------------------------------------------------

class SqlRecordStore:
    """Async SQLAlchemy implementation of :class:`IRecordStore`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise StoreError(f"Record store query failed: {exc}") from exc
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # -- trades --------------------------------------------------------------

    async def closed_trades(
        self,
        user_id: str,
        *,
        window: DateRange | None = None,
        strategy_id: str | None = None,
    ) -> list[Trade]:
        stmt = select(TradeRow).where(
            TradeRow.user_id == user_id,
            TradeRow.status == TradeStatus.CLOSED.value,
        )
        if window is not None:
            stmt = stmt.where(TradeRow.exit_date.between(window.start, window.end))
        if strategy_id is not None:
            stmt = stmt.where(TradeRow.strategy_id == strategy_id)
        stmt = stmt.order_by(
            TradeRow.exit_date.asc().nulls_first(), TradeRow.created_at.asc(),
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_row_to_trade(r) for r in result.scalars().all()]

    async def trades_entered(
        self, user_id: str, *, entry_window: DateRange | None = None,
    ) -> list[Trade]:
        stmt = select(TradeRow).where(TradeRow.user_id == user_id)
        if entry_window is not None:
            stmt = stmt.where(
                TradeRow.entry_date.between(entry_window.start, entry_window.end)
            )
        stmt = stmt.order_by(TradeRow.entry_date.asc())
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_row_to_trade(r) for r in result.scalars().all()]

    async def trade_tag_lists(self, user_id: str) -> list[list[str]]:
        stmt = select(TradeRow.tags).where(TradeRow.user_id == user_id)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [list(tags or []) for tags in result.scalars().all()]

    async def list_trades(self, user_id: str, filters: TradeFilters) -> Page[Trade]:
        stmt = select(TradeRow).where(TradeRow.user_id == user_id)
        if filters.symbol:
            stmt = stmt.where(TradeRow.symbol.ilike(f"%{filters.symbol}%"))
        if filters.strategy_id:
            stmt = stmt.where(TradeRow.strategy_id == filters.strategy_id)
        if filters.status is not None:
            stmt = stmt.where(TradeRow.status == filters.status.value)
        if filters.window is not None:
            stmt = stmt.where(
                TradeRow.entry_date.between(filters.window.start, filters.window.end)
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        page_stmt = (
            stmt.order_by(TradeRow.entry_date.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        async with self._session() as session:
            total = (await session.execute(count_stmt)).scalar_one()
            rows = (await session.execute(page_stmt)).scalars().all()
        return Page[Trade](
            items=[_row_to_trade(r) for r in rows],
            total=total,
            page=filters.page,
            limit=filters.limit,
        )

    async def add_trade(self, trade: Trade) -> Trade:
        async with self._session() as session:
            session.add(_trade_to_row(trade))
            await session.flush()
        logger.debug("Inserted trade %s", trade.trade_id)
        return trade

    async def get_trade(self, user_id: str, trade_id: str) -> Trade | None:
        stmt = select(TradeRow).where(
            TradeRow.trade_id == trade_id, TradeRow.user_id == user_id,
        )
        async with self._session() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _row_to_trade(row) if row is not None else None

    async def save_trade(self, trade: Trade) -> Trade:
        stmt = select(TradeRow).where(
            TradeRow.trade_id == trade.trade_id, TradeRow.user_id == trade.user_id,
        )
        async with self._session() as session:
            existing = (await session.execute(stmt)).scalar_one_or_none()
            if existing is None:
                raise NotFoundError("Trade", trade.trade_id)
            await session.merge(_trade_to_row(trade))
            await session.flush()
        logger.debug("Updated trade %s -> status=%s", trade.trade_id, trade.status.value)
        return trade

    async def delete_trade(self, user_id: str, trade_id: str) -> Trade | None:
        stmt = select(TradeRow).where(
            TradeRow.trade_id == trade_id, TradeRow.user_id == user_id,
        )
        async with self._session() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                return None
            trade = _row_to_trade(row)
            await session.delete(row)
            await session.flush()
        logger.debug("Deleted trade %s", trade_id)
        return trade

    async def count_strategy_trades(self, user_id: str, strategy_id: str) -> int:
        stmt = select(func.count()).select_from(TradeRow).where(
            TradeRow.user_id == user_id, TradeRow.strategy_id == strategy_id,
        )
        async with self._session() as session:
            return (await session.execute(stmt)).scalar_one()

    # -- strategies ----------------------------------------------------------

    async def add_strategy(self, strategy: Strategy) -> Strategy:
        async with self._session() as session:
            session.add(_strategy_to_row(strategy))
            await session.flush()
        return strategy

    async def get_strategy(self, user_id: str, strategy_id: str) -> Strategy | None:
        stmt = select(StrategyRow).where(
            StrategyRow.strategy_id == strategy_id, StrategyRow.user_id == user_id,
        )
        async with self._session() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _row_to_strategy(row) if row is not None else None

    async def save_strategy(self, strategy: Strategy) -> Strategy:
        stmt = (
            update(StrategyRow)
            .where(
                StrategyRow.strategy_id == strategy.strategy_id,
                StrategyRow.user_id == strategy.user_id,
            )
            .values(
                name=strategy.name,
                asset_class=strategy.asset_class.value,
                description=strategy.description,
                rules=strategy.rules,
                target_win_rate=strategy.target_win_rate,
                min_risk_reward=strategy.min_risk_reward,
                status=strategy.status.value,
                updated_at=strategy.updated_at,
            )
            .returning(StrategyRow)
        )
        async with self._session() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                raise NotFoundError("Strategy", strategy.strategy_id)
            return _row_to_strategy(row)

    async def delete_strategy(self, user_id: str, strategy_id: str) -> bool:
        stmt = delete(StrategyRow).where(
            StrategyRow.strategy_id == strategy_id, StrategyRow.user_id == user_id,
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.rowcount > 0

    async def list_strategies(self, user_id: str) -> list[Strategy]:
        stmt = (
            select(StrategyRow)
            .where(StrategyRow.user_id == user_id)
            .order_by(StrategyRow.created_at.desc())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_row_to_strategy(r) for r in result.scalars().all()]

    async def save_strategy_performance(
        self,
        user_id: str,
        strategy_id: str,
        performance: StrategyPerformance,
    ) -> None:
        # One UPDATE rewrites all six columns, so readers never see a mix
        stmt = (
            update(StrategyRow)
            .where(
                StrategyRow.strategy_id == strategy_id,
                StrategyRow.user_id == user_id,
            )
            .values(**_performance_values(performance))
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError("Strategy", strategy_id)
        logger.debug("Replaced performance snapshot for strategy %s", strategy_id)

    # -- journal -------------------------------------------------------------

    @staticmethod
    def _journal_conditions(
        user_id: str,
        window: DateRange | None,
        emotion: Emotion | None,
        tags: list[str] | None,
    ) -> list:
        conditions = [JournalEntryRow.user_id == user_id]
        if window is not None:
            conditions.append(JournalEntryRow.date.between(window.start, window.end))
        if emotion is not None:
            conditions.append(JournalEntryRow.emotion == emotion.value)
        if tags:
            conditions.append(JournalEntryRow.tags.has_any(array(tags)))
        return conditions

    async def journal_entries(
        self,
        user_id: str,
        *,
        window: DateRange | None = None,
        emotion: Emotion | None = None,
        tags: list[str] | None = None,
        linked_only: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[JournalEntry]:
        join_on = and_(
            TradeRow.trade_id == JournalEntryRow.trade_id,
            TradeRow.user_id == JournalEntryRow.user_id,
        )
        stmt = select(JournalEntryRow, TradeRow)
        if linked_only:
            stmt = stmt.join(TradeRow, join_on)
        else:
            stmt = stmt.outerjoin(TradeRow, join_on)
        stmt = (
            stmt.where(*self._journal_conditions(user_id, window, emotion, tags))
            .order_by(JournalEntryRow.date.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_row_to_journal(entry, trade) for entry, trade in result.all()]

    async def count_journal_entries(
        self,
        user_id: str,
        *,
        window: DateRange | None = None,
        emotion: Emotion | None = None,
        tags: list[str] | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(JournalEntryRow).where(
            *self._journal_conditions(user_id, window, emotion, tags)
        )
        async with self._session() as session:
            return (await session.execute(stmt)).scalar_one()

    async def add_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        async with self._session() as session:
            session.add(_journal_to_row(entry))
            await session.flush()
        return entry

    async def get_journal_entry(self, user_id: str, entry_id: str) -> JournalEntry | None:
        stmt = select(JournalEntryRow).where(
            JournalEntryRow.entry_id == entry_id, JournalEntryRow.user_id == user_id,
        )
        async with self._session() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _row_to_journal(row) if row is not None else None

    async def save_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        stmt = select(JournalEntryRow).where(
            JournalEntryRow.entry_id == entry.entry_id,
            JournalEntryRow.user_id == entry.user_id,
        )
        async with self._session() as session:
            existing = (await session.execute(stmt)).scalar_one_or_none()
            if existing is None:
                raise NotFoundError("Journal entry", entry.entry_id)
            await session.merge(_journal_to_row(entry))
            await session.flush()
        return entry

    async def delete_journal_entry(self, user_id: str, entry_id: str) -> bool:
        stmt = delete(JournalEntryRow).where(
            JournalEntryRow.entry_id == entry_id, JournalEntryRow.user_id == user_id,
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.rowcount > 0
