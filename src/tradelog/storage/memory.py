"""Dict-backed record store.  No persistence across restarts.

Good for: unit tests, local development, the default ``serve`` mode.

Records are copied on the way in and out so callers can never mutate
stored state by holding a reference.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from tradelog.core.enums import Emotion, TradeStatus
from tradelog.core.errors import NotFoundError
from tradelog.core.models import (
    DateRange,
    JournalEntry,
    Page,
    Strategy,
    StrategyPerformance,
    Trade,
    TradeFilters,
)

logger = logging.getLogger(__name__)


def _exit_sort_key(trade: Trade) -> tuple[bool, float]:
    # Undated exits sort as the earliest possible moment
    if trade.exit_date is None:
        return (False, 0.0)
    return (True, trade.exit_date.timestamp())


class InMemoryRecordStore:
    """In-process implementation of :class:`IRecordStore`."""

    def __init__(self) -> None:
        self._trades: dict[str, Trade] = {}
        self._strategies: dict[str, Strategy] = {}
        self._journal: dict[str, JournalEntry] = {}

    # -- trades --------------------------------------------------------------

    def _user_trades(self, user_id: str) -> list[Trade]:
        return [t for t in self._trades.values() if t.user_id == user_id]

    async def closed_trades(
        self,
        user_id: str,
        *,
        window: DateRange | None = None,
        strategy_id: str | None = None,
    ) -> list[Trade]:
        out = [
            t.model_copy(deep=True)
            for t in self._user_trades(user_id)
            if t.status == TradeStatus.CLOSED
            and (window is None or window.contains(t.exit_date))
            and (strategy_id is None or t.strategy_id == strategy_id)
        ]
        out.sort(key=_exit_sort_key)
        return out

    async def trades_entered(
        self, user_id: str, *, entry_window: DateRange | None = None,
    ) -> list[Trade]:
        return [
            t.model_copy(deep=True)
            for t in self._user_trades(user_id)
            if (entry_window is None or entry_window.contains(t.entry_date))
        ]

    async def trade_tag_lists(self, user_id: str) -> list[list[str]]:
        return [list(t.tags) for t in self._user_trades(user_id)]

    async def list_trades(self, user_id: str, filters: TradeFilters) -> Page[Trade]:
        needle = filters.symbol.lower() if filters.symbol else None
        matched = [
            t for t in self._user_trades(user_id)
            if (needle is None or needle in t.symbol.lower())
            and (filters.strategy_id is None or t.strategy_id == filters.strategy_id)
            and (filters.status is None or t.status == filters.status)
            and (filters.window is None or filters.window.contains(t.entry_date))
        ]
        matched.sort(key=lambda t: t.entry_date, reverse=True)
        start = (filters.page - 1) * filters.limit
        items = [t.model_copy(deep=True) for t in matched[start:start + filters.limit]]
        return Page[Trade](
            items=items, total=len(matched), page=filters.page, limit=filters.limit,
        )

    async def add_trade(self, trade: Trade) -> Trade:
        self._trades[trade.trade_id] = trade.model_copy(deep=True)
        logger.debug("Inserted trade %s", trade.trade_id)
        return trade

    async def get_trade(self, user_id: str, trade_id: str) -> Trade | None:
        trade = self._trades.get(trade_id)
        if trade is None or trade.user_id != user_id:
            return None
        return trade.model_copy(deep=True)

    async def save_trade(self, trade: Trade) -> Trade:
        existing = self._trades.get(trade.trade_id)
        if existing is None or existing.user_id != trade.user_id:
            raise NotFoundError("Trade", trade.trade_id)
        self._trades[trade.trade_id] = trade.model_copy(deep=True)
        logger.debug("Updated trade %s -> status=%s", trade.trade_id, trade.status.value)
        return trade

    async def delete_trade(self, user_id: str, trade_id: str) -> Trade | None:
        trade = self._trades.get(trade_id)
        if trade is None or trade.user_id != user_id:
            return None
        del self._trades[trade_id]
        logger.debug("Deleted trade %s", trade_id)
        return trade

    async def count_strategy_trades(self, user_id: str, strategy_id: str) -> int:
        return sum(1 for t in self._user_trades(user_id) if t.strategy_id == strategy_id)

    # -- strategies ----------------------------------------------------------

    async def add_strategy(self, strategy: Strategy) -> Strategy:
        self._strategies[strategy.strategy_id] = strategy.model_copy(deep=True)
        return strategy

    async def get_strategy(self, user_id: str, strategy_id: str) -> Strategy | None:
        strategy = self._strategies.get(strategy_id)
        if strategy is None or strategy.user_id != user_id:
            return None
        return strategy.model_copy(deep=True)

    async def save_strategy(self, strategy: Strategy) -> Strategy:
        existing = self._strategies.get(strategy.strategy_id)
        if existing is None or existing.user_id != strategy.user_id:
            raise NotFoundError("Strategy", strategy.strategy_id)
        # The snapshot is owned by the roll-up, keep the stored one
        self._strategies[strategy.strategy_id] = strategy.model_copy(
            update={"performance": existing.performance}, deep=True,
        )
        return self._strategies[strategy.strategy_id].model_copy(deep=True)

    async def delete_strategy(self, user_id: str, strategy_id: str) -> bool:
        strategy = self._strategies.get(strategy_id)
        if strategy is None or strategy.user_id != user_id:
            return False
        del self._strategies[strategy_id]
        return True

    async def list_strategies(self, user_id: str) -> list[Strategy]:
        out = [
            s.model_copy(deep=True)
            for s in self._strategies.values()
            if s.user_id == user_id
        ]
        out.sort(key=lambda s: s.created_at, reverse=True)
        return out

    async def save_strategy_performance(
        self,
        user_id: str,
        strategy_id: str,
        performance: StrategyPerformance,
    ) -> None:
        existing = self._strategies.get(strategy_id)
        if existing is None or existing.user_id != user_id:
            raise NotFoundError("Strategy", strategy_id)
        # Single reference swap: readers see the old or the new snapshot
        self._strategies[strategy_id] = existing.model_copy(
            update={
                "performance": performance,
                "updated_at": datetime.now(timezone.utc),
            },
        )

    # -- journal -------------------------------------------------------------

    def _matching_entries(
        self,
        user_id: str,
        window: DateRange | None,
        emotion: Emotion | None,
        tags: list[str] | None,
    ) -> list[JournalEntry]:
        wanted = set(tags or [])
        return [
            e for e in self._journal.values()
            if e.user_id == user_id
            and (window is None or window.contains(e.date))
            and (emotion is None or e.emotion == emotion)
            and (not wanted or wanted.intersection(e.tags))
        ]

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
        populated: list[JournalEntry] = []
        for entry in self._matching_entries(user_id, window, emotion, tags):
            trade = None
            if entry.trade_id is not None:
                linked = self._trades.get(entry.trade_id)
                if linked is not None and linked.user_id == user_id:
                    trade = linked.model_copy(deep=True)
            if linked_only and trade is None:
                continue
            populated.append(entry.model_copy(update={"trade": trade}, deep=True))
        populated.sort(key=lambda e: e.date, reverse=True)
        end = None if limit is None else offset + limit
        return populated[offset:end]

    async def count_journal_entries(
        self,
        user_id: str,
        *,
        window: DateRange | None = None,
        emotion: Emotion | None = None,
        tags: list[str] | None = None,
    ) -> int:
        return len(self._matching_entries(user_id, window, emotion, tags))

    async def add_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        self._journal[entry.entry_id] = entry.model_copy(update={"trade": None}, deep=True)
        return entry

    async def get_journal_entry(self, user_id: str, entry_id: str) -> JournalEntry | None:
        entry = self._journal.get(entry_id)
        if entry is None or entry.user_id != user_id:
            return None
        return entry.model_copy(deep=True)

    async def save_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        existing = self._journal.get(entry.entry_id)
        if existing is None or existing.user_id != entry.user_id:
            raise NotFoundError("Journal entry", entry.entry_id)
        self._journal[entry.entry_id] = entry.model_copy(update={"trade": None}, deep=True)
        return entry

    async def delete_journal_entry(self, user_id: str, entry_id: str) -> bool:
        entry = self._journal.get(entry_id)
        if entry is None or entry.user_id != user_id:
            return False
        del self._journal[entry_id]
        return True

    # -- Testing helpers -----------------------------------------------------

    def clear(self) -> None:
        """Remove all records.  Testing only."""
        self._trades.clear()
        self._strategies.clear()
        self._journal.clear()
