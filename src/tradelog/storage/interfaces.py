"""Protocol for the trade / strategy / journal record store.

Implementations can be swapped (in-memory for tests and local runs,
PostgreSQL in production) without changing callers.  Every query is
scoped by the owning user id.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tradelog.core.enums import Emotion
from tradelog.core.models import (
    DateRange,
    JournalEntry,
    Page,
    Strategy,
    StrategyPerformance,
    Trade,
    TradeFilters,
)


@runtime_checkable
class IRecordStore(Protocol):
    """Async record store consumed by the analytics and service layers."""

    # -- trades --------------------------------------------------------------

    async def closed_trades(
        self,
        user_id: str,
        *,
        window: DateRange | None = None,
        strategy_id: str | None = None,
    ) -> list[Trade]:
        """Closed trades ordered by exit date ascending (undated first)."""
        ...

    async def trades_entered(
        self, user_id: str, *, entry_window: DateRange | None = None,
    ) -> list[Trade]:
        """All trades, open or closed, optionally windowed on entry date."""
        ...

    async def trade_tag_lists(self, user_id: str) -> list[list[str]]: ...

    async def list_trades(self, user_id: str, filters: TradeFilters) -> Page[Trade]: ...

    async def add_trade(self, trade: Trade) -> Trade: ...

    async def get_trade(self, user_id: str, trade_id: str) -> Trade | None: ...

    async def save_trade(self, trade: Trade) -> Trade: ...

    async def delete_trade(self, user_id: str, trade_id: str) -> Trade | None: ...

    async def count_strategy_trades(self, user_id: str, strategy_id: str) -> int: ...

    # -- strategies ----------------------------------------------------------

    async def add_strategy(self, strategy: Strategy) -> Strategy: ...

    async def get_strategy(self, user_id: str, strategy_id: str) -> Strategy | None: ...

    async def save_strategy(self, strategy: Strategy) -> Strategy:
        """Persist descriptive fields; never touches the performance snapshot."""
        ...

    async def delete_strategy(self, user_id: str, strategy_id: str) -> bool: ...

    async def list_strategies(self, user_id: str) -> list[Strategy]:
        """Strategies newest first."""
        ...

    async def save_strategy_performance(
        self,
        user_id: str,
        strategy_id: str,
        performance: StrategyPerformance,
    ) -> None:
        """Replace the whole snapshot in one write."""
        ...

    # -- journal -------------------------------------------------------------

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
        """Entries newest first with ``trade`` populated where it exists."""
        ...

    async def count_journal_entries(
        self,
        user_id: str,
        *,
        window: DateRange | None = None,
        emotion: Emotion | None = None,
        tags: list[str] | None = None,
    ) -> int: ...

    async def add_journal_entry(self, entry: JournalEntry) -> JournalEntry: ...

    async def get_journal_entry(self, user_id: str, entry_id: str) -> JournalEntry | None: ...

    async def save_journal_entry(self, entry: JournalEntry) -> JournalEntry: ...

    async def delete_journal_entry(self, user_id: str, entry_id: str) -> bool: ...
