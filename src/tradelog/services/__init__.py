"""Mutation workflows over the record store."""

from __future__ import annotations

from .inputs import (
    JournalChanges,
    JournalDraft,
    StrategyChanges,
    StrategyDraft,
    TradeChanges,
    TradeDraft,
)
from .journal_service import JournalService
from .strategy_service import StrategyService
from .trade_service import TradeService

__all__ = [
    "JournalChanges",
    "JournalDraft",
    "JournalService",
    "StrategyChanges",
    "StrategyDraft",
    "StrategyService",
    "TradeChanges",
    "TradeDraft",
    "TradeService",
]
