"""Enumerations used across the trade journal."""

from enum import Enum


class TradeSide(str, Enum):
    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        """Direction multiplier applied to the exit/entry price difference."""
        return 1 if self is TradeSide.LONG else -1


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class TradeMood(str, Enum):
    """Mood tag recorded directly on a trade."""

    CALM = "calm"
    ANXIOUS = "anxious"
    CONFIDENT = "confident"
    GREEDY = "greedy"


class Emotion(str, Enum):
    """Emotion recorded on a journal entry."""

    CALM = "calm"
    ANXIOUS = "anxious"
    CONFIDENT = "confident"
    GREEDY = "greedy"
    FEARFUL = "fearful"
    DISCIPLINED = "disciplined"  # "followed my rules"


class AssetClass(str, Enum):
    EQUITY = "equity"
    FUTURES = "futures"
    OPTIONS = "options"
    FOREX = "forex"
    CRYPTO = "crypto"


class StrategyStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class InsightSource(str, Enum):
    """Which record set a psychology view was derived from."""

    JOURNAL = "journal"
    TRADE_TAGS = "trade_tags"


class CacheBackend(str, Enum):
    MEMORY = "memory"
    REDIS = "redis"
