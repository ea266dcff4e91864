"""Record storage: protocol, in-memory and PostgreSQL stores, caches."""

from .cache import IStrategyCache, TTLStrategyCache
from .interfaces import IRecordStore
from .memory import InMemoryRecordStore

__all__ = [
    "IRecordStore",
    "InMemoryRecordStore",
    "IStrategyCache",
    "TTLStrategyCache",
]
