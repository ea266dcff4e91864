"""Custom exception hierarchy for the trade journal."""


class TradeLogError(Exception):
    """Base exception for all trade journal errors."""


# --- Configuration ---
class ConfigError(TradeLogError):
    """Invalid or missing configuration."""


# --- Access ---
class UnauthorizedError(TradeLogError):
    """No valid user scope was supplied."""


class NotFoundError(TradeLogError):
    """A targeted record does not exist (or is not owned by the caller)."""

    def __init__(self, kind: str, ident: str):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} not found: {ident}")


# --- Storage ---
class StoreError(TradeLogError):
    """The record store is unreachable or a query failed."""


# --- Mutations ---
class InvalidTradeError(TradeLogError):
    """A trade mutation would violate the trade lifecycle."""


class StrategyInUseError(TradeLogError):
    """Strategy cannot be deleted while trades still reference it."""

    def __init__(self, strategy_id: str, trade_count: int):
        self.strategy_id = strategy_id
        self.trade_count = trade_count
        super().__init__(
            f"Cannot delete strategy with {trade_count} associated trades. "
            "Delete or reassign the trades first."
        )
