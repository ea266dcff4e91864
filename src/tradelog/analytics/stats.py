"""Statistics primitives for realized trade P/L.

Pure functions over plain numbers.  Every degenerate input (no trades,
zero denominators, empty series) resolves to a documented neutral value
instead of raising.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from tradelog.core.enums import TradeSide


def max_drawdown(pnls: Iterable[float]) -> float:
    """Largest drop of cumulative P/L below its running peak.

    *pnls* must be in chronological (exit date) order; a different order
    gives a different, non-comparable answer.  The peak starts at 0, so a
    series that opens with losses draws down from the starting balance.
    """
    peak = 0.0
    running = 0.0
    worst = 0.0
    for pnl in pnls:
        running += pnl
        if running > peak:
            peak = running
        drawdown = peak - running
        if drawdown > worst:
            worst = drawdown
    return worst


def profit_factor(gross_profit: float, gross_loss: float) -> float:
    """Gross profit over absolute gross loss.

    With no losses the raw gross profit is returned rather than infinity.
    """
    if gross_loss == 0:
        return gross_profit
    return gross_profit / gross_loss


def percentage_change(current: float, previous: float | None) -> float:
    """Percent change from *previous* to *current*.

    ``None`` means there is no previous period at all and yields 0.
    A zero previous value yields 0 when current is also 0, else 100.
    """
    if previous is None:
        return 0.0
    if previous == 0:
        return 0.0 if current == 0 else 100.0
    return (current - previous) / abs(previous) * 100


def win_rate(wins: int, total: int) -> float:
    """Winning share in percent; 0 when there are no trades."""
    if total == 0:
        return 0.0
    return wins / total * 100


def average(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def split_gross(pnls: Iterable[float]) -> tuple[float, float]:
    """Return ``(gross_profit, gross_loss)``; loss is positive.

    Break-even values contribute to neither side.
    """
    gross_profit = 0.0
    gross_loss = 0.0
    for pnl in pnls:
        if pnl > 0:
            gross_profit += pnl
        elif pnl < 0:
            gross_loss += -pnl
    return gross_profit, gross_loss


# ---------------------------------------------------------------------------
# Per-trade P/L
# ---------------------------------------------------------------------------

def realized_pnl(
    side: TradeSide,
    entry_price: Decimal,
    exit_price: Decimal,
    quantity: Decimal,
    fees: Decimal = Decimal("0"),
) -> Decimal:
    """Net P/L of a closed position, fees already subtracted."""
    return (exit_price - entry_price) * quantity * side.sign - fees


def pnl_percentage(pnl: Decimal, entry_price: Decimal, quantity: Decimal) -> float:
    """P/L as a percent of the entry cost basis; 0 without a cost basis."""
    cost_basis = entry_price * quantity
    if cost_basis <= 0:
        return 0.0
    return float(pnl / cost_basis * 100)
