"""Prometheus metrics endpoint.

Exposes trade journal metrics for monitoring via Grafana.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

# ---------------------------------------------------------------------------
# Roll-up metrics
# ---------------------------------------------------------------------------

ROLLUP_TOTAL = Counter(
    "tradelog_rollup_total",
    "Strategy performance recomputations",
    ["result"],  # "updated" or "reset"
)

ROLLUP_FAILURES = Counter(
    "tradelog_rollup_failures_total",
    "Strategy recomputations that failed after a trade mutation",
)

# ---------------------------------------------------------------------------
# Mutation and query metrics
# ---------------------------------------------------------------------------

TRADE_MUTATIONS = Counter(
    "tradelog_trade_mutations_total",
    "Trade mutations by action",
    ["action"],  # "create", "update", "close", "delete"
)

AGGREGATION_SECONDS = Histogram(
    "tradelog_aggregation_seconds",
    "Latency of analytics aggregations",
    ["operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------


def record_rollup(reset: bool) -> None:
    """Record a completed strategy recomputation."""
    ROLLUP_TOTAL.labels(result="reset" if reset else "updated").inc()


def record_rollup_failure() -> None:
    ROLLUP_FAILURES.inc()


def record_trade_mutation(action: str) -> None:
    TRADE_MUTATIONS.labels(action=action).inc()


def time_aggregation(operation: str):
    """Context manager timing one analytics aggregation."""
    return AGGREGATION_SECONDS.labels(operation=operation).time()


def start_metrics_server(port: int = 9090) -> None:
    """Start the Prometheus HTTP exporter in a background thread."""
    start_http_server(port)
