"""Usage recording and aggregation."""

from .usage import (
    InMemoryUsageStore,
    JsonlUsageStore,
    UsageLedger,
    start_of_day,
    usage_stats,
)

__all__ = [
    "InMemoryUsageStore",
    "JsonlUsageStore",
    "UsageLedger",
    "start_of_day",
    "usage_stats",
]
