"""
Stats Module

Metric handles, the in-memory store and the recent lookups tracker.
"""

from statsadmin.stats.types import (
    SUPPORTED_QUANTILES,
    HistogramStatistics,
    ImportMode,
    MetricsSnapshot,
    StatsSource,
)
from statsadmin.stats.recent_lookups import RecentLookups, SymbolTable
from statsadmin.stats.store import (
    Counter,
    Gauge,
    Metric,
    ParentHistogram,
    StatsStore,
    TextReadout,
    get_default_store,
    set_default_store,
)

__all__ = [
    "SUPPORTED_QUANTILES",
    "HistogramStatistics",
    "ImportMode",
    "MetricsSnapshot",
    "StatsSource",
    "RecentLookups",
    "SymbolTable",
    "Counter",
    "Gauge",
    "Metric",
    "ParentHistogram",
    "StatsStore",
    "TextReadout",
    "get_default_store",
    "set_default_store",
]
