"""
Stats Store

In-memory registry of counters, gauges, text readouts and histograms.
Metrics are created on first lookup by name and never deleted. Every
name resolution is reported to the symbol table's recent lookups tracker.
"""

from __future__ import annotations

import math
import random
import threading
from abc import ABC
from typing import Dict, List, Optional, Tuple

import structlog

from statsadmin.stats.recent_lookups import SymbolTable
from statsadmin.stats.types import (
    SUPPORTED_QUANTILES,
    HistogramStatistics,
    ImportMode,
    MetricsSnapshot,
    StatsSource,
)

logger = structlog.get_logger(__name__)


class Metric(ABC):
    """Base class for all metric handles."""

    def __init__(self, name: str):
        if not name:
            raise ValueError("Metric name cannot be empty")
        self._name = name
        self._used = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def used(self) -> bool:
        """True once the metric has been incremented, set or observed."""
        return self._used

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"


class Counter(Metric):
    """Monotonically increasing count; reset sets it back to zero."""

    def __init__(self, name: str):
        super().__init__(name)
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def inc(self, amount: int = 1) -> None:
        if amount < 0:
            raise ValueError("Counter can only be incremented")
        with self._lock:
            self._value += amount
            self._used = True

    def reset(self) -> None:
        with self._lock:
            self._value = 0


class Gauge(Metric):
    """Point-in-time value that can go up and down."""

    def __init__(self, name: str, import_mode: ImportMode = ImportMode.ACCUMULATE):
        super().__init__(name)
        self._value = 0
        self.import_mode = import_mode

    @property
    def value(self) -> int:
        return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value
            self._used = True

    def add(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount
            self._used = True

    def sub(self, amount: int = 1) -> None:
        with self._lock:
            self._value -= amount
            self._used = True

    def merge_import_mode(self, import_mode: ImportMode) -> None:
        """Settle an uninitialized import mode once a caller declares one."""
        if self.import_mode == ImportMode.UNINITIALIZED:
            self.import_mode = import_mode


class TextReadout(Metric):
    """A named string value."""

    def __init__(self, name: str):
        super().__init__(name)
        self._value = ""

    @property
    def value(self) -> str:
        with self._lock:
            return self._value

    def set(self, value: str) -> None:
        with self._lock:
            self._value = value
            self._used = True


class ParentHistogram(Metric):
    """
    Histogram with two statistic windows.

    Samples are buffered until ``merge()``, which publishes them as the
    interval window and folds them into the cumulative window. The
    cumulative window keeps at most ``max_samples`` samples, chosen by
    reservoir sampling, while its count and sum stay exact.
    """

    def __init__(
        self,
        name: str,
        supported_quantiles: Tuple[float, ...] = SUPPORTED_QUANTILES,
        max_samples: int = 10000,
    ):
        super().__init__(name)
        self._supported_quantiles = supported_quantiles
        self._max_samples = max_samples

        self._pending: List[float] = []
        self._reservoir: List[float] = []
        self._cumulative_count = 0
        self._cumulative_sum = 0.0

        self._interval_statistics = HistogramStatistics(supported_quantiles)
        self._cumulative_statistics = HistogramStatistics(supported_quantiles)

    @property
    def interval_statistics(self) -> HistogramStatistics:
        return self._interval_statistics

    @property
    def cumulative_statistics(self) -> HistogramStatistics:
        return self._cumulative_statistics

    def record_value(self, value: float) -> None:
        with self._lock:
            self._pending.append(value)
            self._used = True

    def merge(self) -> None:
        """Close the current interval."""
        with self._lock:
            interval_samples, self._pending = self._pending, []

            for value in interval_samples:
                self._cumulative_count += 1
                self._cumulative_sum += value
                if len(self._reservoir) < self._max_samples:
                    self._reservoir.append(value)
                else:
                    idx = random.randint(0, self._cumulative_count - 1)
                    if idx < self._max_samples:
                        self._reservoir[idx] = value

            self._interval_statistics = HistogramStatistics.from_samples(
                interval_samples, self._supported_quantiles
            )
            self._cumulative_statistics = HistogramStatistics.from_samples(
                self._reservoir,
                self._supported_quantiles,
                sample_count=self._cumulative_count,
                sample_sum=self._cumulative_sum,
            )

    def quantile_summary(self) -> str:
        """One-line summary: ``P<pct>(<interval>,<cumulative>)`` per level."""
        if not self.used:
            return "No recorded values"

        interval = self._interval_statistics
        cumulative = self._cumulative_statistics
        summary = []
        for i, quantile in enumerate(interval.supported_quantiles):
            summary.append(
                f"P{100 * quantile:g}("
                f"{_format_quantile(interval.computed_quantiles[i])},"
                f"{_format_quantile(cumulative.computed_quantiles[i])})"
            )
        return " ".join(summary)


def _format_quantile(value: float) -> str:
    if math.isnan(value):
        return "none"
    return f"{value:g}"


class StatsStore(StatsSource):
    """
    Registry for all metrics.

    Usage:
        store = StatsStore()
        store.counter("http.admin.downstream_rq_total").inc()
        store.gauge("server.live").set(1)
    """

    def __init__(
        self,
        symbol_table: Optional[SymbolTable] = None,
        supported_quantiles: Tuple[float, ...] = SUPPORTED_QUANTILES,
        histogram_max_samples: int = 10000,
    ):
        self._symbol_table = symbol_table or SymbolTable()
        self._supported_quantiles = tuple(supported_quantiles)
        self._histogram_max_samples = histogram_max_samples

        self._counters: Dict[str, Counter] = {}
        self._gauges: Dict[str, Gauge] = {}
        self._text_readouts: Dict[str, TextReadout] = {}
        self._histograms: Dict[str, ParentHistogram] = {}
        self._lock = threading.Lock()

    @property
    def symbol_table(self) -> SymbolTable:
        return self._symbol_table

    @property
    def supported_quantiles(self) -> Tuple[float, ...]:
        return self._supported_quantiles

    # === Get-or-create by name ===

    def counter(self, name: str) -> Counter:
        """Get or create a counter."""
        self._symbol_table.record_lookup(name)
        with self._lock:
            counter = self._counters.get(name)
            if counter is None:
                counter = Counter(name)
                self._counters[name] = counter
            return counter

    def gauge(self, name: str, import_mode: ImportMode = ImportMode.ACCUMULATE) -> Gauge:
        """Get or create a gauge."""
        self._symbol_table.record_lookup(name)
        with self._lock:
            gauge = self._gauges.get(name)
            if gauge is None:
                gauge = Gauge(name, import_mode)
                self._gauges[name] = gauge
            else:
                gauge.merge_import_mode(import_mode)
            return gauge

    def text_readout(self, name: str) -> TextReadout:
        """Get or create a text readout."""
        self._symbol_table.record_lookup(name)
        with self._lock:
            readout = self._text_readouts.get(name)
            if readout is None:
                readout = TextReadout(name)
                self._text_readouts[name] = readout
            return readout

    def histogram(self, name: str) -> ParentHistogram:
        """Get or create a histogram."""
        self._symbol_table.record_lookup(name)
        with self._lock:
            histogram = self._histograms.get(name)
            if histogram is None:
                histogram = ParentHistogram(
                    name, self._supported_quantiles, self._histogram_max_samples
                )
                self._histograms[name] = histogram
            return histogram

    # === Point-in-time listings ===

    def counters(self) -> List[Counter]:
        with self._lock:
            return list(self._counters.values())

    def gauges(self) -> List[Gauge]:
        with self._lock:
            return list(self._gauges.values())

    def text_readouts(self) -> List[TextReadout]:
        with self._lock:
            return list(self._text_readouts.values())

    def histograms(self) -> List[ParentHistogram]:
        with self._lock:
            return list(self._histograms.values())

    def snapshot(self) -> MetricsSnapshot:
        """Capture the current handles of every kind."""
        return MetricsSnapshot(
            counter_list=self.counters(),
            gauge_list=self.gauges(),
            text_readout_list=self.text_readouts(),
            histogram_list=self.histograms(),
            lookups=self._symbol_table,
        )

    def merge_histograms(self) -> None:
        """Close the current interval on every histogram."""
        histograms = self.histograms()
        for histogram in histograms:
            histogram.merge()
        logger.debug("Merged histograms", count=len(histograms))


# Global store
_default_store: Optional[StatsStore] = None


def get_default_store() -> StatsStore:
    """Get the process-wide stats store."""
    global _default_store
    if _default_store is None:
        _default_store = StatsStore()
    return _default_store


def set_default_store(store: StatsStore) -> None:
    """Set the process-wide stats store."""
    global _default_store
    _default_store = store
