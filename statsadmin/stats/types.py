"""
Stats Data Types

Core data structures shared by the stats store and the admin renderers:
- Gauge import modes
- Histogram statistic sets (quantile levels paired with computed values)
- The read-only snapshot interface consumed by the export path
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:
    from statsadmin.stats.recent_lookups import SymbolTable
    from statsadmin.stats.store import Counter, Gauge, ParentHistogram, TextReadout


# Quantile levels shared by every histogram in the process.
SUPPORTED_QUANTILES: Tuple[float, ...] = (
    0.0, 0.25, 0.5, 0.75, 0.90, 0.95, 0.99, 0.995, 0.999, 1.0
)


class ImportMode(str, Enum):
    """How a gauge's value is carried across a hot restart."""
    UNINITIALIZED = "uninitialized"
    NEVER_IMPORT = "never_import"
    ACCUMULATE = "accumulate"


@dataclass
class HistogramStatistics:
    """
    Quantile summary of one histogram window.

    ``computed_quantiles`` is positionally aligned with
    ``supported_quantiles``. A window with no samples holds NaN at every
    position; NaN never means zero.
    """
    supported_quantiles: Tuple[float, ...] = SUPPORTED_QUANTILES
    computed_quantiles: List[float] = field(default_factory=list)
    sample_count: int = 0
    sample_sum: float = 0.0

    def __post_init__(self):
        if not self.computed_quantiles:
            self.computed_quantiles = [math.nan] * len(self.supported_quantiles)
        if len(self.computed_quantiles) != len(self.supported_quantiles):
            raise ValueError(
                f"Expected {len(self.supported_quantiles)} computed quantiles, "
                f"got {len(self.computed_quantiles)}"
            )

    @classmethod
    def from_samples(
        cls,
        samples: Sequence[float],
        supported_quantiles: Tuple[float, ...] = SUPPORTED_QUANTILES,
        sample_count: Optional[int] = None,
        sample_sum: Optional[float] = None,
    ) -> "HistogramStatistics":
        """Compute quantiles over raw samples (linear interpolation)."""
        if len(samples) == 0:
            return cls(supported_quantiles=supported_quantiles)

        values = np.asarray(samples, dtype=float)
        computed = np.quantile(values, supported_quantiles)

        return cls(
            supported_quantiles=supported_quantiles,
            computed_quantiles=[float(v) for v in computed],
            sample_count=len(samples) if sample_count is None else sample_count,
            sample_sum=float(values.sum()) if sample_sum is None else sample_sum,
        )


class StatsSource(ABC):
    """
    Read-only view over a stats registry.

    Each accessor returns a point-in-time list; consistency across the four
    kinds is not guaranteed.
    """

    @abstractmethod
    def counters(self) -> List["Counter"]:
        pass

    @abstractmethod
    def gauges(self) -> List["Gauge"]:
        pass

    @abstractmethod
    def text_readouts(self) -> List["TextReadout"]:
        pass

    @abstractmethod
    def histograms(self) -> List["ParentHistogram"]:
        pass

    @property
    @abstractmethod
    def symbol_table(self) -> "SymbolTable":
        pass


@dataclass
class MetricsSnapshot(StatsSource):
    """A captured set of metric handles, usable without a live store."""
    counter_list: List["Counter"] = field(default_factory=list)
    gauge_list: List["Gauge"] = field(default_factory=list)
    text_readout_list: List["TextReadout"] = field(default_factory=list)
    histogram_list: List["ParentHistogram"] = field(default_factory=list)
    lookups: Optional["SymbolTable"] = None

    def __post_init__(self):
        if self.lookups is None:
            from statsadmin.stats.recent_lookups import SymbolTable
            self.lookups = SymbolTable()

    def counters(self) -> List["Counter"]:
        return list(self.counter_list)

    def gauges(self) -> List["Gauge"]:
        return list(self.gauge_list)

    def text_readouts(self) -> List["TextReadout"]:
        return list(self.text_readout_list)

    def histograms(self) -> List["ParentHistogram"]:
        return list(self.histogram_list)

    @property
    def symbol_table(self) -> "SymbolTable":
        return self.lookups
