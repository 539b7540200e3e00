"""
Histogram Quantile Aggregation

Pairs a histogram's interval and cumulative quantile values level by level.
This is the one place where the NaN "no samples" sentinel becomes ``None``;
renderers never see NaN.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from statsadmin.stats.store import ParentHistogram


@dataclass(frozen=True)
class QuantilePoint:
    """Interval and cumulative value at one quantile level."""
    level: float
    interval: Optional[float]
    cumulative: Optional[float]


def _present(value: float) -> Optional[float]:
    return None if math.isnan(value) else value


def aggregate(histogram: ParentHistogram) -> List[QuantilePoint]:
    """Build the aligned list of quantile points for one histogram."""
    interval = histogram.interval_statistics
    cumulative = histogram.cumulative_statistics

    return [
        QuantilePoint(
            level=level,
            interval=_present(interval.computed_quantiles[i]),
            cumulative=_present(cumulative.computed_quantiles[i]),
        )
        for i, level in enumerate(interval.supported_quantiles)
    ]


def supported_percentiles(levels: Sequence[float]) -> List[float]:
    """Quantile levels as percentages, e.g. 0.995 -> 99.5."""
    # Rounding drops binary noise such as 0.9 * 100 == 90.00000000000001.
    return [round(level * 100, 10) for level in levels]
