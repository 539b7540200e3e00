"""
Prometheus Exposition

Writes counters, gauges and histograms in the Prometheus text format
(version 0.0.4). Histograms are exported as summaries built from their
cumulative statistics.
"""

from __future__ import annotations

import math
import re
from typing import Dict, List, Optional, Pattern, Sequence, TextIO

from statsadmin.admin.filters import filter_metrics
from statsadmin.stats.store import Counter, Gauge, ParentHistogram

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
METRIC_PREFIX = "envoy_"

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def metric_name(name: str) -> str:
    """Prometheus-safe name: invalid characters become underscores."""
    return METRIC_PREFIX + _INVALID_NAME_CHARS.sub("_", name)


def format_value(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return repr(value)


def _group_by_name(metrics: Sequence) -> Dict[str, List]:
    groups: Dict[str, List] = {}
    for metric in metrics:
        groups.setdefault(metric_name(metric.name), []).append(metric)
    return groups


def _summary_lines(name: str, histogram: ParentHistogram) -> List[str]:
    stats = histogram.cumulative_statistics
    lines = []
    for quantile, value in zip(stats.supported_quantiles, stats.computed_quantiles):
        lines.append(f'{name}{{quantile="{quantile:g}"}} {format_value(value)}')
    lines.append(f"{name}_sum {format_value(stats.sample_sum)}")
    lines.append(f"{name}_count {stats.sample_count}")
    return lines


def render_prometheus(
    counters: Sequence[Counter],
    gauges: Sequence[Gauge],
    histograms: Sequence[ParentHistogram],
    out: TextIO,
    used_only: bool = False,
    regex: Optional[Pattern[str]] = None,
) -> int:
    """
    Write metrics in Prometheus exposition format.

    Args:
        counters: Counter handles
        gauges: Gauge handles
        histograms: Histogram handles
        out: Stream the exposition text is written to
        used_only: Skip metrics that were never used
        regex: Skip metrics whose name has no match

    Returns:
        Number of metric families written
    """
    families = 0

    for name, group in sorted(_group_by_name(filter_metrics(counters, used_only, regex)).items()):
        out.write(f"# TYPE {name} counter\n")
        for counter in group:
            out.write(f"{name} {format_value(counter.value)}\n")
        families += 1

    for name, group in sorted(_group_by_name(filter_metrics(gauges, used_only, regex)).items()):
        out.write(f"# TYPE {name} gauge\n")
        for gauge in group:
            out.write(f"{name} {format_value(gauge.value)}\n")
        families += 1

    for name, group in sorted(_group_by_name(filter_metrics(histograms, used_only, regex)).items()):
        out.write(f"# TYPE {name} summary\n")
        for histogram in group:
            for line in _summary_lines(name, histogram):
                out.write(line + "\n")
        families += 1

    return families
