"""
JSON Rendering

Builds the ``{"stats": [...]}`` document:

- text readouts, ascending name, as ``{"name", "value"}`` with string values
- counters and gauges, ascending name, as ``{"name", "value"}`` with numbers
- one trailing ``{"histograms": ...}`` object, only when a histogram passed
  the filters

Histograms under ``computed_quantiles`` keep snapshot order; they are not
sorted like the other sections.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Sequence

from statsadmin.admin.quantiles import aggregate, supported_percentiles
from statsadmin.stats.store import ParentHistogram


def histograms_object(histograms: Sequence[ParentHistogram]) -> Dict[str, Any]:
    """Build the ``histograms`` body; ``histograms`` must not be empty."""
    # Quantile levels are identical across histograms, so read them once.
    levels = histograms[0].interval_statistics.supported_quantiles

    computed_quantiles = []
    for histogram in histograms:
        computed_quantiles.append({
            "name": histogram.name,
            "values": [
                {"interval": point.interval, "cumulative": point.cumulative}
                for point in aggregate(histogram)
            ],
        })

    return {
        "supported_quantiles": supported_percentiles(levels),
        "computed_quantiles": computed_quantiles,
    }


def render_json(
    text_readouts: Mapping[str, str],
    all_stats: Mapping[str, int],
    histograms: Sequence[ParentHistogram],
    pretty_print: bool = False,
) -> str:
    stats: List[Dict[str, Any]] = []

    for name, value in sorted(text_readouts.items()):
        stats.append({"name": name, "value": value})

    for name, value in sorted(all_stats.items()):
        stats.append({"name": name, "value": value})

    if histograms:
        stats.append({"histograms": histograms_object(histograms)})

    document = {"stats": stats}
    if pretty_print:
        return json.dumps(document, indent=2, allow_nan=False)
    return json.dumps(document, allow_nan=False)
