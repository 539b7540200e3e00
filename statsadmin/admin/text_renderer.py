"""
Plain Text Rendering

One ``name: value`` line per metric: text readouts, then counters and
gauges, then histograms, each group in ascending name order.
"""

from __future__ import annotations

import html
from typing import Mapping, Sequence

from statsadmin.stats.store import ParentHistogram


def render_text(
    text_readouts: Mapping[str, str],
    all_stats: Mapping[str, int],
    histograms: Sequence[ParentHistogram],
) -> str:
    lines = []

    for name, value in sorted(text_readouts.items()):
        lines.append(f'{name}: "{html.escape(value)}"\n')

    for name, value in sorted(all_stats.items()):
        lines.append(f"{name}: {value}\n")

    # Two histograms can share a name; keep both, adjacent, in snapshot order.
    for histogram in sorted(histograms, key=lambda h: h.name):
        lines.append(f"{histogram.name}: {histogram.quantile_summary()}\n")

    return "".join(lines)
