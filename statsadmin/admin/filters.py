"""
Metric Filtering

Decides which metrics appear in an export, by usage state and name pattern.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern, TypeVar

from statsadmin.stats.store import Metric

M = TypeVar("M", bound=Metric)


class InvalidFilterError(ValueError):
    """The ``filter`` query parameter is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid regex: {reason}")
        self.pattern = pattern
        self.reason = reason


def compile_filter(pattern: Optional[str]) -> Optional[Pattern[str]]:
    """Compile a name filter, or return None when no filter was given."""
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidFilterError(pattern, str(e)) from e


def should_show_metric(metric: Metric, used_only: bool, regex: Optional[Pattern[str]]) -> bool:
    """
    Check whether a metric passes both filters.

    Args:
        metric: Any metric handle exposing ``name`` and ``used``
        used_only: Drop metrics that were never incremented, set or observed
        regex: Drop metrics whose name has no match (search, not full match)
    """
    if used_only and not metric.used:
        return False
    if regex is not None and regex.search(metric.name) is None:
        return False
    return True


def filter_metrics(
    metrics: Iterable[M],
    used_only: bool,
    regex: Optional[Pattern[str]],
) -> List[M]:
    """Keep the metrics that pass, preserving their order."""
    return [m for m in metrics if should_show_metric(m, used_only, regex)]
