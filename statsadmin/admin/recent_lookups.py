"""
Recent Lookups Controller

Enable, disable, clear and query the symbol table's recent lookups tracker.
Tracking starts disabled and changes only through these operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import structlog

from statsadmin.stats.recent_lookups import SymbolTable

logger = structlog.get_logger(__name__)

DEFAULT_RECENT_LOOKUPS_CAPACITY = 100

NOT_ENABLED_MESSAGE = (
    "Lookup tracking is not enabled. Use /stats/recentlookups/enable to enable.\n"
)


@dataclass
class RecentLookupsReport:
    """Result of a recent lookups query."""
    rows: List[Tuple[str, int]] = field(default_factory=list)
    total: int = 0
    enabled: bool = True

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "total": self.total,
            "lookups": [{"name": name, "count": count} for name, count in self.rows],
        }


class RecentLookupsController:
    """
    Toggle and query over a symbol table's lookup tracking.

    Usage:
        controller = RecentLookupsController(store.symbol_table)
        controller.enable()
        report = controller.query()
    """

    def __init__(
        self,
        symbol_table: SymbolTable,
        capacity: int = DEFAULT_RECENT_LOOKUPS_CAPACITY,
    ):
        self._symbol_table = symbol_table
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        """Current tracker capacity; 0 means disabled."""
        return self._symbol_table.recent_lookup_capacity()

    @property
    def enabled(self) -> bool:
        return self.capacity > 0

    def enable(self) -> None:
        self._symbol_table.set_recent_lookup_capacity(self._capacity)
        logger.info("Recent lookups tracking enabled", capacity=self._capacity)

    def disable(self) -> None:
        self._symbol_table.set_recent_lookup_capacity(0)
        logger.info("Recent lookups tracking disabled")

    def clear(self) -> None:
        self._symbol_table.clear_recent_lookups()
        logger.info("Recent lookups cleared")

    def query(self) -> RecentLookupsReport:
        """
        Read tracked names in the tracker's own order.

        ``total`` counts every lookup since the last clear, so it can exceed
        the sum of row counts once names have been evicted.
        """
        rows: List[Tuple[str, int]] = []
        total = self._symbol_table.get_recent_lookups(
            lambda name, count: rows.append((name, count))
        )
        enabled = bool(rows) or self._symbol_table.recent_lookup_capacity() != 0
        return RecentLookupsReport(rows=rows, total=total, enabled=enabled)


def render_report(report: RecentLookupsReport) -> str:
    """Render a report as the plain text table."""
    if report.enabled:
        table = "   Count Lookup\n" + "".join(
            f"{count:8d} {name}\n" for name, count in report.rows
        )
    else:
        table = NOT_ENABLED_MESSAGE
    return f"{table}\ntotal: {report.total}\n"
