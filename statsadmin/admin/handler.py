"""
Stats Admin Handler

Entry points behind the admin stats endpoints:
- ``/stats`` export in plain text, JSON or Prometheus format
- ``/stats/prometheus``
- ``/reset_counters``
- ``/stats/recentlookups`` and its enable/disable/clear actions

Every request is validated before any metric is read, so error responses
never carry partial output.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Dict, List, Optional, Pattern, Union

import structlog

from statsadmin.admin.filters import InvalidFilterError, compile_filter, filter_metrics
from statsadmin.admin.json_renderer import render_json
from statsadmin.admin.prometheus import PROMETHEUS_CONTENT_TYPE, render_prometheus
from statsadmin.admin.recent_lookups import (
    DEFAULT_RECENT_LOOKUPS_CAPACITY,
    RecentLookupsController,
    render_report,
)
from statsadmin.admin.text_renderer import render_text
from statsadmin.stats.store import Counter, Gauge, ParentHistogram
from statsadmin.stats.types import ImportMode, StatsSource

logger = structlog.get_logger(__name__)

TEXT_CONTENT_TYPE = "text/plain; charset=UTF-8"
JSON_CONTENT_TYPE = "application/json"

USAGE_MESSAGE = "usage: /stats?format=json  or /stats?format=prometheus \n\n"
OK_BODY = "OK\n"


class ExportFormat(str, Enum):
    """Output encodings of the stats export."""
    PLAIN = "plain"
    JSON = "json"
    PROMETHEUS = "prometheus"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FormatSelector:
    """The ``format`` query parameter, decided once per request."""
    format: ExportFormat = ExportFormat.PLAIN
    raw: Optional[str] = None

    @classmethod
    def parse(cls, raw: Optional[str]) -> "FormatSelector":
        if raw is None:
            return cls(ExportFormat.PLAIN)
        if raw == "json":
            return cls(ExportFormat.JSON, raw)
        if raw == "prometheus":
            return cls(ExportFormat.PROMETHEUS, raw)
        return cls(ExportFormat.UNKNOWN, raw)


@dataclass
class AdminResponse:
    """Body, status and content type of one admin response."""
    body: str
    status: HTTPStatus = HTTPStatus.OK
    content_type: str = TEXT_CONTENT_TYPE


@dataclass
class FilteredStats:
    """Metrics that passed the filters, grouped for rendering."""
    counters: List[Counter] = field(default_factory=list)
    gauges: List[Gauge] = field(default_factory=list)
    histograms: List[ParentHistogram] = field(default_factory=list)
    text_readouts: Dict[str, str] = field(default_factory=dict)
    all_stats: Dict[str, int] = field(default_factory=dict)


def collect_stats(source: StatsSource, used_only: bool, regex: Optional[Pattern[str]]) -> FilteredStats:
    """Run every metric through the filters and group the survivors."""
    result = FilteredStats()

    result.counters = filter_metrics(source.counters(), used_only, regex)
    for counter in result.counters:
        result.all_stats.setdefault(counter.name, counter.value)

    result.gauges = filter_metrics(source.gauges(), used_only, regex)
    for gauge in result.gauges:
        assert gauge.import_mode != ImportMode.UNINITIALIZED, (
            f"gauge {gauge.name} reached export with an uninitialized import mode"
        )
        result.all_stats.setdefault(gauge.name, gauge.value)

    for readout in filter_metrics(source.text_readouts(), used_only, regex):
        result.text_readouts.setdefault(readout.name, readout.value)

    result.histograms = filter_metrics(source.histograms(), used_only, regex)
    return result


class StatsHandler:
    """
    Admin stats handler over a stats source.

    Usage:
        handler = StatsHandler(store)
        response = handler.handle_stats(used_only=True, format="json")
    """

    def __init__(
        self,
        source: StatsSource,
        recent_lookups_capacity: int = DEFAULT_RECENT_LOOKUPS_CAPACITY,
        pretty_print_json: bool = False,
    ):
        self.source = source
        self.pretty_print_json = pretty_print_json
        self.recent_lookups = RecentLookupsController(
            source.symbol_table, recent_lookups_capacity
        )

    # === Export ===

    def handle_stats(
        self,
        used_only: bool = False,
        filter_pattern: Optional[str] = None,
        format: Union[str, FormatSelector, None] = None,
    ) -> AdminResponse:
        """Export filtered stats in the requested format."""
        try:
            regex = compile_filter(filter_pattern)
        except InvalidFilterError as e:
            return self._invalid_filter(e)

        selector = format if isinstance(format, FormatSelector) else FormatSelector.parse(format)

        if selector.format == ExportFormat.UNKNOWN:
            logger.warning("Unknown stats format", format=selector.raw)
            return AdminResponse(USAGE_MESSAGE, HTTPStatus.NOT_FOUND)

        stats = collect_stats(self.source, used_only, regex)

        if selector.format == ExportFormat.JSON:
            body = render_json(
                stats.text_readouts, stats.all_stats, stats.histograms, self.pretty_print_json
            )
            return AdminResponse(body, content_type=JSON_CONTENT_TYPE)

        if selector.format == ExportFormat.PROMETHEUS:
            return self._prometheus(stats, used_only, regex)

        body = render_text(stats.text_readouts, stats.all_stats, stats.histograms)
        return AdminResponse(body)

    def handle_prometheus_stats(
        self,
        used_only: bool = False,
        filter_pattern: Optional[str] = None,
    ) -> AdminResponse:
        """Export filtered stats in Prometheus exposition format."""
        return self.handle_stats(used_only, filter_pattern, FormatSelector(ExportFormat.PROMETHEUS))

    def _prometheus(
        self,
        stats: FilteredStats,
        used_only: bool,
        regex: Optional[Pattern[str]],
    ) -> AdminResponse:
        out = io.StringIO()
        render_prometheus(stats.counters, stats.gauges, stats.histograms, out, used_only, regex)
        return AdminResponse(out.getvalue(), content_type=PROMETHEUS_CONTENT_TYPE)

    def _invalid_filter(self, error: InvalidFilterError) -> AdminResponse:
        logger.warning("Invalid stats filter", pattern=error.pattern, error=error.reason)
        return AdminResponse(f'Invalid regex: "{error.reason}"\n', HTTPStatus.BAD_REQUEST)

    # === Administrative actions ===

    def reset_counters(self) -> AdminResponse:
        """Zero every counter, then clear recent lookups. Not atomic."""
        counters = self.source.counters()
        for counter in counters:
            counter.reset()
        self.source.symbol_table.clear_recent_lookups()
        logger.info("Counters reset", count=len(counters))
        return AdminResponse(OK_BODY)

    def recent_lookups_report(self) -> AdminResponse:
        return AdminResponse(render_report(self.recent_lookups.query()))

    def recent_lookups_enable(self) -> AdminResponse:
        self.recent_lookups.enable()
        return AdminResponse(OK_BODY)

    def recent_lookups_disable(self) -> AdminResponse:
        self.recent_lookups.disable()
        return AdminResponse(OK_BODY)

    def recent_lookups_clear(self) -> AdminResponse:
        self.recent_lookups.clear()
        return AdminResponse(OK_BODY)
