"""
Stats Admin Module

Filtering, quantile aggregation and rendering of stats exports, plus the
recent lookups controller.
"""

from statsadmin.admin.filters import (
    InvalidFilterError,
    compile_filter,
    filter_metrics,
    should_show_metric,
)
from statsadmin.admin.quantiles import QuantilePoint, aggregate, supported_percentiles
from statsadmin.admin.text_renderer import render_text
from statsadmin.admin.json_renderer import render_json
from statsadmin.admin.prometheus import render_prometheus
from statsadmin.admin.recent_lookups import (
    DEFAULT_RECENT_LOOKUPS_CAPACITY,
    RecentLookupsController,
    RecentLookupsReport,
    render_report,
)
from statsadmin.admin.handler import (
    AdminResponse,
    ExportFormat,
    FormatSelector,
    StatsHandler,
    collect_stats,
)

__all__ = [
    "InvalidFilterError",
    "compile_filter",
    "filter_metrics",
    "should_show_metric",
    "QuantilePoint",
    "aggregate",
    "supported_percentiles",
    "render_text",
    "render_json",
    "render_prometheus",
    "DEFAULT_RECENT_LOOKUPS_CAPACITY",
    "RecentLookupsController",
    "RecentLookupsReport",
    "render_report",
    "AdminResponse",
    "ExportFormat",
    "FormatSelector",
    "StatsHandler",
    "collect_stats",
]
