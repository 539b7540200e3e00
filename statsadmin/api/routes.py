"""
Stats Admin API Routes

FastAPI routes for the stats export and administrative endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Query
from fastapi.responses import Response

import structlog

from statsadmin.admin.handler import AdminResponse, StatsHandler

logger = structlog.get_logger(__name__)


def to_response(result: AdminResponse) -> Response:
    """Convert a handler result into an HTTP response."""
    return Response(
        content=result.body,
        status_code=int(result.status),
        media_type=result.content_type,
    )


def setup_stats_routes(app: FastAPI, handler: StatsHandler) -> None:
    """Setup the stats export routes."""

    @app.get("/stats")
    async def stats(
        usedonly: Optional[str] = Query(default=None, description="Only show used metrics"),
        filter_pattern: Optional[str] = Query(
            default=None, alias="filter", description="Regex that metric names must match"
        ),
        format_name: Optional[str] = Query(
            default=None, alias="format", description="json or prometheus; plain text when absent"
        ),
    ):
        """Export stats as plain text, JSON or Prometheus text."""
        return to_response(
            handler.handle_stats(
                used_only=usedonly is not None,
                filter_pattern=filter_pattern,
                format=format_name,
            )
        )

    @app.get("/stats/prometheus")
    async def prometheus_stats(
        usedonly: Optional[str] = Query(default=None),
        filter_pattern: Optional[str] = Query(default=None, alias="filter"),
    ):
        """Export stats in Prometheus exposition format."""
        return to_response(
            handler.handle_prometheus_stats(
                used_only=usedonly is not None,
                filter_pattern=filter_pattern,
            )
        )


def setup_admin_routes(app: FastAPI, handler: StatsHandler) -> None:
    """Setup the administrative routes."""

    @app.post("/reset_counters")
    async def reset_counters():
        """Reset every counter to zero and clear recent lookups."""
        return to_response(handler.reset_counters())

    @app.get("/stats/recentlookups")
    async def recent_lookups():
        """Show the recently looked-up metric names."""
        return to_response(handler.recent_lookups_report())

    @app.post("/stats/recentlookups/enable")
    async def recent_lookups_enable():
        """Start tracking metric-name lookups."""
        return to_response(handler.recent_lookups_enable())

    @app.post("/stats/recentlookups/disable")
    async def recent_lookups_disable():
        """Stop tracking metric-name lookups."""
        return to_response(handler.recent_lookups_disable())

    @app.post("/stats/recentlookups/clear")
    async def recent_lookups_clear():
        """Forget tracked lookups and reset the total."""
        return to_response(handler.recent_lookups_clear())
