"""
Request Statistics Middleware

Records admin request counts, status classes, concurrency and latency into
the stats store.
"""

from __future__ import annotations

import time
from typing import Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

import structlog

from statsadmin.stats.store import Counter, StatsStore
from statsadmin.stats.types import ImportMode

logger = structlog.get_logger(__name__)


class RequestStatsMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for admin request statistics.

    Handles are resolved once up front; per-status-class counters are
    resolved on first use and cached.
    """

    def __init__(self, app: ASGIApp, store: StatsStore, prefix: str = "http.admin"):
        super().__init__(app)
        self.store = store
        self.prefix = prefix

        self.rq_total = store.counter(f"{prefix}.downstream_rq_total")
        self.rq_active = store.gauge(f"{prefix}.downstream_rq_active", ImportMode.ACCUMULATE)
        self.rq_time = store.histogram(f"{prefix}.downstream_rq_time")
        self._status_counters: Dict[str, Counter] = {}

    def _status_counter(self, status_code: int) -> Counter:
        status_class = f"{status_code // 100}xx"
        counter = self._status_counters.get(status_class)
        if counter is None:
            counter = self.store.counter(f"{self.prefix}.downstream_rq_{status_class}")
            self._status_counters[status_class] = counter
        return counter

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        """Handle request with statistics."""
        self.rq_total.inc()
        self.rq_active.add()

        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response

        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.rq_active.sub()
            self.rq_time.record_value(duration_ms)
            self._status_counter(status_code).inc()

            logger.debug(
                "Admin request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
            )
