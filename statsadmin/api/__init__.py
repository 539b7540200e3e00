"""Stats Admin API Module - FastAPI routes and middleware."""

from statsadmin.api.middleware import RequestStatsMiddleware
from statsadmin.api.routes import setup_admin_routes, setup_stats_routes, to_response

__all__ = [
    "RequestStatsMiddleware",
    "setup_admin_routes",
    "setup_stats_routes",
    "to_response",
]
