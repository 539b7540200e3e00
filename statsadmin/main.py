"""
Stats Admin Service

Main entry point for the admin stats server.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI

from statsadmin import __version__
from statsadmin.admin.handler import StatsHandler
from statsadmin.api.middleware import RequestStatsMiddleware
from statsadmin.api.routes import setup_admin_routes, setup_stats_routes
from statsadmin.core.config import StatsAdminConfig, get_config, set_config
from statsadmin.stats.store import StatsStore, set_default_store
from statsadmin.stats.types import ImportMode


# Configure structured logging
def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger(__name__)


async def flush_histograms(store: StatsStore, interval: float) -> None:
    """Close a histogram interval every ``interval`` seconds."""
    while True:
        await asyncio.sleep(interval)
        store.merge_histograms()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    config: StatsAdminConfig = app.state.config
    store: StatsStore = app.state.store

    logger.info("Starting stats admin server", instance_id=config.instance_id)

    store.text_readout("server.version").set(__version__)
    live = store.gauge("server.live", ImportMode.NEVER_IMPORT)
    live.set(1)

    flush_task = asyncio.create_task(
        flush_histograms(store, config.admin.histogram_flush_interval)
    )

    yield

    logger.info("Shutting down stats admin server")
    live.set(0)
    flush_task.cancel()
    try:
        await flush_task
    except asyncio.CancelledError:
        pass


def create_app(
    config: Optional[StatsAdminConfig] = None,
    store: Optional[StatsStore] = None,
) -> FastAPI:
    """
    Create and configure the stats admin FastAPI application.

    Args:
        config: Optional configuration override
        store: Optional stats store; a new process-wide store when omitted

    Returns:
        Configured FastAPI application
    """
    if config:
        set_config(config)
    else:
        config = get_config()

    setup_logging(config.monitoring.log_level.value, config.monitoring.log_format)

    if store is None:
        store = StatsStore(
            supported_quantiles=config.admin.supported_quantiles,
            histogram_max_samples=config.admin.histogram_max_samples,
        )
        set_default_store(store)

    handler = StatsHandler(
        store,
        recent_lookups_capacity=config.admin.recent_lookups_capacity,
        pretty_print_json=config.admin.pretty_print_json,
    )

    app = FastAPI(
        title="Stats Admin",
        description="Filtered export of counters, gauges, text readouts and histograms.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.handler = handler

    if config.monitoring.enable_request_stats:
        app.add_middleware(RequestStatsMiddleware, store=store)

    setup_stats_routes(app, handler)
    setup_admin_routes(app, handler)

    return app


def run_server(
    host: str = "0.0.0.0",
    port: int = 9901,
    reload: bool = False,
) -> None:
    """
    Run the stats admin server.

    Args:
        host: Host to bind to
        port: Port to bind to
        reload: Enable auto-reload for development
    """
    config = get_config()
    config.host = host
    config.port = port
    set_config(config)

    uvicorn.run(
        "statsadmin.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=config.monitoring.log_level.value.lower(),
    )


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Stats Admin server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=9901, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    run_server(host=args.host, port=args.port, reload=args.reload)
