"""FastAPI application entrypoint exposing the stats registry."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from runstats.config import Settings, get_settings
from runstats.lib.logger import configure_logging, get_line_logger
from runstats.server.listener import StatsCommandHandler, StatsSocketServer
from runstats.stats.host import HostStats
from runstats.stats.registry import StatsRegistry
from runstats.stats.reporter import StatsReporter
from runstats.stats.routes import router as stats_router
from runstats.w3c.reporter import W3CReporter


def create_app(registry: StatsRegistry | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the application around ``registry`` (a fresh one when omitted)."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    registry = registry if registry is not None else StatsRegistry()
    host_stats = HostStats()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        server: StatsSocketServer | None = None
        reporter: StatsReporter | None = None
        if settings.socket_enabled:
            server = StatsSocketServer(
                StatsCommandHandler(registry, host_stats),
                settings.socket_host,
                settings.socket_port,
            )
            await server.start()
        if settings.report_interval_seconds > 0:
            path = settings.w3c_log_path
            line_logger = get_line_logger("runstats.w3c.report", str(path) if path else None)
            reporter = StatsReporter(
                registry,
                W3CReporter(line_logger),
                settings.report_interval_seconds,
                include_host=settings.report_include_host,
                host_stats=host_stats,
            )
            reporter.start()
        app.state.socket_server = server
        app.state.reporter = reporter
        try:
            yield
        finally:
            if reporter is not None:
                reporter.stop()
            if server is not None:
                await server.stop()

    app = FastAPI(title="runstats", version="0.1.0", lifespan=lifespan)
    app.state.stats = registry
    app.state.host_stats = host_stats
    app.include_router(stats_router, prefix="/stats", tags=["stats"])

    @app.get("/health", tags=["system"], summary="Health check")
    async def health_check() -> JSONResponse:
        """Return liveness response for uptime monitoring."""
        return JSONResponse(content={"ok": True, "data": {"status": "healthy"}})

    return app


app = create_app()
