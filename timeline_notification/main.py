from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timeline_notification.core.config import Settings
from timeline_notification.core.http_logging import RequestLogMiddleware
from timeline_notification.core.logging_config import configure_logging, get_logger
from timeline_notification.core.metrics import MetricsMiddleware, metrics_router
from timeline_notification.db.database import Database
from timeline_notification.middleware.error_handler import register_error_handlers
from timeline_notification.plugins.notification.plugin import NotificationPlugin
from timeline_notification.plugins.registry import PluginRegistry
from timeline_notification.routers import timeline
from timeline_notification.services.error_reporter import ErrorReporter

logger = get_logger(service="timeline_host")


def default_registry() -> PluginRegistry:
    registry = PluginRegistry()
    registry.register(NotificationPlugin)
    return registry


def create_app(
    *,
    settings: Settings | None = None,
    database: Database | None = None,
    registry: PluginRegistry | None = None,
    error_reporter: ErrorReporter | None = None,
) -> FastAPI:
    """Build the host application; plugins are initialized in the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 🔹 Startup: nothing is served until every plugin is ready.
        active_settings = settings or Settings()
        configure_logging(active_settings.LOG_LEVEL)

        owns_database = database is None
        active_database = database or Database.from_url(active_settings.DATABASE_URL)
        reporter = error_reporter or ErrorReporter(
            timeout=active_settings.ERROR_REPORT_TIMEOUT
        )
        active_registry = registry or default_registry()

        try:
            await active_registry.initialize_all(
                database=active_database,
                settings=active_settings,
                error_reporter=reporter,
            )
        except Exception:
            if owns_database:
                active_database.dispose()
            raise
        active_registry.mount(app)

        app.state.settings = active_settings
        app.state.database = active_database
        app.state.error_reporter = reporter
        app.state.registry = active_registry
        logger.info("backend_started", plugins=[kind.value for kind in active_registry.kinds])

        yield

        # 🔹 Shutdown
        active_registry.unmount(app)
        await reporter.drain()
        if owns_database:
            active_database.dispose()
            logger.info("engine_disposed")

    app = FastAPI(
        title="Timeline Notification API",
        version="0.1.0",
        description="Notification ingestion plugin for the personal timeline",
        lifespan=lifespan,
    )

    raw_origins = os.environ.get("CORS_ALLOW_ORIGINS", "http://localhost:3000")
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestLogMiddleware)
    register_error_handlers(app)

    app.include_router(metrics_router)
    app.include_router(timeline.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
