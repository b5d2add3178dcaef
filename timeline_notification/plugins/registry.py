from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import FastAPI
from starlette.routing import BaseRoute

from timeline_notification.core.config import Settings
from timeline_notification.core.errors import InitializationError
from timeline_notification.core.logging_config import get_logger, log_event
from timeline_notification.db.database import Database
from timeline_notification.plugins.base import PluginData, TimelinePlugin
from timeline_notification.schemas.events import AvailablePlugins, CompressedEvent
from timeline_notification.schemas.timing import TimeRange
from timeline_notification.services.error_reporter import ErrorReporter

PLUGIN_MOUNT_PREFIX = "/api/plugin"

ConfigSource = Callable[[AvailablePlugins], dict[str, Any] | None]


def plugin_mount_path(kind: AvailablePlugins) -> str:
    return f"{PLUGIN_MOUNT_PREFIX}/{AvailablePlugins(kind).value}"


class PluginRegistry:
    """Maps plugin kinds to plugin classes and, once started, to live handles."""

    def __init__(self) -> None:
        self._classes: dict[AvailablePlugins, type[TimelinePlugin]] = {}
        self._handles: dict[AvailablePlugins, TimelinePlugin] = {}
        self._mounted: list[BaseRoute] = []
        self._logger = get_logger(service="plugin_registry")

    def register(self, plugin_cls: type[TimelinePlugin]) -> type[TimelinePlugin]:
        kind = plugin_cls.get_type()
        if kind in self._classes:
            raise ValueError(f"Plugin {kind.value} is already registered")
        self._classes[kind] = plugin_cls
        return plugin_cls

    @property
    def kinds(self) -> list[AvailablePlugins]:
        return list(self._classes)

    async def initialize_all(
        self,
        *,
        database: Database,
        settings: Settings,
        error_reporter: ErrorReporter,
        config_source: ConfigSource | None = None,
    ) -> None:
        """Build every registered plugin; the first failure aborts startup."""

        source = config_source or (lambda kind: settings.plugin_config(kind.value))
        for kind, plugin_cls in self._classes.items():
            data = PluginData(
                database=database,
                settings=settings,
                error_reporter=error_reporter,
                config=source(kind),
            )
            try:
                self._handles[kind] = await plugin_cls.initialize(data)
            except InitializationError as exc:
                log_event(
                    self._logger,
                    service="plugin_registry",
                    event="plugin_init_failed",
                    level="error",
                    plugin=kind.value,
                    error=str(exc),
                )
                raise
            self._logger.info("plugin_initialized", plugin=kind.value)

    def get(self, kind: AvailablePlugins) -> TimelinePlugin:
        try:
            return self._handles[AvailablePlugins(kind)]
        except KeyError:
            raise LookupError(f"Plugin {kind} is not initialized") from None

    def mount(self, app: FastAPI) -> None:
        """Add every plugin's routes to ``app``; :meth:`unmount` takes them out again."""

        self.unmount(app)
        first_new = len(app.router.routes)
        for kind, handle in self._handles.items():
            app.include_router(handle.routes(), prefix=plugin_mount_path(kind))
        self._mounted = app.router.routes[first_new:]
        app.openapi_schema = None

    def unmount(self, app: FastAPI) -> None:
        for route in self._mounted:
            if route in app.router.routes:
                app.router.routes.remove(route)
        self._mounted = []
        app.openapi_schema = None

    async def get_compressed_events(self, query_range: TimeRange) -> list[CompressedEvent]:
        events: list[CompressedEvent] = []
        for handle in self._handles.values():
            events.extend(await handle.get_compressed_events(query_range))
        return events


__all__ = ["PLUGIN_MOUNT_PREFIX", "PluginRegistry", "plugin_mount_path"]
