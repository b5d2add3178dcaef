"""Notification plugin: stores pushed notifications as timeline events."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import ValidationError

from timeline_notification.core.errors import InitializationError
from timeline_notification.core.logging_config import get_logger, log_event
from timeline_notification.db.database import Database
from timeline_notification.plugins.base import PluginData
from timeline_notification.plugins.notification.apps_map import AppsMap
from timeline_notification.plugins.notification.icons import IconResolver
from timeline_notification.plugins.notification.router import build_router
from timeline_notification.plugins.notification.schemas import (
    Notification,
    NotificationPluginConfig,
)
from timeline_notification.schemas.events import AvailablePlugins, CompressedEvent, Event
from timeline_notification.schemas.timing import TimeRange, Timing

logger = get_logger(service="notification_plugin")


class EventIdGenerator:
    """Millisecond timestamp ids, bumped by one when the clock has not advanced."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self, moment: datetime) -> str:
        millis = int(moment.timestamp() * 1000)
        with self._lock:
            self._last = max(millis, self._last + 1)
            return str(self._last)


class NotificationPlugin:
    def __init__(
        self,
        data: PluginData,
        config: NotificationPluginConfig,
        apps_map: AppsMap,
        icon_resolver: IconResolver,
    ) -> None:
        self.data = data
        self.config = config
        self.apps_map = apps_map
        self.icon_resolver = icon_resolver
        self._ids = EventIdGenerator()

    @classmethod
    async def initialize(cls, data: PluginData) -> "NotificationPlugin":
        if data.config is None:
            raise InitializationError(
                "Failed to init notification plugin! No config was provided!"
            )
        try:
            config = NotificationPluginConfig.model_validate(data.config)
        except ValidationError as exc:
            raise InitializationError(
                "Unable to init notification plugin! Provided config does not fit "
                f"the requirements: {exc}"
            ) from exc

        try:
            apps_map = await AppsMap.load(config.apps_file)
        except InitializationError as exc:
            raise InitializationError(f"Unable to init app names lookup table: {exc}") from exc
        logger.info("app_names_loaded", count=len(apps_map), path=str(config.apps_file))

        if not config.app_icon_files.is_dir():
            log_event(
                logger,
                service="notification_plugin",
                event="icon_dir_missing",
                path=str(config.app_icon_files),
            )

        return cls(data, config, apps_map, IconResolver(config.app_icon_files))

    @classmethod
    def get_type(cls) -> AvailablePlugins:
        return AvailablePlugins.timeline_plugin_notification

    @property
    def database(self) -> Database:
        return self.data.database

    def routes(self) -> APIRouter:
        return build_router(self)

    async def record_notification(self, app: str, title: str, content: str) -> Event[Notification]:
        now = datetime.now(UTC)
        event = Event[Notification](
            id=self._ids.next_id(now),
            timing=Timing.instant(now),
            plugin=self.get_type(),
            event=Notification(app=app, title=title, content=content),
        )
        await self.database.register_single_event(event)
        return event

    async def get_compressed_events(self, query_range: TimeRange) -> list[CompressedEvent]:
        filter_ = Database.combine_documents(
            Database.generate_range_filter(query_range),
            Database.generate_find_plugin_filter(self.get_type()),
        )
        cursor = await self.database.get_events(Notification).find(filter_)

        result: list[CompressedEvent] = []
        async for stored in cursor:
            result.append(
                CompressedEvent(
                    title=self.apps_map.display_name(stored.event.app),
                    time=stored.timing,
                    data=stored.event.model_dump(mode="json"),
                )
            )
        return result


__all__ = ["EventIdGenerator", "NotificationPlugin"]
