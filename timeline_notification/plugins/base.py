"""Capability interface every timeline plugin implements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from fastapi import APIRouter

from timeline_notification.schemas.events import AvailablePlugins, CompressedEvent
from timeline_notification.schemas.timing import TimeRange

if TYPE_CHECKING:
    from timeline_notification.core.config import Settings
    from timeline_notification.db.database import Database
    from timeline_notification.services.error_reporter import ErrorReporter


@dataclass(frozen=True)
class PluginData:
    """Everything the host hands a plugin when it is initialized."""

    database: "Database"
    settings: "Settings"
    error_reporter: "ErrorReporter"
    config: dict[str, Any] | None = None


@runtime_checkable
class TimelinePlugin(Protocol):
    @classmethod
    async def initialize(cls, data: PluginData) -> "TimelinePlugin": ...

    @classmethod
    def get_type(cls) -> AvailablePlugins: ...

    def routes(self) -> APIRouter: ...

    async def get_compressed_events(
        self, query_range: TimeRange
    ) -> list[CompressedEvent]: ...


__all__ = ["PluginData", "TimelinePlugin"]
