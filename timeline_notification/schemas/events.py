from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from timeline_notification.schemas.timing import Timing

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class AvailablePlugins(str, Enum):
    """Kinds of plugins able to share one event store."""

    timeline_plugin_notification = "timeline_plugin_notification"


class Event(BaseModel, Generic[PayloadT]):
    """Stored timeline record; ``event`` holds the plugin specific payload."""

    id: str
    timing: Timing
    plugin: AvailablePlugins
    event: PayloadT


class CompressedEvent(BaseModel):
    """Display-ready projection of one stored event, built per query."""

    title: str
    time: Timing
    data: dict[str, Any] = Field(default_factory=dict)


__all__ = ["AvailablePlugins", "CompressedEvent", "Event", "PayloadT"]
