from .events import AvailablePlugins, CompressedEvent, Event
from .timing import TimeRange, Timing

__all__ = ["AvailablePlugins", "CompressedEvent", "Event", "TimeRange", "Timing"]
