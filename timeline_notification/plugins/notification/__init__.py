from .apps_map import AppsMap
from .icons import IconResolver
from .plugin import NotificationPlugin

__all__ = ["AppsMap", "IconResolver", "NotificationPlugin"]
