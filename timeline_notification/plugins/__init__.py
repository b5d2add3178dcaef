from .base import PluginData, TimelinePlugin
from .registry import PluginRegistry, plugin_mount_path

__all__ = ["PluginData", "PluginRegistry", "TimelinePlugin", "plugin_mount_path"]
