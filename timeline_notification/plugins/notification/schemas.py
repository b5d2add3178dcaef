from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class Notification(BaseModel):
    """Payload pushed by a device: source app id, title and body text."""

    app: str
    title: str
    content: str


class NotificationPluginConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    apps_file: Path
    app_icon_files: Path


__all__ = ["Notification", "NotificationPluginConfig"]
