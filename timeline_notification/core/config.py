"""Environment-driven configuration for the timeline host and its plugins."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values, load_dotenv

from timeline_notification.core.errors import InitializationError

LOGGER = logging.getLogger(__name__)

_ORIGINAL_ENV = dict(os.environ)
_PROJECT_DIR = Path(__file__).resolve().parents[2]

DEFAULT_DATABASE_URL = "sqlite:///timeline.db"
DEFAULT_ERROR_REPORT_TIMEOUT = 5.0

# plugin kind -> {config key: environment variable}
PLUGIN_ENVIRONMENT: dict[str, dict[str, str]] = {
    "timeline_plugin_notification": {
        "apps_file": "NOTIFICATION_APPS_FILE",
        "app_icon_files": "NOTIFICATION_ICON_DIR",
    },
}


def load_env_files(base_dir: Path = _PROJECT_DIR) -> None:
    """Apply ``.env`` then ``.env.local``; the process environment always wins."""

    base_env = base_dir / ".env"
    if base_env.exists():
        load_dotenv(base_env, override=False)

    local_override = base_dir / ".env.local"
    if local_override.exists():
        for key, value in dotenv_values(local_override).items():
            if value is None or key in _ORIGINAL_ENV:
                continue
            os.environ[key] = value


load_env_files()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name, default)
    if isinstance(value, str):
        value = value.strip() or None
    return value


def _get_float_env(name: str, default: float) -> float:
    raw_value = _get_env(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        LOGGER.warning("invalid_float_env", extra={"name": name, "value": raw_value})
        return default


def _require_env(name: str) -> str:
    value = _get_env(name)
    if value is None:
        LOGGER.error("Missing required environment variable: %s", name)
        raise InitializationError(f"Missing required environment variable: {name}")
    return value


class Settings:
    """Snapshot of the environment taken when the host starts."""

    def __init__(self) -> None:
        # Kept verbatim (no strip) so the ingestion secret compares exactly.
        _require_env("TIMELINE_PASSWORD")
        self.PASSWORD: str = os.environ["TIMELINE_PASSWORD"]
        self.ERROR_REPORT_URL: str | None = _get_env("TIMELINE_ERROR_REPORT_URL")
        self.ERROR_REPORT_TIMEOUT: float = _get_float_env(
            "ERROR_REPORT_TIMEOUT", DEFAULT_ERROR_REPORT_TIMEOUT
        )
        self.DATABASE_URL: str = _get_env("DATABASE_URL") or DEFAULT_DATABASE_URL
        self.LOG_LEVEL: str = (_get_env("TIMELINE_LOG_LEVEL") or "INFO").upper()

    def plugin_config(self, kind: str) -> dict[str, Any] | None:
        """Collect the raw config mapping of one plugin, ``None`` when nothing is set."""

        keys = PLUGIN_ENVIRONMENT.get(kind)
        if not keys:
            return None
        config = {
            key: value
            for key, env_name in keys.items()
            if (value := _get_env(env_name)) is not None
        }
        return config or None


__all__ = ["PLUGIN_ENVIRONMENT", "Settings", "load_env_files"]
