"""Tiered lookup of the icon shown next to a notification."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

STATIC_DIR = Path(__file__).resolve().parent / "static"
BUNDLED_ICON_DIR = STATIC_DIR / "icons"
DEFAULT_ICON = STATIC_DIR / "icon.svg"
BUNDLED_ICON_EXTENSION = ".ico"

TIER_INSTALLATION = "installation"
TIER_BUNDLED = "bundled"
TIER_DEFAULT = "default"


@dataclass(frozen=True)
class ResolvedIcon:
    tier: str
    path: Path


def is_plain_filename(app: str) -> bool:
    """True when ``app`` can only name a file directly inside a directory."""

    if not app or app in {".", ".."}:
        return False
    return not any(char in app for char in ("/", "\\", "\x00"))


def _is_readable_file(path: Path) -> bool:
    try:
        if not path.is_file():
            return False
        with path.open("rb"):
            return True
    except (OSError, ValueError):
        return False


class IconResolver:
    """Resolve an app id to an icon file, most specific tier first.

    1. ``<icon_dir>/<app>`` from the installation specific directory.
    2. ``<bundled_dir>/<app lowercased>.ico`` shipped with the plugin.
    3. ``default_icon``, shared by every unresolved app.

    A tier whose file is missing or unreadable is skipped; filesystem errors
    never escape :meth:`resolve`.
    """

    def __init__(
        self,
        icon_dir: Path,
        *,
        bundled_dir: Path = BUNDLED_ICON_DIR,
        default_icon: Path = DEFAULT_ICON,
        extension: str = BUNDLED_ICON_EXTENSION,
    ) -> None:
        self.icon_dir = Path(icon_dir)
        self.bundled_dir = Path(bundled_dir)
        self.default_icon = Path(default_icon)
        self.extension = extension

    def candidates(self, app: str) -> list[ResolvedIcon]:
        tiers: list[ResolvedIcon] = []
        if is_plain_filename(app):
            tiers.append(ResolvedIcon(TIER_INSTALLATION, self.icon_dir / app))
            bundled_name = f"{app.lower()}{self.extension}"
            tiers.append(ResolvedIcon(TIER_BUNDLED, self.bundled_dir / bundled_name))
        tiers.append(ResolvedIcon(TIER_DEFAULT, self.default_icon))
        return tiers

    def resolve(self, app: str) -> ResolvedIcon | None:
        for candidate in self.candidates(app):
            if _is_readable_file(candidate.path):
                return candidate
        return None


__all__ = [
    "BUNDLED_ICON_DIR",
    "DEFAULT_ICON",
    "IconResolver",
    "ResolvedIcon",
    "TIER_BUNDLED",
    "TIER_DEFAULT",
    "TIER_INSTALLATION",
    "is_plain_filename",
]
