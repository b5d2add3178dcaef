"""Lookup table translating app identifiers into display names."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from timeline_notification.core.errors import InitializationError

SEPARATOR = ":"


def parse_app_names(lines: Iterable[str]) -> dict[str, str]:
    """Parse ``id:displayname`` lines; lines without a separator are skipped.

    Only the first separator splits, so display names may contain ``:``.
    Later duplicates overwrite earlier ones.
    """

    names: dict[str, str] = {}
    for line in lines:
        key, separator, value = line.partition(SEPARATOR)
        if not separator:
            continue
        names[key] = value
    return names


class AppsMap:
    """Immutable app-id -> display-name table, loaded once per process."""

    def __init__(self, names: Mapping[str, str]) -> None:
        self._names: Mapping[str, str] = MappingProxyType(dict(names))

    @classmethod
    def from_text(cls, text: str) -> "AppsMap":
        return cls(parse_app_names(text.splitlines()))

    @classmethod
    async def load(cls, path: Path) -> "AppsMap":
        try:
            text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InitializationError(f"Error reading apps file: {exc}") from exc
        return cls.from_text(text)

    def get_app_name(self, package: str) -> str | None:
        return self._names.get(package)

    def display_name(self, package: str) -> str:
        """Resolved name, or the raw identifier when it is unknown."""

        name = self._names.get(package)
        return package if name is None else name

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, package: object) -> bool:
        return package in self._names


__all__ = ["AppsMap", "parse_app_names"]
