"""Points and spans of time attached to timeline events."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, field_validator, model_serializer, model_validator


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TimeRange(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _ordered(self) -> "TimeRange":
        if self.start > self.end:
            raise ValueError("range start must not be after range end")
        return self

    def includes(self, moment: datetime) -> bool:
        return self.start <= ensure_utc(moment) <= self.end


class Timing(BaseModel):
    """Either an instant (``start == end``) or a closed span of time.

    Serialized externally tagged, ``{"Instant": t}`` or
    ``{"Range": {"start": s, "end": e}}``, which is also the accepted input.
    """

    start: datetime
    end: datetime
    is_instant: bool = True

    @classmethod
    def instant(cls, moment: datetime) -> "Timing":
        return cls(start=moment, end=moment, is_instant=True)

    @classmethod
    def range(cls, start: datetime, end: datetime) -> "Timing":
        return cls(start=start, end=end, is_instant=False)

    @model_validator(mode="before")
    @classmethod
    def _from_tagged(cls, data: Any) -> Any:
        if isinstance(data, dict):
            if "Instant" in data:
                return {"start": data["Instant"], "end": data["Instant"], "is_instant": True}
            if "Range" in data:
                span = data["Range"] or {}
                return {"start": span.get("start"), "end": span.get("end"), "is_instant": False}
        return data

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _consistent(self) -> "Timing":
        if self.start > self.end:
            raise ValueError("timing start must not be after timing end")
        if self.is_instant and self.start != self.end:
            raise ValueError("an instant must start and end at the same moment")
        return self

    @model_serializer(mode="plain")
    def _to_tagged(self) -> dict[str, Any]:
        if self.is_instant:
            return {"Instant": self.start.isoformat()}
        return {"Range": {"start": self.start.isoformat(), "end": self.end.isoformat()}}

    def overlaps(self, query_range: TimeRange) -> bool:
        return self.start <= query_range.end and self.end >= query_range.start


__all__ = ["TimeRange", "Timing", "ensure_utc"]
