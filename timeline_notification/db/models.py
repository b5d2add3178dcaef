"""Table backing the shared timeline event store."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


class EventRecord(Base):
    __tablename__ = "events"

    # Insertion sequence; also the order documents are streamed back in.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    plugin: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    # Naive UTC; an instant has timing_start == timing_end.
    timing_start: Mapped[datetime] = mapped_column(DateTime(), index=True, nullable=False)
    timing_end: Mapped[datetime] = mapped_column(DateTime(), index=True, nullable=False)
    event: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


__all__ = ["Base", "EventRecord"]
