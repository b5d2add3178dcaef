"""Document-style event store shared by every timeline plugin.

Plugins never talk SQL: they build filters with the ``generate_*`` helpers,
combine them with :meth:`Database.combine_documents` and stream typed
:class:`~timeline_notification.schemas.events.Event` objects back through
``get_events(model).find(filter)``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Generic

from pydantic import ValidationError
from sqlalchemy import ColumnElement, and_, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timeline_notification.core.errors import StoreReadError, StoreWriteError
from timeline_notification.core.logging_config import get_logger, log_event
from timeline_notification.db.models import Base, EventRecord
from timeline_notification.schemas.events import AvailablePlugins, Event, PayloadT
from timeline_notification.schemas.timing import TimeRange, Timing, ensure_utc

logger = get_logger(service="database")

DEFAULT_BATCH_SIZE = 100

Filter = ColumnElement[bool]


def _to_storage(moment: datetime) -> datetime:
    return ensure_utc(moment).replace(tzinfo=None)


def build_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for ``database_url``."""

    if database_url.startswith("sqlite"):
        connect_args: dict[str, Any] = {"check_same_thread": False}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            # One shared connection, otherwise every session sees an empty database.
            return create_engine(
                database_url,
                future=True,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        return create_engine(database_url, future=True, connect_args=connect_args)
    return create_engine(database_url, future=True, pool_pre_ping=True)


class EventCursor(Generic[PayloadT]):
    """Async iterator over matching events, fetched in keyset-paginated batches."""

    def __init__(
        self,
        database: "Database",
        model: type[PayloadT],
        filter_: Filter | None,
        batch_size: int,
    ) -> None:
        self._database = database
        self._model = model
        self._filter = filter_
        self._batch_size = batch_size
        self._buffer: list[EventRecord] = []
        self._last_seq = 0
        self._exhausted = False

    def __aiter__(self) -> "EventCursor[PayloadT]":
        return self

    async def __anext__(self) -> Event[PayloadT]:
        if not self._buffer:
            if self._exhausted:
                raise StopAsyncIteration
            self._buffer = await asyncio.to_thread(self._fetch_batch)
            if len(self._buffer) < self._batch_size:
                self._exhausted = True
            if not self._buffer:
                raise StopAsyncIteration

        record = self._buffer.pop(0)
        self._last_seq = record.seq
        return self._decode(record)

    def _fetch_batch(self) -> list[EventRecord]:
        statement = select(EventRecord).where(EventRecord.seq > self._last_seq)
        if self._filter is not None:
            statement = statement.where(self._filter)
        statement = statement.order_by(EventRecord.seq).limit(self._batch_size)
        try:
            with self._database.session_factory() as session:
                records = list(session.scalars(statement))
                session.expunge_all()
                return records
        except SQLAlchemyError as exc:
            log_event(
                logger,
                service="database",
                event="event_read_failed",
                level="error",
                error=str(exc),
            )
            raise StoreReadError(f"Failed to read events: {exc}") from exc

    def _decode(self, record: EventRecord) -> Event[PayloadT]:
        start = ensure_utc(record.timing_start)
        end = ensure_utc(record.timing_end)
        timing = Timing.instant(start) if start == end else Timing.range(start, end)
        try:
            return Event[self._model].model_validate(
                {
                    "id": record.id,
                    "timing": timing,
                    "plugin": record.plugin,
                    "event": record.event,
                }
            )
        except ValidationError as exc:
            log_event(
                logger,
                service="database",
                event="event_decode_failed",
                level="error",
                id=record.id,
                plugin=record.plugin,
                error=str(exc),
            )
            raise StoreReadError(f"Stored event {record.id} does not match its schema: {exc}") from exc


class EventCollection(Generic[PayloadT]):
    def __init__(self, database: "Database", model: type[PayloadT]) -> None:
        self._database = database
        self._model = model

    async def find(self, filter_: Filter | None = None) -> EventCursor[PayloadT]:
        return EventCursor(self._database, self._model, filter_, self._database.batch_size)


class Database:
    """Append-only event store on top of a SQLAlchemy engine."""

    def __init__(self, engine: Engine, *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self.engine = engine
        self.batch_size = max(1, batch_size)
        self.session_factory = sessionmaker(bind=engine, autoflush=False, future=True)

    @classmethod
    def from_url(cls, database_url: str, **kwargs: Any) -> "Database":
        database = cls(build_engine(database_url), **kwargs)
        database.create_all()
        return database

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("database_ready", dialect=self.engine.dialect.name)

    def dispose(self) -> None:
        self.engine.dispose()

    async def register_single_event(self, event: Event[Any]) -> None:
        """Append one event; any storage failure surfaces as :class:`StoreWriteError`."""

        record = EventRecord(
            id=event.id,
            plugin=AvailablePlugins(event.plugin).value,
            timing_start=_to_storage(event.timing.start),
            timing_end=_to_storage(event.timing.end),
            event=event.event.model_dump(mode="json"),
        )
        await asyncio.to_thread(self._insert, record)

    def _insert(self, record: EventRecord) -> None:
        event_id, plugin = record.id, record.plugin
        try:
            with self.session_factory() as session:
                session.add(record)
                session.commit()
        except SQLAlchemyError as exc:
            log_event(
                logger,
                service="database",
                event="event_write_failed",
                level="error",
                id=event_id,
                plugin=plugin,
                error=str(exc),
            )
            raise StoreWriteError(f"Failed to store event {event_id}: {exc}") from exc

    def get_events(self, model: type[PayloadT]) -> EventCollection[PayloadT]:
        return EventCollection(self, model)

    @staticmethod
    def generate_range_filter(query_range: TimeRange) -> Filter:
        """Events whose timing overlaps ``query_range``, both ends inclusive."""

        return and_(
            EventRecord.timing_start <= _to_storage(query_range.end),
            EventRecord.timing_end >= _to_storage(query_range.start),
        )

    @staticmethod
    def generate_find_plugin_filter(plugin: AvailablePlugins) -> Filter:
        return EventRecord.plugin == AvailablePlugins(plugin).value

    @staticmethod
    def combine_documents(first: Filter, second: Filter) -> Filter:
        return and_(first, second)


__all__ = ["Database", "EventCollection", "EventCursor", "Filter", "build_engine"]
