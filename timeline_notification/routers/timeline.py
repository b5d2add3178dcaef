"""Host aggregator: compressed events of every plugin for one time range."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from timeline_notification.plugins.registry import PluginRegistry
from timeline_notification.schemas.events import CompressedEvent
from timeline_notification.schemas.timing import TimeRange

router = APIRouter(prefix="/api", tags=["timeline"])


@router.get("/events", response_model=list[CompressedEvent])
async def get_events(
    request: Request,
    start: datetime = Query(..., description="Range start (ISO 8601, UTC if naive)"),
    end: datetime = Query(..., description="Range end (ISO 8601, UTC if naive)"),
) -> list[CompressedEvent]:
    try:
        query_range = TimeRange(start=start, end=end)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_context=False)) from exc

    registry: PluginRegistry = request.app.state.registry
    return await registry.get_compressed_events(query_range)
