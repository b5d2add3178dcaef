from __future__ import annotations

import asyncio
import hmac
from typing import TYPE_CHECKING

from fastapi import APIRouter, Response, status
from fastapi.responses import FileResponse, JSONResponse
from starlette.convertors import Convertor, register_url_convertor

from timeline_notification.core.errors import AuthenticationError, StoreWriteError
from timeline_notification.core.logging_config import get_logger, log_event
from timeline_notification.core.metrics import (
    NOTIFICATION_ICON_RESOLVED_TOTAL,
    NOTIFICATIONS_INGESTED_TOTAL,
)

if TYPE_CHECKING:
    from timeline_notification.plugins.notification.plugin import NotificationPlugin

logger = get_logger(service="notification_router")


class SegmentConvertor(Convertor):
    """One path segment that may be empty; the default ``str`` needs a character."""

    regex = "[^/]*"

    def convert(self, value: str) -> str:
        return value

    def to_string(self, value: str) -> str:
        value = str(value)
        if "/" in value:
            raise ValueError("May not contain path separators")
        return value


register_url_convertor("segment", SegmentConvertor())


def _secret_matches(supplied: str, expected: str) -> bool:
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def build_router(plugin: "NotificationPlugin") -> APIRouter:
    """Routes of the notification plugin, bound to one initialized handle."""

    router = APIRouter(tags=["notifications"])

    @router.get(
        "/notification/{password:segment}/{app:segment}/{title:segment}/{content:segment}"
    )
    async def new_notification(
        password: str, app: str, title: str, content: str
    ) -> JSONResponse:
        settings = plugin.data.settings
        if not _secret_matches(password, settings.PASSWORD):
            NOTIFICATIONS_INGESTED_TOTAL.labels(outcome="unauthorized").inc()
            log_event(
                logger,
                service="notification_router",
                event="notification_rejected",
                app=app,
            )
            raise AuthenticationError()

        try:
            event = await plugin.record_notification(app, title, content)
        except StoreWriteError as exc:
            NOTIFICATIONS_INGESTED_TOTAL.labels(outcome="error").inc()
            plugin.data.error_reporter.report(
                exc, plugin.get_type(), settings.ERROR_REPORT_URL
            )
            raise

        NOTIFICATIONS_INGESTED_TOTAL.labels(outcome="ok").inc()
        logger.info("notification_recorded", id=event.id, app=app)
        return JSONResponse({}, status_code=status.HTTP_200_OK)

    @router.get("/icon/{app}", response_model=None)
    async def app_icon(app: str) -> FileResponse | Response:
        resolved = await asyncio.to_thread(plugin.icon_resolver.resolve, app)
        if resolved is None:
            NOTIFICATION_ICON_RESOLVED_TOTAL.labels(tier="missing").inc()
            log_event(logger, service="notification_router", event="icon_missing", app=app)
            return Response(status_code=status.HTTP_404_NOT_FOUND)

        NOTIFICATION_ICON_RESOLVED_TOTAL.labels(tier=resolved.tier).inc()
        logger.debug("icon_resolved", app=app, tier=resolved.tier)
        return FileResponse(resolved.path)

    return router


__all__ = ["build_router"]
