"""Process-wide, fire-and-forget reporting of plugin failures."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx

from timeline_notification.core.errors import APIError
from timeline_notification.core.logging_config import get_logger
from timeline_notification.core.metrics import ERROR_REPORTS_TOTAL
from timeline_notification.schemas.events import AvailablePlugins

DEFAULT_REPORT_TIMEOUT_SECONDS = 5.0


class ErrorReporter:
    """Log an error and forward it to the operator's report endpoint.

    Reports run as background tasks: callers never wait for them and a
    failing report never reaches the caller.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_REPORT_TIMEOUT_SECONDS,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._pending: set[asyncio.Task[None]] = set()
        self._logger = get_logger(service="error_reporter")

    def report(
        self,
        error: BaseException,
        plugin: AvailablePlugins | None,
        report_url: str | None,
    ) -> asyncio.Task[None]:
        payload = self._build_payload(error, plugin)
        self._logger.error(
            "plugin_error",
            plugin=payload["plugin"],
            error=payload["error"],
            detail=payload["detail"],
        )
        task = asyncio.create_task(self._deliver(payload, report_url))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every report still in flight."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def _deliver(self, payload: dict[str, Any], report_url: str | None) -> None:
        if not report_url:
            ERROR_REPORTS_TOTAL.labels(outcome="logged").inc()
            return

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(report_url, json=payload)
                response.raise_for_status()
        except Exception as exc:
            ERROR_REPORTS_TOTAL.labels(outcome="failed").inc()
            self._logger.warning(
                "report_delivery_failed", plugin=payload["plugin"], error=str(exc)
            )
            return

        ERROR_REPORTS_TOTAL.labels(outcome="sent").inc()
        self._logger.info(
            "report_delivered", plugin=payload["plugin"], status=response.status_code
        )

    @staticmethod
    def _build_payload(
        error: BaseException, plugin: AvailablePlugins | None
    ) -> dict[str, Any]:
        if isinstance(error, APIError):
            code, detail = error.code, error.message
        else:
            code, detail = type(error).__name__, str(error)
        return {
            "error": code,
            "detail": detail,
            "plugin": plugin.value if plugin is not None else None,
            "time": datetime.now(UTC).isoformat(),
        }


__all__ = ["ErrorReporter"]
