from __future__ import annotations

import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from timeline_notification.core.logging_config import get_logger

logger = get_logger(component="http")


def _loggable_path(request: Request) -> str:
    # The ingestion URL embeds the shared secret; only the route template is logged.
    route = request.scope.get("route")
    return getattr(route, "path_format", None) or "unmatched"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        start = time.perf_counter()

        try:
            response: Response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                request_id=request_id,
                method=request.method,
                path=_loggable_path(request),
                duration_ms=round(duration_ms, 2),
            ).exception("http_request_error", error=str(exc))
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        logger.bind(
            request_id=request_id,
            method=request.method,
            path=_loggable_path(request),
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
        ).info("http_request")

        return response
