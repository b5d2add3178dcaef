from __future__ import annotations

import time

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_COUNT = Counter(
    "timeline_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
)
REQUEST_LATENCY = Histogram(
    "timeline_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "route"],
)

NOTIFICATIONS_INGESTED_TOTAL = Counter(
    "notifications_ingested_total",
    "Notification ingest calls grouped by outcome.",
    ["outcome"],
)
NOTIFICATION_ICON_RESOLVED_TOTAL = Counter(
    "notification_icon_resolved_total",
    "Icon lookups grouped by the tier that answered.",
    ["tier"],
)
ERROR_REPORTS_TOTAL = Counter(
    "timeline_error_reports_total",
    "Error reports emitted grouped by delivery outcome.",
    ["outcome"],
)


def _route_label(request: Request) -> str:
    # Path segments carry secrets and free text; label by route template.
    route = request.scope.get("route")
    return getattr(route, "path_format", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        method = request.method

        try:
            response: Response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            route = _route_label(request)
            REQUEST_LATENCY.labels(method=method, route=route).observe(duration)
            REQUEST_COUNT.labels(method=method, route=route, status="500").inc()
            raise

        duration = time.perf_counter() - start
        route = _route_label(request)
        REQUEST_LATENCY.labels(method=method, route=route).observe(duration)
        REQUEST_COUNT.labels(
            method=method, route=route, status=str(response.status_code)
        ).inc()
        return response


metrics_router = APIRouter()


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics_endpoint() -> PlainTextResponse:
    payload = generate_latest()
    return PlainTextResponse(payload.decode("utf-8"), media_type=CONTENT_TYPE_LATEST)
