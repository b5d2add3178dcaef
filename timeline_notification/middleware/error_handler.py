"""Exception handlers translating failures into typed JSON bodies."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from timeline_notification.core.errors import APIError
from timeline_notification.core.logging_config import get_logger, log_event

logger = get_logger(service="error_handler")


def _route_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path_format", None) or "unmatched"


def register_error_handlers(app: FastAPI) -> None:
    """Attach the exception handlers used by the host and every plugin router."""

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
        log_event(
            logger,
            service="timeline_host",
            event="api_error",
            level="warning" if exc.status_code < 500 else "error",
            method=request.method,
            path=_route_path(request),
            status=exc.status_code,
            error=exc.code,
        )
        return JSONResponse(exc.to_body(), status_code=exc.status_code)

    @app.exception_handler(HTTPException)
    async def handle_http_exception(
        request: Request,
        exc: HTTPException,
    ) -> JSONResponse:
        log_event(
            logger,
            service="timeline_host",
            event="http_error",
            level="warning",
            method=request.method,
            path=_route_path(request),
            status=exc.status_code,
            detail=exc.detail,
        )
        return JSONResponse(
            {"detail": exc.detail},
            status_code=exc.status_code,
            headers=exc.headers if exc.headers else None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        log_event(
            logger,
            service="timeline_host",
            event="validation_error",
            path=_route_path(request),
            detail=errors,
        )
        return JSONResponse(
            {"error": "Validation Error", "detail": errors}, status_code=422
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        log_event(
            logger,
            service="timeline_host",
            event="internal_error",
            level="error",
            method=request.method,
            path=_route_path(request),
            status=500,
            error=str(exc),
        )
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)
