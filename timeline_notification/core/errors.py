"""Error types shared by the host, the event store and the plugins."""

from __future__ import annotations

from typing import Any

from fastapi import status


class APIError(Exception):
    """Base class for errors that cross the HTTP boundary as a typed body."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None) -> None:
        self.message = message or ""
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code}
        if self.message:
            body["detail"] = self.message
        return body


class AuthenticationError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED


class StoreWriteError(APIError):
    pass


class StoreReadError(APIError):
    pass


class InitializationError(RuntimeError):
    """Raised while building the host or a plugin; aborts startup."""


__all__ = [
    "APIError",
    "AuthenticationError",
    "InitializationError",
    "StoreReadError",
    "StoreWriteError",
]
