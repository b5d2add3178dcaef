from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from pydantic import BaseModel, ConfigDict

from timeline_notification.db.database import Database
from timeline_notification.db.models import Base
from timeline_notification.plugins.notification.icons import DEFAULT_ICON
from timeline_notification.plugins.notification.plugin import NotificationPlugin
from timeline_notification.services.error_reporter import ErrorReporter
from timeline_notification.tests.conftest import PLUGIN_PREFIX, TEST_PASSWORD


def _ingest_url(secret: str, app: str, title: str, content: str) -> str:
    return f"{PLUGIN_PREFIX}/notification/{secret}/{app}/{title}/{content}"


def _window() -> dict[str, str]:
    now = datetime.now(UTC)
    return {
        "start": (now - timedelta(minutes=5)).isoformat(),
        "end": (now + timedelta(minutes=5)).isoformat(),
    }


class _AnyPayload(BaseModel):
    model_config = ConfigDict(extra="allow")


async def _stored_count(database: Database) -> int:
    cursor = await database.get_events(_AnyPayload).find()
    return len([event async for event in cursor])


@pytest.mark.asyncio
async def test_ingest_then_query_round_trip(client: AsyncClient) -> None:
    response = await client.get(_ingest_url(TEST_PASSWORD, "com.whatsapp", "Alice", "Hello"))

    assert response.status_code == 200
    assert response.json() == {}

    events = await client.get("/api/events", params=_window())
    assert events.status_code == 200
    body = events.json()
    assert len(body) == 1
    assert body[0]["title"] == "WhatsApp"
    assert body[0]["data"] == {"app": "com.whatsapp", "title": "Alice", "content": "Hello"}
    assert set(body[0]["time"]) == {"Instant"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("secret", "app_name", "title", "content"),
    [
        ("wrong", "com.foo", "t", "c"),
        (TEST_PASSWORD.upper(), "com.foo", "t", "c"),
        (TEST_PASSWORD + " ", "com.foo", "t", "c"),
        ("x", "com.whatsapp", "same title", "same content"),
    ],
)
async def test_bad_secret_is_rejected_without_write(
    client: AsyncClient,
    database: Database,
    secret: str,
    app_name: str,
    title: str,
    content: str,
) -> None:
    response = await client.get(_ingest_url(secret, app_name, title, content))

    assert response.status_code == 401
    assert response.json() == {"error": "AuthenticationError"}
    assert await _stored_count(database) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("secret", "app_name", "title", "content"),
    [
        ("wrong", "", "t", "c"),
        ("wrong", "com.foo", "", ""),
        ("", "", "", ""),
    ],
)
async def test_bad_secret_with_empty_segments_is_rejected(
    client: AsyncClient,
    database: Database,
    secret: str,
    app_name: str,
    title: str,
    content: str,
) -> None:
    response = await client.get(_ingest_url(secret, app_name, title, content))

    assert response.status_code == 401
    assert response.json() == {"error": "AuthenticationError"}
    assert await _stored_count(database) == 0


@pytest.mark.asyncio
async def test_empty_app_is_stored_with_empty_title(client: AsyncClient) -> None:
    response = await client.get(_ingest_url(TEST_PASSWORD, "", "t", ""))

    assert response.status_code == 200
    assert response.json() == {}

    body = (await client.get("/api/events", params=_window())).json()
    assert len(body) == 1
    assert body[0]["title"] == ""
    assert body[0]["data"] == {"app": "", "title": "t", "content": ""}


@pytest.mark.asyncio
async def test_percent_encoded_segments_are_decoded(client: AsyncClient) -> None:
    response = await client.get(
        _ingest_url(TEST_PASSWORD, "com.foo", "Hello%20there", "50%25%20off")
    )
    assert response.status_code == 200

    body = (await client.get("/api/events", params=_window())).json()
    assert body[0]["data"]["title"] == "Hello there"
    assert body[0]["data"]["content"] == "50% off"


@pytest.mark.asyncio
async def test_store_failure_returns_500_and_reports(
    client: AsyncClient,
    database: Database,
    error_reporter: ErrorReporter,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    report = MagicMock(wraps=error_reporter.report)
    monkeypatch.setattr(error_reporter, "report", report)
    Base.metadata.drop_all(bind=database.engine)

    response = await client.get(_ingest_url(TEST_PASSWORD, "com.foo", "t", "c"))

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "StoreWriteError"
    assert "Failed to store event" in body["detail"]
    report.assert_called_once()
    error, plugin, report_url = report.call_args.args
    assert type(error).__name__ == "StoreWriteError"
    assert plugin.value == "timeline_plugin_notification"
    assert report_url is None
    await error_reporter.drain()


@pytest.mark.asyncio
async def test_failing_report_does_not_change_response(
    client: AsyncClient,
    database: Database,
    app: FastAPI,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(app.state.settings, "ERROR_REPORT_URL", "http://127.0.0.1:9/report")
    Base.metadata.drop_all(bind=database.engine)

    response = await client.get(_ingest_url(TEST_PASSWORD, "com.foo", "t", "c"))

    assert response.status_code == 500
    await asyncio.wait_for(app.state.error_reporter.drain(), timeout=5)


@pytest.mark.asyncio
async def test_query_failure_is_typed_500(client: AsyncClient, database: Database) -> None:
    Base.metadata.drop_all(bind=database.engine)

    response = await client.get("/api/events", params=_window())

    assert response.status_code == 500
    assert response.json()["error"] == "StoreReadError"


@pytest.mark.asyncio
async def test_inverted_range_is_validation_error(client: AsyncClient) -> None:
    window = _window()
    response = await client.get(
        "/api/events", params={"start": window["end"], "end": window["start"]}
    )

    assert response.status_code == 422
    assert response.json()["error"] == "Validation Error"


@pytest.mark.asyncio
async def test_icon_prefers_installation_file(client: AsyncClient, icon_dir: Path) -> None:
    (icon_dir / "com.foo").write_bytes(b"\x89PNG installation")

    response = await client.get(f"{PLUGIN_PREFIX}/icon/com.foo")

    assert response.status_code == 200
    assert response.content == b"\x89PNG installation"


@pytest.mark.asyncio
async def test_icon_falls_back_to_default_svg(client: AsyncClient) -> None:
    response = await client.get(f"{PLUGIN_PREFIX}/icon/com.never.seen")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert response.content == DEFAULT_ICON.read_bytes()


@pytest.mark.asyncio
async def test_icon_without_any_tier_is_404(
    client: AsyncClient, app: FastAPI, tmp_path: Path
) -> None:
    plugin = app.state.registry.get(NotificationPlugin.get_type())
    plugin.icon_resolver.default_icon = tmp_path / "gone.svg"

    response = await client.get(f"{PLUGIN_PREFIX}/icon/com.foo")

    assert response.status_code == 404
    assert response.content == b""
