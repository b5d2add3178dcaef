from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

# Quiet structured logs while the suite runs.
os.environ.setdefault("TIMELINE_LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from timeline_notification.core.config import Settings
from timeline_notification.db.database import Database, build_engine
from timeline_notification.main import create_app
from timeline_notification.services.error_reporter import ErrorReporter

TEST_PASSWORD = "s3cret-pass"  # pragma: allowlist secret
PLUGIN_PREFIX = "/api/plugin/timeline_plugin_notification"

APPS_FILE_CONTENT = (
    "com.whatsapp:WhatsApp\n"
    "org.telegram.messenger:Telegram\n"
    "com.example.clock:Clock: World Edition\n"
    "this line has no separator\n"
)


@pytest.fixture()
def apps_file(tmp_path: Path) -> Path:
    path = tmp_path / "apps.txt"
    path.write_text(APPS_FILE_CONTENT, encoding="utf-8")
    return path


@pytest.fixture()
def icon_dir(tmp_path: Path) -> Path:
    path = tmp_path / "installation-icons"
    path.mkdir()
    return path


@pytest.fixture()
def settings(
    monkeypatch: pytest.MonkeyPatch, apps_file: Path, icon_dir: Path
) -> Settings:
    monkeypatch.setenv("TIMELINE_PASSWORD", TEST_PASSWORD)
    monkeypatch.setenv("NOTIFICATION_APPS_FILE", str(apps_file))
    monkeypatch.setenv("NOTIFICATION_ICON_DIR", str(icon_dir))
    monkeypatch.delenv("TIMELINE_ERROR_REPORT_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    return Settings()


@pytest.fixture()
def database() -> Iterator[Database]:
    db = Database(build_engine("sqlite://"), batch_size=2)
    db.create_all()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture()
def error_reporter() -> ErrorReporter:
    return ErrorReporter(timeout=1.0)


@pytest_asyncio.fixture()
async def app(
    settings: Settings, database: Database, error_reporter: ErrorReporter
) -> AsyncIterator[FastAPI]:
    application = create_app(
        settings=settings, database=database, error_reporter=error_reporter
    )
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """AsyncClient bound to a started application."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
