"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.domain.user import Actor
from src.main import create_app
from tests.helpers import seed_users


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the datastore at a fresh SQLite file for this test."""
    path = tmp_path / "test.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(path))
    return path


@pytest.fixture
async def db(db_path: Path) -> AsyncIterator[Path]:
    """Initialized temporary database, closed after the test."""
    await init_db()
    yield db_path
    await close_connection()


@pytest.fixture
async def actors(db: Path) -> dict[str, Actor]:
    """Standard users registered in the temporary database."""
    return await seed_users()


@pytest.fixture
def client(db_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """TestClient over the full app; its lifespan seeds users instead of starting the scheduler."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await init_db()
        await seed_users()
        yield
        await close_connection()

    test_app = create_app()
    test_app.router.lifespan_context = lifespan

    with TestClient(test_app) as test_client:
        yield test_client
