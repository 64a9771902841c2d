"""Shared pytest fixtures for ginius."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from ginius import db as database
from ginius.router import create_app
from ginius.settings import Settings


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'data' / 'app.db'}"


@pytest.fixture
def settings(db_url: str) -> Settings:
    return Settings(database_url=db_url, log_requests=False)


@pytest.fixture
def db(settings: Settings) -> database.Database:
    return database.setup(settings)


@pytest.fixture
def client(db: database.Database, settings: Settings):
    with TestClient(create_app(db, settings)) as c:
        yield c


@pytest.fixture
def app_log(caplog: pytest.LogCaptureFixture):
    """Capture records from the shared ``uvicorn.error`` logger, whatever its propagation."""
    log = logging.getLogger("uvicorn.error")
    old_level = log.level
    log.addHandler(caplog.handler)
    log.setLevel(logging.DEBUG)
    yield caplog
    log.removeHandler(caplog.handler)
    log.setLevel(old_level)
