"""Pytest fixtures for API tests.

Provides an application built against a throwaway SQLite file, a test
client with the lifespan running, and seeded driver data.
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from driversync.api.main import create_app
from driversync.config import BlobConfig, DatabaseConfig, DriverSyncConfig, RetryConfig
from driversync.db.models import DriverSession, Order


@pytest.fixture
def api_config(tmp_path) -> DriverSyncConfig:
    """Config pointing the database and blob store at ``tmp_path``."""
    return DriverSyncConfig(
        retry=RetryConfig(max_attempts=2, backoff_base_seconds=0),
        blob=BlobConfig(base_dir=str(tmp_path / "blobs")),
        database=DatabaseConfig(url=f"sqlite:///{tmp_path / 'api.db'}"),
    )


@pytest.fixture
def app(api_config: DriverSyncConfig) -> FastAPI:
    return create_app(api_config)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """TestClient with startup (table creation) and shutdown applied."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def api_db(app: FastAPI, client: TestClient) -> Generator[Session, None, None]:
    """Session on the app's own database, for arranging and asserting."""
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def auth_headers(api_db: Session) -> dict[str, str]:
    """Seed an assigned order plus a bearer session for driver-1."""
    api_db.add(Order(id="order-1", driver_id="driver-1"))
    api_db.add(DriverSession(token="tok-driver-1", driver_id="driver-1"))
    api_db.commit()
    return {"Authorization": "Bearer tok-driver-1"}
