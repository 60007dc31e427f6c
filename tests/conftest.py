"""Root-level pytest fixtures for all tests.

Provides shared fixtures including:
- In-memory SQLite database and session factory
- Seeded orders and driver sessions
- Recording sleep for deterministic retry tests
- Fake collaborators for the delivery service
"""

from collections.abc import Generator
from typing import Any

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from driversync.db.models import Base, DriverSession, Order
from driversync.services.delivery_store import StoreError, StoreResult


# ============================================================================
# Pytest Markers
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests that take a long time to run"
    )


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across sessions via StaticPool."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _fk_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker:
    """Session factory bound to the in-memory engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """A session for arranging and asserting database state."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_order(db_session: Session) -> Order:
    """An assigned order for driver-1."""
    order = Order(id="order-1", driver_id="driver-1")
    db_session.add(order)
    db_session.commit()
    return order


@pytest.fixture
def driver_session(db_session: Session) -> DriverSession:
    """A valid, non-expiring bearer session for driver-1."""
    record = DriverSession(token="tok-driver-1", driver_id="driver-1")
    db_session.add(record)
    db_session.commit()
    return record


# ============================================================================
# Collaborator Fakes
# ============================================================================


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeStore:
    """In-memory DeliveryStore with scriptable failures.

    ``status_failures`` / ``insert_failures`` / ``position_failures`` are
    lists consumed one per call; each item is a StoreError (returned), an
    Exception (raised), or None (success).
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.status_failures: list[Any] = []
        self.insert_failures: dict[str, list[Any]] = {}
        self.position_failures: list[Any] = []
        self.rows: dict[str, list[dict[str, Any]]] = {}
        self._next_id = 0

    @staticmethod
    def _apply(failures: list[Any]) -> StoreResult | None:
        if not failures:
            return None
        failure = failures.pop(0)
        if failure is None:
            return None
        if isinstance(failure, BaseException):
            raise failure
        return StoreResult(error=failure)

    async def update_status(self, order_id, status, updated_at) -> StoreResult:
        self.calls.append(("update_status", (order_id, status, updated_at)))
        failed = self._apply(self.status_failures)
        return failed or StoreResult()

    async def insert(self, table, record) -> StoreResult:
        self.calls.append(("insert", (table, record)))
        failed = self._apply(self.insert_failures.get(table, []))
        if failed:
            return failed
        self._next_id += 1
        row = dict(record, id=f"{table}-{self._next_id}")
        self.rows.setdefault(table, []).append(row)
        return StoreResult(data={"id": row["id"]})

    async def upsert_position(self, driver_id, lat, lng, accuracy) -> StoreResult:
        self.calls.append(("upsert_position", (driver_id, lat, lng, accuracy)))
        failed = self._apply(self.position_failures)
        return failed or StoreResult()

    def calls_named(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def store_error():
    """Factory for result-level store errors."""
    def _make(message: str | None = "connection reset") -> StoreError:
        return StoreError(message=message)
    return _make
