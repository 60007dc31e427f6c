"""Tests for SqlDeliveryStore against an in-memory SQLite database."""

import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from driversync.db.models import DriverPosition, Order, ProofOfDelivery, StopEvent
from driversync.services.delivery_store import SqlDeliveryStore, StoreResult


@pytest.fixture
def store(session_factory) -> SqlDeliveryStore:
    return SqlDeliveryStore(session_factory)


class TestUpdateStatus:

    @pytest.mark.asyncio
    async def test_updates_status_and_timestamp(self, store, seeded_order, db_session: Session):
        result = await store.update_status("order-1", "delivered", "2026-10-19T10:00:00+00:00")

        assert result.ok
        db_session.expire_all()
        order = db_session.get(Order, "order-1")
        assert order.status == "delivered"
        assert order.updated_at == "2026-10-19T10:00:00+00:00"

    @pytest.mark.asyncio
    async def test_unknown_order_is_not_an_error(self, store):
        result = await store.update_status("missing", "failed", "2026-10-19T10:00:00+00:00")
        assert result.ok


class TestInsert:

    @pytest.mark.asyncio
    async def test_insert_pod_returns_generated_id(self, store, seeded_order, db_session: Session):
        result = await store.insert("pods", {
            "order_id": "order-1",
            "driver_id": "driver-1",
            "photo_url": None,
            "signature_url": "https://blobs.example/s.png",
            "notes": "Recipient: Jane Doe\nleft at door",
            "delivered_at": "2026-10-19T10:00:00+00:00",
        })

        assert result.ok
        pod = db_session.get(ProofOfDelivery, result.data["id"])
        assert pod is not None
        assert pod.notes == "Recipient: Jane Doe\nleft at door"

    @pytest.mark.asyncio
    async def test_insert_stop_event(self, store, seeded_order, db_session: Session):
        result = await store.insert("stop_events", {
            "order_id": "order-1",
            "driver_id": "driver-1",
            "event_type": "failed",
            "notes": None,
        })

        assert result.ok
        assert db_session.query(StopEvent).count() == 1

    @pytest.mark.asyncio
    async def test_foreign_key_violation_is_error_value(self, store, db_session: Session):
        result = await store.insert("stop_events", {
            "order_id": "no-such-order",
            "driver_id": "driver-1",
            "event_type": "delivered",
            "notes": "secret gate code 1234",
        })

        assert not result.ok
        assert result.error.message
        assert db_session.query(StopEvent).count() == 0

    @pytest.mark.asyncio
    async def test_unknown_table(self, store):
        result = await store.insert("orders", {"id": "x"})
        assert result.error.message == "Unknown table 'orders'"

    @pytest.mark.asyncio
    async def test_unknown_column_is_error_value(self, store, seeded_order):
        result = await store.insert("pods", {"order_id": "order-1", "bogus": 1})
        assert not result.ok


class TestUpsertPosition:

    @pytest.mark.asyncio
    async def test_insert_then_overwrite(self, store, db_session: Session):
        first = await store.upsert_position("driver-1", 40.0, -74.0, 10.0)
        second = await store.upsert_position("driver-1", 41.0, -73.5, None)

        assert first.ok and second.ok
        rows = db_session.query(DriverPosition).all()
        assert len(rows) == 1
        assert (rows[0].lat, rows[0].lng, rows[0].accuracy) == (41.0, -73.5, None)


class TestDatabaseFailures:

    @pytest.mark.asyncio
    async def test_operational_error_rolls_back_and_closes(self):
        session = MagicMock()
        session.query.side_effect = OperationalError("UPDATE", {}, Exception("database is locked"))
        store = SqlDeliveryStore(lambda: session)

        result = await store.update_status("order-1", "delivered", "now")

        assert isinstance(result, StoreResult)
        assert result.error.message == "database is locked"
        session.rollback.assert_called_once()
        session.close.assert_called_once()


class TestEventLoopResponsiveness:
    """Session work runs off the event loop."""

    @pytest.fixture
    def slow_queries(self, db_engine):
        """Make every statement take 0.2s and record the executing thread."""
        threads: list[int] = []

        def _slow(conn, cursor, statement, parameters, context, executemany):
            threads.append(threading.get_ident())
            time.sleep(0.2)

        event.listen(db_engine, "before_cursor_execute", _slow)
        yield threads
        event.remove(db_engine, "before_cursor_execute", _slow)

    @pytest.mark.asyncio
    async def test_loop_keeps_ticking_during_slow_write(self, store, seeded_order, slow_queries):
        ticks = 0
        stop = asyncio.Event()

        async def _ticker():
            nonlocal ticks
            while not stop.is_set():
                await asyncio.sleep(0.01)
                ticks += 1

        ticker = asyncio.create_task(_ticker())
        result = await store.upsert_position("driver-1", 1.0, 2.0, None)
        stop.set()
        await ticker

        assert result.ok
        assert ticks >= 5
        assert threading.get_ident() not in slow_queries
