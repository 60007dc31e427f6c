"""Durable store contract and its SQLAlchemy implementation.

The store reports failures as values (``StoreResult.error``) rather than
raising, mirroring hosted database clients. Each call uses its own session
so the advisory audit write can never roll back a committed status update.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from driversync.db.models import (
    DriverPosition,
    Order,
    ProofOfDelivery,
    StopEvent,
    utc_now_iso,
)
from driversync.utils.redaction import redact_for_logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreError:
    """Opaque store error with an optional human-readable message."""

    message: str | None = None
    details: dict | None = None


@dataclass(frozen=True)
class StoreResult:
    """Result of a store call: data on success, error otherwise."""

    data: Any = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DeliveryStore(Protocol):
    """Storage contract required by the delivery service."""

    async def update_status(
        self, order_id: str, status: str, updated_at: str,
    ) -> StoreResult:
        """Set an order's status and last-updated timestamp."""

    async def insert(self, table: str, record: dict[str, Any]) -> StoreResult:
        """Insert a record and return ``{"id": ...}`` as data."""

    async def upsert_position(
        self, driver_id: str, lat: float, lng: float, accuracy: float | None,
    ) -> StoreResult:
        """Create or overwrite the driver's single position row."""


# Tables writable through insert(); keyed by table name.
_INSERTABLE_MODELS: dict[str, type] = {
    StopEvent.__tablename__: StopEvent,
    ProofOfDelivery.__tablename__: ProofOfDelivery,
}


class SqlDeliveryStore:
    """DeliveryStore backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    async def update_status(
        self, order_id: str, status: str, updated_at: str,
    ) -> StoreResult:
        def _write(db: Session) -> Any:
            count = (
                db.query(Order)
                .filter(Order.id == order_id)
                .update(
                    {"status": status, "updated_at": updated_at},
                    synchronize_session=False,
                )
            )
            if count == 0:
                # Matches hosted-store semantics: an update that matches no
                # rows is not an error.
                logger.warning("Status update matched no order: %s", order_id)
            return None

        return await asyncio.to_thread(self._run, "update_status", _write)

    async def insert(self, table: str, record: dict[str, Any]) -> StoreResult:
        model = _INSERTABLE_MODELS.get(table)
        if model is None:
            return StoreResult(error=StoreError(f"Unknown table '{table}'"))

        def _write(db: Session) -> Any:
            row = model(**record)
            db.add(row)
            db.flush()
            return {"id": row.id}

        return await asyncio.to_thread(self._run, f"insert:{table}", _write, record)

    async def upsert_position(
        self, driver_id: str, lat: float, lng: float, accuracy: float | None,
    ) -> StoreResult:
        def _write(db: Session) -> Any:
            position = db.get(DriverPosition, driver_id)
            if position is None:
                position = DriverPosition(driver_id=driver_id)
                db.add(position)
            position.lat = lat
            position.lng = lng
            position.accuracy = accuracy
            position.updated_at = utc_now_iso()
            return None

        return await asyncio.to_thread(self._run, "upsert_position", _write)

    def _run(
        self,
        operation: str,
        write: Callable[[Session], Any],
        record: dict[str, Any] | None = None,
    ) -> StoreResult:
        """Run ``write`` in its own transaction, converting DB errors to values.

        Called on a worker thread; the session never crosses threads.
        """
        db = self._session_factory()
        try:
            data = write(db)
            db.commit()
            return StoreResult(data=data)
        except (SQLAlchemyError, TypeError) as e:
            db.rollback()
            logger.warning(
                "Store %s failed: %s record=%s",
                operation, e, redact_for_logging(record or {}),
            )
            return StoreResult(error=StoreError(message=_short_message(e)))
        finally:
            db.close()


def _short_message(error: Exception) -> str:
    """First line of a DB error, without the SQL statement dump."""
    text = str(getattr(error, "orig", None) or error)
    return text.splitlines()[0] if text else type(error).__name__
