"""SQLAlchemy ORM models for the delivery state database.

Defines orders, stop audit events, proof-of-delivery records, the latest
driver positions and driver sessions. Uses SQLAlchemy 2.0 style with Mapped
and mapped_column.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Float,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


class OrderStatus(str, Enum):
    """Status values for delivery orders.

    Lifecycle: assigned -> delivered/failed
    A failed stop may later be re-attempted and marked delivered.
    """

    assigned = "assigned"
    delivered = "delivered"
    failed = "failed"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Order(Base):
    """Delivery order assigned to a driver route.

    Attributes:
        id: UUID primary key
        driver_id: Driver the stop is assigned to
        status: Current stop status (assigned, delivered, failed)
        created_at: ISO8601 timestamp of order creation
        updated_at: ISO8601 timestamp of the last status write
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    driver_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.assigned.value
    )
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    stop_events: Mapped[list["StopEvent"]] = relationship(
        "StopEvent", back_populates="order", cascade="all, delete-orphan"
    )
    pods: Mapped[list["ProofOfDelivery"]] = relationship(
        "ProofOfDelivery", back_populates="order", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_orders_driver", "driver_id"),)


class StopEvent(Base):
    """Advisory audit trail entry for a stop status change."""

    __tablename__ = "stop_events"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    driver_id: Mapped[str] = mapped_column(String(36), nullable=False)
    event_type: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    order: Mapped["Order"] = relationship("Order", back_populates="stop_events")

    __table_args__ = (Index("idx_stop_events_order", "order_id"),)


class ProofOfDelivery(Base):
    """Proof-of-delivery capture for an order.

    Attributes:
        photo_url: Blob reference for the doorstep photo
        signature_url: Blob reference for the recipient signature
        notes: Driver notes, optionally prefixed with the recipient name
        delivered_at: ISO8601 timestamp stamped at write time
    """

    __tablename__ = "pods"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    driver_id: Mapped[str] = mapped_column(String(36), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivered_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    order: Mapped["Order"] = relationship("Order", back_populates="pods")

    __table_args__ = (Index("idx_pods_order", "order_id"),)


class DriverPosition(Base):
    """Latest reported position per driver (upserted on every ping)."""

    __tablename__ = "driver_positions"

    driver_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )


class DriverSession(Base):
    """Bearer token issued to a driver's device."""

    __tablename__ = "driver_sessions"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    driver_id: Mapped[str] = mapped_column(String(36), nullable=False)
    expires_at: Mapped[str | None] = mapped_column(String(50), nullable=True)
    revoked: Mapped[bool] = mapped_column(nullable=False, default=False)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (Index("idx_driver_sessions_driver", "driver_id"),)
