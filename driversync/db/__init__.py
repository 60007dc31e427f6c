"""Database package for DriverSync state persistence."""

from driversync.db.models import (
    Base,
    DriverPosition,
    DriverSession,
    Order,
    OrderStatus,
    ProofOfDelivery,
    StopEvent,
)

__all__ = [
    "Base",
    "Order",
    "OrderStatus",
    "StopEvent",
    "ProofOfDelivery",
    "DriverPosition",
    "DriverSession",
]
