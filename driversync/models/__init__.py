"""Pydantic records written by the delivery submission pipeline."""

from driversync.models.delivery import (
    DriverPosition,
    ProofOfDelivery,
    StopEvent,
    StopStatus,
    StopStatusUpdate,
    compose_pod_notes,
)

__all__ = [
    "StopStatus",
    "StopStatusUpdate",
    "ProofOfDelivery",
    "StopEvent",
    "DriverPosition",
    "compose_pod_notes",
]
