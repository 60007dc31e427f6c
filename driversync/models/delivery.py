"""Records for stop outcomes, proof of delivery and driver positions.

These Pydantic models validate what a driver submits before anything is
written. Timestamps are never taken from the mobile client; they are
restamped on every write attempt.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


class StopStatus(str, Enum):
    """Terminal outcomes a driver can report for a stop."""

    delivered = "delivered"
    failed = "failed"


class StopStatusUpdate(BaseModel):
    """Primary mutation for a stop outcome.

    Attributes:
        order_id: Order being updated.
        status: delivered or failed.
        notes: Optional free-text notes from the driver.
        actor_id: Driver who submitted the update.
        timestamp: Write time, set on construction.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str = Field(..., min_length=1)
    status: StopStatus
    notes: str | None = None
    actor_id: str = Field(..., min_length=1)
    timestamp: str = Field(default_factory=utc_now_iso)

    def restamped(self) -> "StopStatusUpdate":
        """Copy carrying the current time; called once per write attempt."""
        return self.model_copy(update={"timestamp": utc_now_iso()})


class StopEvent(BaseModel):
    """Advisory audit record written after a successful status update."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    driver_id: str
    event_type: StopStatus
    notes: str | None = None

    @classmethod
    def from_update(cls, update: StopStatusUpdate) -> "StopEvent":
        """Derive the audit record from the status update it follows."""
        return cls(
            order_id=update.order_id,
            driver_id=update.actor_id,
            event_type=update.status,
            notes=update.notes,
        )


class ProofOfDelivery(BaseModel):
    """Proof-of-delivery record: photo, signature and notes for an order."""

    model_config = ConfigDict(frozen=True)

    order_id: str = Field(..., min_length=1)
    driver_id: str = Field(..., min_length=1)
    photo_url: str | None = None
    signature_url: str | None = None
    notes: str | None = None
    delivered_at: str = Field(default_factory=utc_now_iso)

    def restamped(self) -> "ProofOfDelivery":
        """Copy carrying the current time; called once per write attempt."""
        return self.model_copy(update={"delivered_at": utc_now_iso()})


class DriverPosition(BaseModel):
    """Latest known position of a driver. One row per driver."""

    model_config = ConfigDict(frozen=True)

    driver_id: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    accuracy: float | None = Field(None, ge=0)


def compose_pod_notes(notes: str | None, recipient_name: str | None) -> str | None:
    """Build the persisted POD notes.

    A recipient name is prefixed as ``Recipient: <name>`` on its own line.
    Without one, ``notes`` is returned unchanged.

    Args:
        notes: Driver notes, possibly None.
        recipient_name: Name of the person who accepted the delivery.

    Returns:
        Notes to persist.
    """
    if recipient_name:
        return f"Recipient: {recipient_name}\n{notes or ''}"
    return notes
