"""Tests for delivery record models and note composition."""

import pytest
from pydantic import ValidationError

from driversync.models import (
    DriverPosition,
    ProofOfDelivery,
    StopEvent,
    StopStatus,
    StopStatusUpdate,
    compose_pod_notes,
)


class TestComposePodNotes:

    def test_recipient_and_notes(self):
        assert compose_pod_notes("left at door", "Jane Doe") == "Recipient: Jane Doe\nleft at door"

    def test_recipient_only(self):
        assert compose_pod_notes(None, "Jane Doe") == "Recipient: Jane Doe\n"

    @pytest.mark.parametrize("notes", ["left at door", "", None])
    def test_no_recipient_returns_notes_unchanged(self, notes):
        assert compose_pod_notes(notes, None) == notes

    def test_empty_recipient_is_ignored(self):
        assert compose_pod_notes("x", "") == "x"


class TestStopStatusUpdate:

    def test_timestamp_is_stamped(self):
        update = StopStatusUpdate(order_id="o", status="delivered", actor_id="d")
        assert update.status is StopStatus.delivered
        assert update.timestamp.endswith("+00:00")

    @pytest.mark.parametrize("status", ["pending", "DELIVERED", "", None])
    def test_rejects_unknown_status(self, status):
        with pytest.raises(ValidationError):
            StopStatusUpdate(order_id="o", status=status, actor_id="d")

    def test_stop_event_follows_update(self):
        update = StopStatusUpdate(order_id="o", status="failed", notes="dog", actor_id="d")
        event = StopEvent.from_update(update)
        assert event.model_dump(mode="json") == {
            "order_id": "o", "driver_id": "d", "event_type": "failed", "notes": "dog",
        }


class TestProofOfDelivery:

    def test_delivered_at_is_stamped(self):
        pod = ProofOfDelivery(order_id="o", driver_id="d")
        assert pod.delivered_at
        assert pod.photo_url is None

    def test_requires_driver(self):
        with pytest.raises(ValidationError):
            ProofOfDelivery(order_id="o", driver_id="")


class TestDriverPosition:

    @pytest.mark.parametrize("lat,lng", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_rejects_out_of_range(self, lat, lng):
        with pytest.raises(ValidationError):
            DriverPosition(driver_id="d", lat=lat, lng=lng)

    def test_accuracy_optional(self):
        assert DriverPosition(driver_id="d", lat=0, lng=0).accuracy is None

    def test_negative_accuracy_rejected(self):
        with pytest.raises(ValidationError):
            DriverPosition(driver_id="d", lat=0, lng=0, accuracy=-1)
