"""Delivery confirmation orchestration.

Public operations for the driver app: record a stop outcome, submit proof
of delivery, upload a photo/signature, and report the driver's position.
Each operation:

1. resolves the driver through the session guard (no write before this),
2. runs its primary mutation through the retrying executor,
3. on success only, performs best-effort secondary effects (audit event,
   notification dispatch, view invalidation) whose failures are logged and
   never change the outcome.

No operation raises: every failure becomes a ``MutationOutcome``.

Usage:
    service = DeliveryConfirmationService(
        identity=SessionTokenIdentityProvider(SessionLocal, token),
        store=SqlDeliveryStore(SessionLocal),
        executor=RetryingExecutor(),
    )
    outcome = await service.record_stop_status("order-1", "delivered")
"""

import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from driversync.errors.domain import AuthExpiredError, DecodeError, SecondaryEffectFailure
from driversync.errors.registry import (
    AUTH_EXPIRED,
    DECODE_ERROR,
    TRANSIENT_WRITE_FAILURE,
    UNEXPECTED_ERROR,
    VALIDATION_ERROR,
)
from driversync.models.delivery import (
    DriverPosition,
    ProofOfDelivery,
    StopEvent,
    StopStatusUpdate,
    compose_pod_notes,
)
from driversync.services.blob_storage import BlobRef, BlobStore, safe_blob_path
from driversync.services.delivery_store import DeliveryStore
from driversync.services.invalidation import DRIVER_VIEW_PATH, Invalidator
from driversync.services.notification_client import NotificationDispatcher
from driversync.services.outcome import MutationOutcome
from driversync.services.payload_normalizer import (
    DEFAULT_CONTENT_TYPE,
    BinaryArtifact,
    normalize,
)
from driversync.services.retry import RetryingExecutor, error_message
from driversync.services.session_guard import IdentityProvider, resolve_actor

logger = logging.getLogger(__name__)

STOP_EVENTS_TABLE = "stop_events"
PODS_TABLE = "pods"

UPLOAD_FAILED_MESSAGE = "Failed to upload file after multiple attempts"
POSITION_FAILED_MESSAGE = "Failed to update position"


class DeliveryConfirmationService:
    """Resilient submission of stop outcomes, PODs, uploads and positions.

    Attributes:
        notifications_enabled: Whether POD notifications are dispatched.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        store: DeliveryStore,
        executor: RetryingExecutor | None = None,
        dispatcher: NotificationDispatcher | None = None,
        invalidator: Invalidator | None = None,
        blob_store: BlobStore | None = None,
        notifications_enabled: bool = False,
    ) -> None:
        self._identity = identity
        self._store = store
        self._executor = executor or RetryingExecutor()
        self._dispatcher = dispatcher
        self._invalidator = invalidator
        self._blob_store = blob_store
        self.notifications_enabled = notifications_enabled

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def record_stop_status(
        self,
        order_id: str,
        status: str,
        notes: str | None = None,
    ) -> MutationOutcome:
        """Record a delivered/failed outcome for a stop.

        The status write is authoritative and retried. The stop event is an
        advisory audit record: written once, after the status write, and its
        failure is only logged.

        Args:
            order_id: Order the stop belongs to.
            status: "delivered" or "failed".
            notes: Optional driver notes.

        Returns:
            Success outcome, or the executor's failure outcome verbatim.
        """

        async def _run() -> MutationOutcome:
            driver_id = await resolve_actor(self._identity)
            update = StopStatusUpdate(
                order_id=order_id, status=status, notes=notes, actor_id=driver_id,
            )

            outcome = await self._executor.execute(
                lambda: self._write_status(update.restamped()),
                action="update order status",
            )
            if not outcome.success:
                return outcome

            await self._write_stop_event(StopEvent.from_update(update))
            self._invalidate()
            return MutationOutcome.ok()

        return await self._guarded("record_stop_status", _run)

    async def submit_proof_of_delivery(
        self,
        order_id: str,
        photo_url: str | None = None,
        signature_url: str | None = None,
        notes: str | None = None,
        recipient_name: str | None = None,
    ) -> MutationOutcome:
        """Persist proof of delivery and, if enabled, notify the customer.

        The notification is dispatched without being awaited; its result
        never affects the returned outcome.

        Args:
            order_id: Delivered order.
            photo_url: Blob reference of the doorstep photo.
            signature_url: Blob reference of the signature.
            notes: Driver notes.
            recipient_name: Who accepted the parcel; prefixed to the notes.

        Returns:
            Success outcome with ``{"id": pod_id}``, or a failure outcome.
        """

        async def _run() -> MutationOutcome:
            driver_id = await resolve_actor(self._identity)
            pod = ProofOfDelivery(
                order_id=order_id,
                driver_id=driver_id,
                photo_url=photo_url,
                signature_url=signature_url,
                notes=compose_pod_notes(notes, recipient_name),
            )

            outcome = await self._executor.execute(
                lambda: self._store.insert(PODS_TABLE, pod.restamped().model_dump(mode="json")),
                action="save proof of delivery",
            )
            if not outcome.success:
                return outcome

            pod_id = _extract_id(outcome.data)
            if pod_id and self.notifications_enabled:
                self._dispatch_notification(order_id, pod_id)

            self._invalidate()
            return MutationOutcome.ok({"id": pod_id} if pod_id else None)

        return await self._guarded("submit_proof_of_delivery", _run)

    async def upload_binary(
        self,
        data: str | BinaryArtifact,
        filename: str,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> MutationOutcome:
        """Decode a captured photo/signature and store it as a public blob.

        Args:
            data: Data URL, bare base64 text, or an already-built artifact.
            filename: Target blob path (relative).
            content_type: Declared content type for bare base64 input.

        Returns:
            Success outcome with ``{"url": ...}``. Malformed input returns a
            DECODE_ERROR outcome without any upload attempt. Exhausted
            retries return a fixed message; the store's detail is logged only.
        """

        async def _run() -> MutationOutcome:
            await resolve_actor(self._identity)
            if self._blob_store is None:
                raise RuntimeError("No blob store configured")

            try:
                safe_blob_path(filename)
            except ValueError as e:
                logger.warning("Rejected upload filename: %s", e)
                return MutationOutcome.from_code(VALIDATION_ERROR, f"Invalid filename: {filename!r}")

            artifact = data if isinstance(data, BinaryArtifact) else normalize(data, content_type)

            outcome = await self._executor.execute(
                lambda: self._blob_store.put(
                    filename,
                    artifact.raw_bytes,
                    access="public",
                    content_type=artifact.content_type,
                ),
                action="upload file",
            )
            if not outcome.success:
                if outcome.code == TRANSIENT_WRITE_FAILURE:
                    logger.error("Blob upload exhausted retries: %s", outcome.error)
                    return MutationOutcome.fail(UPLOAD_FAILED_MESSAGE, code=TRANSIENT_WRITE_FAILURE)
                return outcome

            ref = outcome.data
            url = ref.url if isinstance(ref, BlobRef) else _extract_url(ref)
            return MutationOutcome.ok({"url": url})

        return await self._guarded("upload_binary", _run)

    async def update_driver_position(
        self,
        lat: float,
        lng: float,
        accuracy: float | None = None,
    ) -> MutationOutcome:
        """Upsert the driver's current position.

        Args:
            lat: Latitude in degrees.
            lng: Longitude in degrees.
            accuracy: Optional accuracy radius in meters.

        Returns:
            Success outcome, or a failure with a fixed message.
        """

        async def _run() -> MutationOutcome:
            driver_id = await resolve_actor(self._identity)
            position = DriverPosition(
                driver_id=driver_id, lat=lat, lng=lng, accuracy=accuracy or None,
            )

            outcome = await self._executor.execute(
                lambda: self._store.upsert_position(
                    position.driver_id, position.lat, position.lng, position.accuracy,
                ),
                action="update position",
            )
            if not outcome.success:
                return MutationOutcome.fail(POSITION_FAILED_MESSAGE, code=outcome.code)
            return MutationOutcome.ok()

        return await self._guarded("update_driver_position", _run)

    # ------------------------------------------------------------------
    # Boundary and secondary effects
    # ------------------------------------------------------------------

    async def _guarded(
        self,
        operation: str,
        run: Callable[[], Awaitable[MutationOutcome]],
    ) -> MutationOutcome:
        """Convert anything raised by ``run`` into a failure outcome."""
        try:
            return await run()
        except AuthExpiredError as e:
            logger.warning("Auth error in %s: %s", operation, e.reason)
            return MutationOutcome.from_code(AUTH_EXPIRED)
        except ValidationError as e:
            logger.warning("Invalid input to %s: %s", operation, e.errors(include_input=False))
            return MutationOutcome.from_code(VALIDATION_ERROR, _validation_message(e))
        except DecodeError as e:
            logger.warning("Undecodable payload in %s: %s", operation, e)
            return MutationOutcome.from_code(DECODE_ERROR)
        except Exception:
            logger.exception("Unexpected error in %s", operation)
            return MutationOutcome.from_code(UNEXPECTED_ERROR)

    async def _write_status(self, update: StopStatusUpdate) -> Any:
        return await self._store.update_status(
            update.order_id, update.status.value, update.timestamp,
        )

    async def _write_stop_event(self, event: StopEvent) -> None:
        """Single, non-retried audit write. Failures are logged only."""
        try:
            result = await self._store.insert(STOP_EVENTS_TABLE, event.model_dump(mode="json"))
        except Exception as e:
            failure = SecondaryEffectFailure("Stop event write", error_message(e) or type(e).__name__)
        else:
            if not getattr(result, "error", None):
                return
            failure = SecondaryEffectFailure(
                "Stop event write", error_message(result.error) or "unknown error",
            )
        logger.error("%s (order=%s)", failure, event.order_id)

    def _dispatch_notification(self, order_id: str, pod_id: str) -> None:
        if self._dispatcher is None:
            logger.warning("POD notifications enabled but no dispatcher configured")
            return
        try:
            self._dispatcher.dispatch(order_id, pod_id)
        except Exception as e:
            logger.warning("POD notification setup failed (non-blocking): %s", e)

    def _invalidate(self) -> None:
        if self._invalidator is None:
            return
        try:
            self._invalidator.invalidate(DRIVER_VIEW_PATH)
        except Exception as e:
            logger.warning("View invalidation failed for %s: %s", DRIVER_VIEW_PATH, e)


def _extract_id(data: Any) -> str | None:
    if isinstance(data, dict):
        value = data.get("id")
    else:
        value = getattr(data, "id", None)
    return str(value) if value else None


def _extract_url(data: Any) -> str | None:
    if isinstance(data, dict):
        return data.get("url")
    return getattr(data, "url", None)


def _validation_message(error: ValidationError) -> str:
    fields = sorted({".".join(str(p) for p in e["loc"]) for e in error.errors()})
    return f"Invalid value for: {', '.join(fields)}" if fields else "Invalid submission"
