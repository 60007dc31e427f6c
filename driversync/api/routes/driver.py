"""API routes for the driver app.

All endpoints use the /api/v1/driver prefix and answer with the
MutationOutcome shape. The HTTP status mirrors the outcome code so mobile
clients can branch on either.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from driversync.api.deps import get_delivery_service
from driversync.api.schemas import (
    MutationOutcomeResponse,
    PositionRequest,
    ProofOfDeliveryRequest,
    StopStatusRequest,
    UploadRequest,
)
from driversync.errors.registry import (
    AUTH_EXPIRED,
    DECODE_ERROR,
    TRANSIENT_WRITE_FAILURE,
    UNEXPECTED_ERROR,
    VALIDATION_ERROR,
)
from driversync.services.delivery_service import DeliveryConfirmationService
from driversync.services.outcome import MutationOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/driver", tags=["driver"])

_STATUS_BY_CODE = {
    AUTH_EXPIRED: 401,
    VALIDATION_ERROR: 400,
    DECODE_ERROR: 400,
    TRANSIENT_WRITE_FAILURE: 503,
    UNEXPECTED_ERROR: 500,
}


def outcome_response(outcome: MutationOutcome) -> JSONResponse:
    """Render an outcome with a matching HTTP status."""
    if outcome.success:
        status_code = 200
    else:
        status_code = _STATUS_BY_CODE.get(outcome.code or "", 500)
    return JSONResponse(status_code=status_code, content=outcome.to_dict())


@router.post("/stops/{order_id}/status", response_model=MutationOutcomeResponse)
async def record_stop_status(
    order_id: str,
    body: StopStatusRequest,
    service: DeliveryConfirmationService = Depends(get_delivery_service),
) -> JSONResponse:
    """Record a delivered/failed outcome for a stop."""
    outcome = await service.record_stop_status(order_id, body.status, body.notes)
    return outcome_response(outcome)


@router.post("/stops/{order_id}/pod", response_model=MutationOutcomeResponse)
async def submit_proof_of_delivery(
    order_id: str,
    body: ProofOfDeliveryRequest,
    service: DeliveryConfirmationService = Depends(get_delivery_service),
) -> JSONResponse:
    """Submit proof of delivery for a stop."""
    outcome = await service.submit_proof_of_delivery(
        order_id,
        photo_url=body.photo_url,
        signature_url=body.signature_url,
        notes=body.notes,
        recipient_name=body.recipient_name,
    )
    return outcome_response(outcome)


@router.post("/uploads", response_model=MutationOutcomeResponse)
async def upload_binary(
    body: UploadRequest,
    service: DeliveryConfirmationService = Depends(get_delivery_service),
) -> JSONResponse:
    """Upload a captured photo or signature."""
    outcome = await service.upload_binary(body.data, body.filename, body.content_type)
    return outcome_response(outcome)


@router.post("/position", response_model=MutationOutcomeResponse)
async def update_driver_position(
    body: PositionRequest,
    service: DeliveryConfirmationService = Depends(get_delivery_service),
) -> JSONResponse:
    """Report the driver's current position."""
    outcome = await service.update_driver_position(body.lat, body.lng, body.accuracy)
    return outcome_response(outcome)
