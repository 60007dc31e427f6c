"""Pydantic schemas for driver API requests and responses.

Request bodies only check shape. Value rules (allowed statuses, coordinate
ranges) are enforced by the delivery service after the identity check, so
an expired session is always reported as such.
"""

from typing import Any

from pydantic import BaseModel, Field


class StopStatusRequest(BaseModel):
    """Request schema for recording a stop outcome."""

    status: str = Field(..., description="delivered or failed")
    notes: str | None = Field(None, max_length=2000)


class ProofOfDeliveryRequest(BaseModel):
    """Request schema for submitting proof of delivery."""

    photo_url: str | None = None
    signature_url: str | None = None
    notes: str | None = Field(None, max_length=2000)
    recipient_name: str | None = Field(None, max_length=200)


class UploadRequest(BaseModel):
    """Request schema for a base64 / data-URL upload."""

    data: str = Field(..., min_length=1, description="Data URL or bare base64")
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = "application/octet-stream"


class PositionRequest(BaseModel):
    """Request schema for a driver position ping."""

    lat: float
    lng: float
    accuracy: float | None = None


class MutationOutcomeResponse(BaseModel):
    """Wire shape of every driver mutation response."""

    success: bool
    data: Any | None = None
    error: str | None = None
    code: str | None = None
