"""FastAPI dependencies wiring requests to the delivery service."""

from fastapi import Depends, Header, Request

from driversync.services.delivery_service import DeliveryConfirmationService
from driversync.services.runtime import DeliveryRuntime
from driversync.services.session_guard import (
    IdentityProvider,
    SessionTokenIdentityProvider,
)


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_runtime(request: Request) -> DeliveryRuntime:
    """Shared collaborators built at app creation."""
    return request.app.state.runtime


def get_identity_provider(
    request: Request,
    authorization: str | None = Header(None),
) -> IdentityProvider:
    """Identity provider for this request's bearer token."""
    return SessionTokenIdentityProvider(
        request.app.state.session_factory,
        bearer_token(authorization),
    )


def get_delivery_service(
    runtime: DeliveryRuntime = Depends(get_runtime),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> DeliveryConfirmationService:
    """Dependency injector for DeliveryConfirmationService."""
    return runtime.service_for(identity)
