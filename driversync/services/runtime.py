"""Process-wide collaborators for the delivery service.

Shared pieces (store, executor, dispatcher, invalidator, blob store) are
built once from configuration. A ``DeliveryConfirmationService`` is then
created per request with that request's identity provider.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.orm import Session

from driversync.config import DriverSyncConfig
from driversync.services.blob_storage import BlobStore, HttpBlobStore, LocalBlobStore
from driversync.services.delivery_service import DeliveryConfirmationService
from driversync.services.delivery_store import DeliveryStore, SqlDeliveryStore
from driversync.services.invalidation import PathInvalidator
from driversync.services.notification_client import (
    NotificationDispatcher,
    PodNotificationClient,
)
from driversync.services.retry import RetryingExecutor
from driversync.services.session_guard import IdentityProvider

logger = logging.getLogger(__name__)


@dataclass
class DeliveryRuntime:
    """Shared collaborators; holds no per-request state."""

    store: DeliveryStore
    executor: RetryingExecutor
    blob_store: BlobStore
    invalidator: PathInvalidator = field(default_factory=PathInvalidator)
    dispatcher: NotificationDispatcher | None = None
    notifications_enabled: bool = False

    def service_for(self, identity: IdentityProvider) -> DeliveryConfirmationService:
        """Build a delivery service bound to one request's identity."""
        return DeliveryConfirmationService(
            identity=identity,
            store=self.store,
            executor=self.executor,
            dispatcher=self.dispatcher,
            invalidator=self.invalidator,
            blob_store=self.blob_store,
            notifications_enabled=self.notifications_enabled,
        )

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Give in-flight notifications a chance to finish."""
        if self.dispatcher is not None and self.dispatcher.pending:
            logger.info("Draining %d in-flight notifications", self.dispatcher.pending)
            await self.dispatcher.drain(timeout=timeout)


def build_blob_store(config: DriverSyncConfig) -> BlobStore:
    blob = config.blob
    if blob.backend == "http":
        return HttpBlobStore(api_url=blob.api_url, token=blob.token)
    return LocalBlobStore(base_dir=blob.base_dir, public_base_url=blob.public_base_url)


def build_runtime(
    config: DriverSyncConfig,
    session_factory: Callable[[], Session],
) -> DeliveryRuntime:
    """Assemble shared collaborators from configuration.

    Args:
        config: Loaded service configuration.
        session_factory: SQLAlchemy session factory for the store.

    Returns:
        DeliveryRuntime ready to build per-request services.
    """
    dispatcher = None
    if config.notifications.enabled:
        dispatcher = NotificationDispatcher(
            PodNotificationClient(
                url=config.notifications.url,
                timeout=config.notifications.timeout_seconds,
            )
        )
    else:
        logger.info("POD notifications disabled")

    return DeliveryRuntime(
        store=SqlDeliveryStore(session_factory),
        executor=RetryingExecutor(
            max_attempts=config.retry.max_attempts,
            backoff_base=config.retry.backoff_base_seconds,
        ),
        blob_store=build_blob_store(config),
        dispatcher=dispatcher,
        notifications_enabled=config.notifications.enabled,
    )
