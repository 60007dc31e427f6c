"""Identity resolution run before every mutating operation.

Providers report ``IdentityLookup(user, error)``. An error and an absent user
are treated identically: both mean the driver must log in again. Nothing is
written until ``resolve_actor`` returns.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from driversync.db.models import DriverSession
from driversync.errors.domain import AuthExpiredError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Authenticated driver."""

    id: str


@dataclass(frozen=True)
class IdentityLookup:
    """Result of asking a provider for the current user."""

    user: Actor | None = None
    error: str | None = None


class IdentityProvider(Protocol):
    """Ambient identity source, passed explicitly to the delivery service."""

    async def get_current_user(self) -> IdentityLookup:
        """Return the current driver, or an error/absent user."""


def resolve_actor_from(lookup: IdentityLookup) -> str:
    """Translate a lookup into an actor id or raise AuthExpiredError."""
    if lookup.error or lookup.user is None or not lookup.user.id:
        raise AuthExpiredError(lookup.error)
    return lookup.user.id


async def resolve_actor(provider: IdentityProvider) -> str:
    """Resolve the current driver's identifier.

    Args:
        provider: Identity provider for the current request.

    Returns:
        The driver's identifier.

    Raises:
        AuthExpiredError: No identity, or the provider reported an error.
    """
    lookup = await provider.get_current_user()
    return resolve_actor_from(lookup)


class StaticIdentityProvider:
    """Provider returning a fixed identity. Used by scripts and tests."""

    def __init__(self, driver_id: str | None = None, error: str | None = None) -> None:
        self._driver_id = driver_id
        self._error = error

    async def get_current_user(self) -> IdentityLookup:
        if self._error:
            return IdentityLookup(error=self._error)
        if not self._driver_id:
            return IdentityLookup()
        return IdentityLookup(user=Actor(id=self._driver_id))


class SessionTokenIdentityProvider:
    """Resolve a bearer token against the driver_sessions table.

    Unknown, revoked and expired tokens yield an absent user. Database
    failures yield an error lookup; the guard treats both the same way.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        token: str | None,
    ) -> None:
        self._session_factory = session_factory
        self._token = token

    async def get_current_user(self) -> IdentityLookup:
        if not self._token:
            return IdentityLookup()
        return await asyncio.to_thread(self._lookup)

    def _lookup(self) -> IdentityLookup:
        db = self._session_factory()
        try:
            record = (
                db.query(DriverSession)
                .filter(DriverSession.token == self._token)
                .first()
            )
        except SQLAlchemyError as e:
            logger.error("Identity lookup failed: %s", e)
            return IdentityLookup(error=str(e))
        finally:
            db.close()

        if record is None or record.revoked:
            return IdentityLookup()
        if _is_expired(record.expires_at):
            logger.info("Session for driver %s has expired", record.driver_id)
            return IdentityLookup()
        return IdentityLookup(user=Actor(id=record.driver_id))


def _is_expired(expires_at: str | None) -> bool:
    if not expires_at:
        return False
    try:
        parsed = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    except ValueError:
        return True
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed <= datetime.now(UTC)
