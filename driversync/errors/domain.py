"""Typed domain exceptions raised inside the submission pipeline.

These never escape a public operation: the delivery service converts them
into ``MutationOutcome`` failures at its boundary.

Usage:
    # In a collaborator
    raise DecodeError("payload is not valid base64")

    # In the service boundary
    except AuthExpiredError as e:
        return MutationOutcome.from_code(AUTH_EXPIRED)
"""

from driversync.errors.registry import (
    AUTH_EXPIRED,
    DECODE_ERROR,
    SECONDARY_EFFECT_FAILURE,
)


class DomainError(Exception):
    """Base exception for all domain errors."""

    code: str | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthExpiredError(DomainError):
    """No usable identity: never logged in, session lapsed, or lookup failed."""

    code = AUTH_EXPIRED

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or "No authenticated driver")
        self.reason = reason


class DecodeError(DomainError):
    """Binary payload could not be decoded. Never retried."""

    code = DECODE_ERROR


class SecondaryEffectFailure(DomainError):
    """An audit write or notification dispatch failed after the primary write."""

    code = SECONDARY_EFFECT_FAILURE

    def __init__(self, effect: str, reason: str) -> None:
        super().__init__(f"{effect} failed: {reason}")
        self.effect = effect
        self.reason = reason
