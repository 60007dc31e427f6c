"""Error handling framework for DriverSync.

This package provides:
- Outcome code registry (AUTH_EXPIRED, TRANSIENT_WRITE_FAILURE, ...)
- Typed domain exceptions converted to outcomes at operation boundaries
"""

from driversync.errors.domain import (
    AuthExpiredError,
    DecodeError,
    DomainError,
    SecondaryEffectFailure,
)
from driversync.errors.registry import (
    AUTH_EXPIRED,
    DECODE_ERROR,
    ERROR_REGISTRY,
    SECONDARY_EFFECT_FAILURE,
    TRANSIENT_WRITE_FAILURE,
    UNEXPECTED_ERROR,
    VALIDATION_ERROR,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    "AUTH_EXPIRED",
    "TRANSIENT_WRITE_FAILURE",
    "DECODE_ERROR",
    "VALIDATION_ERROR",
    "SECONDARY_EFFECT_FAILURE",
    "UNEXPECTED_ERROR",
    # Exceptions
    "DomainError",
    "AuthExpiredError",
    "DecodeError",
    "SecondaryEffectFailure",
]
