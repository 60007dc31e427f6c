"""Error code registry for delivery submission outcomes.

Every failed ``MutationOutcome`` carries one of these codes. Categories:
- auth: identity could not be resolved (forces a re-login)
- write: primary mutation failed after exhausting retries
- input: caller-supplied data is malformed (never retried)
- secondary: best-effort side effects (logged, never surfaced)
- system: unanticipated failures caught at the operation boundary
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for outcome codes."""

    AUTH = "auth"
    WRITE = "write"
    INPUT = "input"
    SECONDARY = "secondary"
    SYSTEM = "system"


@dataclass(frozen=True)
class ErrorCode:
    """Definition of an outcome code with metadata.

    Attributes:
        code: Stable machine-readable code returned to mobile clients.
        category: Error category for grouping.
        title: Short title for display.
        message: Default user-facing message.
        remediation: Action the driver should take.
        is_retryable: Whether resubmitting the same request can succeed.
        requires_login: Whether the client must force a re-login flow.
        surfaced: Whether the code can appear in a returned outcome.
    """

    code: str
    category: ErrorCategory
    title: str
    message: str
    remediation: str
    is_retryable: bool = False
    requires_login: bool = False
    surfaced: bool = True


AUTH_EXPIRED = "AUTH_EXPIRED"
TRANSIENT_WRITE_FAILURE = "TRANSIENT_WRITE_FAILURE"
DECODE_ERROR = "DECODE_ERROR"
VALIDATION_ERROR = "VALIDATION_ERROR"
SECONDARY_EFFECT_FAILURE = "SECONDARY_EFFECT_FAILURE"
UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


ERROR_REGISTRY: dict[str, ErrorCode] = {
    AUTH_EXPIRED: ErrorCode(
        code=AUTH_EXPIRED,
        category=ErrorCategory.AUTH,
        title="Session Expired",
        message="Your session has expired. Please log in again.",
        remediation="Log in again, then resubmit.",
        requires_login=True,
    ),
    TRANSIENT_WRITE_FAILURE: ErrorCode(
        code=TRANSIENT_WRITE_FAILURE,
        category=ErrorCategory.WRITE,
        title="Submission Failed",
        message="The update could not be saved. Please try again.",
        remediation="Move to an area with better coverage and resubmit.",
        is_retryable=True,
    ),
    DECODE_ERROR: ErrorCode(
        code=DECODE_ERROR,
        category=ErrorCategory.INPUT,
        title="Unreadable Attachment",
        message="The photo or signature could not be read.",
        remediation="Capture the photo or signature again.",
    ),
    VALIDATION_ERROR: ErrorCode(
        code=VALIDATION_ERROR,
        category=ErrorCategory.INPUT,
        title="Invalid Submission",
        message="The submission contains invalid values.",
        remediation="Correct the highlighted values and resubmit.",
    ),
    SECONDARY_EFFECT_FAILURE: ErrorCode(
        code=SECONDARY_EFFECT_FAILURE,
        category=ErrorCategory.SECONDARY,
        title="Follow-up Action Failed",
        message="An audit record or notification could not be sent.",
        remediation="No action needed; the delivery update was saved.",
        surfaced=False,
    ),
    UNEXPECTED_ERROR: ErrorCode(
        code=UNEXPECTED_ERROR,
        category=ErrorCategory.SYSTEM,
        title="Unexpected Error",
        message="An unexpected error occurred. Please try again.",
        remediation="Retry. Contact dispatch if the problem persists.",
        is_retryable=True,
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Outcome code such as ``AUTH_EXPIRED``.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
