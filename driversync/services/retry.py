"""Bounded retry with backoff for primary mutations.

Mobile networks produce timeouts and connection resets that look the same
as permanent rejections from where we sit, so every primary write gets a
small, fixed retry budget. Collaborators report failure in two ways: by
raising, or by returning a result whose ``error`` attribute is set (the
store contract). Both are folded into a single failure channel here.

Example:
    executor = RetryingExecutor(max_attempts=3, backoff_base=1.0)
    outcome = await executor.execute(
        lambda: store.update_status(order_id, "delivered", now),
        action="update order status",
    )
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from driversync.errors.domain import DecodeError
from driversync.errors.registry import DECODE_ERROR, TRANSIENT_WRITE_FAILURE
from driversync.services.outcome import MutationOutcome

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 1.0
FALLBACK_ERROR_MESSAGE = "Network error"

Operation = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


class _AttemptFailed(Exception):
    """Internal marker for a result-level error returned by an operation."""

    def __init__(self, error: Any) -> None:
        super().__init__(error_message(error))
        self.error = error


def error_message(error: Any) -> str | None:
    """Extract a human-readable message from an exception or error object.

    Args:
        error: Exception, error object with a ``message`` attribute, dict
            with a ``message`` key, or plain string.

    Returns:
        The message, or None when the error carries none.
    """
    if error is None:
        return None
    if isinstance(error, str):
        return error or None
    if isinstance(error, dict):
        message = error.get("message")
    else:
        message = getattr(error, "message", None)
    if message:
        return str(message)
    if isinstance(error, BaseException) and error.args:
        text = str(error)
        return text or None
    return None


def _result_error(result: Any) -> Any:
    """Return the result-level error carried by ``result``, if any."""
    if isinstance(result, dict):
        return result.get("error")
    return getattr(result, "error", None)


def _result_data(result: Any) -> Any:
    if result is None:
        return None
    if isinstance(result, dict):
        return result.get("data", result)
    if hasattr(result, "error") and hasattr(result, "data"):
        return result.data
    return result


class RetryingExecutor:
    """Run one logical write with a bounded retry budget.

    Attributes:
        max_attempts: Total attempts per call (not retries).
        backoff_base: Base delay in seconds; the k-th sleep is ``base * k``.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        sleep: Sleep | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            max_attempts: Attempts per call, at least 1.
            backoff_base: Base delay in seconds. Zero disables sleeping.
            sleep: Awaitable sleep function, injectable for tests.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if backoff_base < 0:
            raise ValueError("backoff_base must be non-negative")
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._sleep = sleep or asyncio.sleep

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds after the given 1-based failed attempt."""
        return self.backoff_base * attempt

    async def execute(
        self,
        op: Operation,
        *,
        action: str = "save changes",
        max_attempts: int | None = None,
    ) -> MutationOutcome:
        """Run ``op`` until it succeeds or the attempt budget is spent.

        Args:
            op: Zero-argument async callable performing the write.
            action: Verb phrase used in the failure message
                ("Failed to <action>: <cause>").
            max_attempts: Optional per-call override of the attempt budget.

        Returns:
            Success outcome carrying the operation's data, or a
            TRANSIENT_WRITE_FAILURE outcome built from the last error.
            A DecodeError raised by ``op`` is returned immediately as a
            DECODE_ERROR outcome.
        """
        attempts = self.max_attempts if max_attempts is None else max(1, max_attempts)
        last_error: Any = None

        for attempt in range(1, attempts + 1):
            try:
                result = await op()
                error = _result_error(result)
                if error:
                    raise _AttemptFailed(error)
                if attempt > 1:
                    logger.info("'%s' succeeded on attempt %d/%d", action, attempt, attempts)
                return MutationOutcome.ok(_result_data(result))
            except DecodeError as e:
                logger.warning("'%s' rejected malformed payload: %s", action, e)
                return MutationOutcome.from_code(DECODE_ERROR)
            except _AttemptFailed as e:
                last_error = e.error
            except Exception as e:
                last_error = e

            if attempt < attempts:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "'%s' failed (attempt %d/%d), retrying in %.1fs: %s",
                    action, attempt, attempts, delay, error_message(last_error),
                )
                await self._sleep(delay)

        cause = error_message(last_error) or FALLBACK_ERROR_MESSAGE
        logger.error("'%s' failed after %d attempts: %s", action, attempts, cause)
        return MutationOutcome.fail(
            f"Failed to {action}: {cause}",
            code=TRANSIENT_WRITE_FAILURE,
        )
