"""Proof-of-delivery notification channel.

``PodNotificationClient`` posts ``{orderId, podId}`` to the notification
endpoint and interprets its reply, JSON or not. ``NotificationDispatcher``
runs those posts as detached asyncio tasks: the delivery service never
awaits them, and every failure ends up in the log rather than in the
submission's outcome.
"""

import asyncio
import logging
from typing import Any, Protocol

import httpx

from driversync.errors.domain import SecondaryEffectFailure
from driversync.utils.redaction import redact_for_logging, sanitize_error_message

logger = logging.getLogger(__name__)


class PodNotifier(Protocol):
    """Anything that can deliver a POD notification."""

    async def send(self, order_id: str, pod_id: str) -> dict[str, Any]:
        """Deliver the notification and return the interpreted response."""


def interpret_response(response: httpx.Response) -> dict[str, Any]:
    """Normalize a notification endpoint response into a dict.

    JSON objects are returned as-is (``ok`` and ``status`` filled in when
    missing). Non-JSON bodies are wrapped as ``{ok: False, status, body}``.

    Args:
        response: HTTP response from the notification endpoint.

    Returns:
        Dict with at least ``ok`` and ``status``.
    """
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            parsed = response.json()
        except ValueError:
            return {"ok": False, "status": response.status_code, "body": response.text}
        if isinstance(parsed, dict):
            result = dict(parsed)
            result.setdefault("ok", response.is_success)
            result.setdefault("status", response.status_code)
            return result
        return {"ok": response.is_success, "status": response.status_code, "data": parsed}
    return {"ok": False, "status": response.status_code, "body": response.text}


class PodNotificationClient:
    """HTTP client for the POD notification endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Absolute URL of the notification endpoint.
            timeout: Request timeout in seconds.
            client: Optional shared AsyncClient (tests inject a MockTransport).
        """
        self.url = url
        self._timeout = timeout
        self._client = client

    async def send(self, order_id: str, pod_id: str) -> dict[str, Any]:
        """POST ``{orderId, podId}`` and return the interpreted response.

        Raises:
            httpx.HTTPError: Transport failure or timeout.
        """
        payload = {"orderId": order_id, "podId": pod_id}
        headers = {"Content-Type": "application/json", "Cache-Control": "no-cache"}

        if self._client is not None:
            response = await self._client.post(self.url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        return interpret_response(response)


class NotificationDispatcher:
    """Fire-and-forget runner for POD notifications.

    Keeps a strong reference to each in-flight task until it finishes so the
    event loop cannot garbage-collect it mid-flight. ``drain()`` lets app
    shutdown and tests wait for outstanding sends.
    """

    def __init__(self, notifier: PodNotifier) -> None:
        self._notifier = notifier
        self._inflight: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of notifications still in flight."""
        return len(self._inflight)

    def dispatch(self, order_id: str, pod_id: str) -> asyncio.Task | None:
        """Start a notification without waiting for it.

        Never raises. Returns the task, or None if it could not be scheduled.
        """
        logger.info("Dispatching POD notification: order=%s pod=%s", order_id, pod_id)
        try:
            task = asyncio.get_running_loop().create_task(
                self._deliver(order_id, pod_id),
                name=f"pod-notification-{pod_id}",
            )
        except Exception as e:
            logger.warning("POD notification setup failed (non-blocking): %s", e)
            return None
        self._inflight.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight notifications to finish.

        Notifications still running when ``timeout`` expires are cancelled.
        """
        if not self._inflight:
            return
        _, pending = await asyncio.wait(set(self._inflight), timeout=timeout)
        if not pending:
            return
        logger.warning("Cancelling %d POD notifications still in flight", len(pending))
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _deliver(self, order_id: str, pod_id: str) -> dict[str, Any]:
        result = await self._notifier.send(order_id, pod_id)
        logger.info("POD notification response: %s", redact_for_logging(result))
        if not result.get("ok"):
            failure = SecondaryEffectFailure(
                "POD notification",
                f"status={result.get('status')} "
                f"error={sanitize_error_message(str(result.get('error')))}",
            )
            logger.error("%s (order=%s pod=%s)", failure, order_id, pod_id)
        return result

    def _on_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            logger.debug("POD notification cancelled: %s", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "POD notification call failed (non-blocking): %s",
                sanitize_error_message(str(exc) or type(exc).__name__),
            )
