"""Blob storage backends for proof-of-delivery photos and signatures.

Provides a pluggable storage interface so uploads are not tied to an
ephemeral local filesystem in containerized deployments. Backends may
raise on failure; the delivery service wraps ``put`` in its retry budget.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlobRef:
    """Reference to a stored blob."""

    url: str
    pathname: str
    content_type: str
    size: int


class BlobStore(Protocol):
    """Storage contract used by the delivery service for uploads."""

    async def put(
        self,
        filename: str,
        data: bytes,
        *,
        access: str = "public",
        content_type: str,
    ) -> BlobRef:
        """Persist ``data`` under ``filename`` and return its reference."""


def safe_blob_path(filename: str) -> PurePosixPath:
    """Validate a client-supplied filename as a relative POSIX path.

    Raises:
        ValueError: Empty name, absolute path, or parent-directory segments.
    """
    cleaned = filename.replace("\\", "/").strip()
    path = PurePosixPath(cleaned)
    if not cleaned or path.is_absolute() or ".." in path.parts:
        raise ValueError(f"Invalid blob filename: {filename!r}")
    return path


def with_random_suffix(path: PurePosixPath) -> PurePosixPath:
    """Append a short random token so repeated uploads never collide."""
    token = secrets.token_hex(4)
    return path.with_name(f"{path.stem}-{token}{path.suffix}")


class LocalBlobStore:
    """Filesystem-backed blob storage served from ``public_base_url``."""

    def __init__(
        self,
        base_dir: str | Path,
        public_base_url: str = "/blobs",
        add_random_suffix: bool = True,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.add_random_suffix = add_random_suffix

    async def put(
        self,
        filename: str,
        data: bytes,
        *,
        access: str = "public",
        content_type: str,
    ) -> BlobRef:
        relative = safe_blob_path(filename)
        if self.add_random_suffix:
            relative = with_random_suffix(relative)
        target = self.base_dir / relative
        await asyncio.to_thread(_write_file, target, data)
        logger.info("Stored blob %s (%d bytes, %s)", relative, len(data), content_type)
        return BlobRef(
            url=f"{self.public_base_url}/{quote(relative.as_posix())}",
            pathname=relative.as_posix(),
            content_type=content_type,
            size=len(data),
        )


def _write_file(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


class HttpBlobStore:
    """Blob storage behind an HTTP API (``PUT <api_url>/<pathname>``).

    The API is expected to answer with JSON containing at least ``url``.
    """

    def __init__(
        self,
        api_url: str,
        token: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._client = client

    async def put(
        self,
        filename: str,
        data: bytes,
        *,
        access: str = "public",
        content_type: str,
    ) -> BlobRef:
        relative = safe_blob_path(filename)
        headers = {
            "Content-Type": content_type,
            "x-content-type": content_type,
            "x-access": access,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        url = f"{self.api_url}/{quote(relative.as_posix())}"
        if self._client is not None:
            response = await self._client.put(url, content=data, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.put(url, content=data, headers=headers)

        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict) or not body.get("url"):
            raise ValueError("Blob API response did not include a url")
        return BlobRef(
            url=body["url"],
            pathname=body.get("pathname", relative.as_posix()),
            content_type=body.get("contentType", content_type),
            size=len(data),
        )
