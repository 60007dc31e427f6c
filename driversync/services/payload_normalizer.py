"""Normalize mobile-captured binary payloads for upload.

Mobile capture APIs hand us either a data URL
(``data:image/png;base64,iVBOR...``) or a bare base64 string. Both become a
``BinaryArtifact``: raw bytes plus a content type. Artifacts are transient;
only the blob reference produced from them is ever persisted.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

from driversync.errors.domain import DecodeError

DATA_URL_PREFIX = "data:"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class BinaryArtifact:
    """Decoded upload payload.

    Attributes:
        raw_bytes: Decoded content.
        content_type: MIME type the blob store should record.
    """

    raw_bytes: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.raw_bytes)


def normalize(data: str, declared_content_type: str) -> BinaryArtifact:
    """Decode a data URL or raw base64 string into a BinaryArtifact.

    Args:
        data: Data URL or bare base64 text.
        declared_content_type: Content type to use when the payload does not
            declare its own.

    Returns:
        BinaryArtifact with the decoded bytes.

    Raises:
        DecodeError: Payload is not decodable or decodes to zero bytes.
    """
    if not isinstance(data, str):
        raise DecodeError(f"Expected text payload, got {type(data).__name__}")

    if data.startswith(DATA_URL_PREFIX):
        raw, content_type = _decode_data_url(data)
        content_type = content_type or declared_content_type
    else:
        # Callers sometimes forget to strip a data-URL header.
        _, sep, tail = data.partition(",")
        raw = _decode_base64(tail if sep else data)
        content_type = declared_content_type

    if not raw:
        raise DecodeError("Payload decoded to zero bytes")

    return BinaryArtifact(
        raw_bytes=raw,
        content_type=content_type or DEFAULT_CONTENT_TYPE,
    )


def _decode_data_url(data: str) -> tuple[bytes, str | None]:
    """Split ``data:[<mediatype>][;base64],<payload>`` and decode the payload."""
    header, sep, payload = data[len(DATA_URL_PREFIX):].partition(",")
    if not sep:
        raise DecodeError("Data URL is missing the ',' separator")

    params = [p.strip() for p in header.split(";")]
    is_base64 = bool(params) and params[-1].lower() == "base64"
    if is_base64:
        params = params[:-1]

    media_type = params[0] if params and "/" in params[0] else None

    if is_base64:
        return _decode_base64(payload), media_type
    return unquote_to_bytes(payload), media_type


def _decode_base64(text: str) -> bytes:
    """Decode base64, tolerating whitespace, missing padding and URL-safe chars."""
    cleaned = _WHITESPACE_RE.sub("", text).translate(str.maketrans("-_", "+/"))
    cleaned = cleaned.rstrip("=")
    if len(cleaned) % 4 == 1:
        raise DecodeError("Payload is not valid base64")
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Payload is not valid base64: {e}") from e
