"""PII redaction for log lines.

Delivery records carry recipient names, free-text notes and driver
positions. Anything logged from a failed write or a notification response
passes through here first. Matching is a case-insensitive substring test on
dict keys; nested dicts and lists of dicts are handled recursively.
"""

import re

# Substring patterns matched case-insensitively against dict keys
_DEFAULT_SENSITIVE_PATTERNS = frozenset({
    "notes", "recipient", "signature", "photo", "lat", "lng",
    "token", "authorization", "password", "secret",
})

# Keys whose entire value is redacted (regardless of content type)
_CONTAINER_KEYS = frozenset({"headers", "body"})

_REDACTED = "***REDACTED***"


def _is_sensitive_key(key: str, sensitive_patterns: frozenset[str]) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in sensitive_patterns)


def redact_for_logging(
    obj: dict,
    sensitive_patterns: frozenset[str] = _DEFAULT_SENSITIVE_PATTERNS,
) -> dict:
    """Redact sensitive values from a dict for safe logging.

    Args:
        obj: Dict to redact (not mutated, a copy is returned).
        sensitive_patterns: Substring patterns whose matching keys' values
            should be replaced.

    Returns:
        New dict with sensitive values replaced by '***REDACTED***'.
        ``None`` values are kept so absent fields stay visible.
    """
    result = {}
    for key, value in obj.items():
        key_lower = str(key).lower()
        if value is None:
            result[key] = None
        elif key_lower in _CONTAINER_KEYS:
            result[key] = _REDACTED
        elif _is_sensitive_key(key_lower, sensitive_patterns):
            result[key] = _REDACTED
        elif isinstance(value, dict):
            result[key] = redact_for_logging(value, sensitive_patterns)
        elif isinstance(value, list):
            result[key] = [
                redact_for_logging(item, sensitive_patterns) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value
    return result


_BEARER_RE = re.compile(r"(?i)Bearer\s+\S+")


def sanitize_error_message(msg: str | None, max_length: int = 500) -> str | None:
    """Strip bearer tokens from an error message and truncate it.

    Args:
        msg: Error message to sanitize (None passes through).
        max_length: Maximum length of the sanitized message.

    Returns:
        Sanitized and truncated message, or None.
    """
    if msg is None:
        return None
    sanitized = _BEARER_RE.sub("Bearer ***REDACTED***", msg)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized
