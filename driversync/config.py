"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. explicit path (``load_config(path)`` / ``DRIVERSYNC_CONFIG``)
2. ./driversync.yaml (working directory)
3. ~/.driversync/config.yaml (user home)

Defaults apply when no file is found. Environment variables override YAML:
DRIVERSYNC_<SECTION>_<KEY>, e.g. DRIVERSYNC_NOTIFICATIONS_ENABLED=true.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

_ENV_PREFIX = "DRIVERSYNC_"
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class RetryConfig(BaseModel):
    """Retry budget for primary mutations."""

    max_attempts: int = Field(3, ge=1, le=10)
    backoff_base_seconds: float = Field(1.0, ge=0)


class NotificationConfig(BaseModel):
    """POD notification dispatch. Disabled unless explicitly enabled."""

    enabled: bool = False
    url: str = ""
    timeout_seconds: float = Field(10.0, gt=0)

    @model_validator(mode="after")
    def url_required_when_enabled(self) -> "NotificationConfig":
        """An enabled channel needs somewhere to send."""
        if self.enabled and not self.url:
            raise ValueError("notifications.url is required when notifications are enabled")
        return self


class BlobConfig(BaseModel):
    """Blob storage backend for photos and signatures."""

    backend: Literal["local", "http"] = "local"
    base_dir: str = "./data/blobs"
    public_base_url: str = "/blobs"
    api_url: str = ""
    token: str = ""

    @model_validator(mode="after")
    def api_url_required_for_http(self) -> "BlobConfig":
        """The HTTP backend needs an API URL."""
        if self.backend == "http" and not self.api_url:
            raise ValueError("blob.api_url is required for the http backend")
        return self


class DatabaseConfig(BaseModel):
    """Database settings. ``url`` falls back to DATABASE_URL / local SQLite."""

    url: str | None = None


class LoggingConfig(BaseModel):
    """Root logging level for the service."""

    level: str = "info"


class DriverSyncConfig(BaseModel):
    """Top-level configuration for the DriverSync service."""

    retry: RetryConfig = RetryConfig()
    notifications: NotificationConfig = NotificationConfig()
    blob: BlobConfig = BlobConfig()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()


def _find_config_file() -> Path | None:
    candidates = [
        Path.cwd() / "driversync.yaml",
        Path.cwd() / "driversync.yml",
        Path.home() / ".driversync" / "config.yaml",
        Path.home() / ".driversync" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply DRIVERSYNC_<SECTION>_<KEY> env var overrides to config data.

    Matches section names by longest prefix, so
    ``DRIVERSYNC_RETRY_MAX_ATTEMPTS`` maps to section ``retry``, field
    ``max_attempts``.
    """
    known_sections = sorted(
        DriverSyncConfig.model_fields.keys(), key=len, reverse=True
    )
    for key, value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        suffix = key[len(_ENV_PREFIX):].lower()
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        if not isinstance(data.get(matched_section), dict):
            data[matched_section] = {}
        # Pydantic parses numeric and boolean strings in lax mode.
        data[matched_section][matched_field] = value
    return data


def load_config(config_path: str | None = None) -> DriverSyncConfig:
    """Load DriverSync configuration from YAML with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, DRIVERSYNC_CONFIG
            and then the standard locations are searched.

    Returns:
        Parsed and validated DriverSyncConfig (defaults if no file found).

    Raises:
        FileNotFoundError: An explicit path does not exist.
    """
    explicit = config_path or os.environ.get("DRIVERSYNC_CONFIG")
    if explicit:
        path: Path | None = Path(explicit)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {explicit}")
    else:
        path = _find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return DriverSyncConfig(**data)
