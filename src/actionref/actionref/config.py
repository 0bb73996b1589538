# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""Central actionref configuration.

All values have sensible defaults and can be overridden via environment variables
using the ``ACTIONREF_`` prefix:

  ACTIONREF_CACHE_DIR            Directory for downloaded manifests
                                  (default: ~/.cache/actionref)
  ACTIONREF_SUCCESS_TTL_S        Retention of a resolved reference in seconds
                                  (default: 86400, one day)
  ACTIONREF_FAILURE_TTL_S        Retention of a failed lookup in seconds
                                  (default: 600, ten minutes)
  ACTIONREF_FETCH_TIMEOUT_S      HTTP timeout per fetch (default: 10)
  ACTIONREF_RAW_CONTENT_HOST     Raw content host
                                  (default: https://raw.githubusercontent.com)
  ACTIONREF_GITHUB_HOST          Browse / marketplace host (default: https://github.com)
  ACTIONREF_WORKSPACE_ROOT       Root that local ``./`` references resolve against
                                  (default: current directory)
  ACTIONREF_MAX_WORKERS          Threads used by ``Resolver.resolve_all`` (default: 4)
  ACTIONREF_LOG_LEVEL            Log level (default: WARNING)
  ACTIONREF_MAX_LOG_FILE_BYTES   Max bytes per log file (optional)
  ACTIONREF_LOG_BACKUP_COUNT     Log rotation backup count (optional)
"""

from __future__ import annotations

import re
import threading
from pathlib import Path
from typing import Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_GITHUB_HOST, DEFAULT_RAW_CONTENT_HOST

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"})
_HOST_RE = re.compile(r"^https?://[a-zA-Z0-9.\-]+(:\d+)?$")


class ActionRefConfig(BaseSettings):
    """Central actionref configuration.

    Instantiate with ``ActionRefConfig()`` to read defaults and any
    ``ACTIONREF_*`` environment variable overrides automatically.
    """

    model_config = SettingsConfigDict(env_prefix="ACTIONREF_")

    # ── Cache configuration ────────────────────────────────────────────────
    cache_dir: Path = Path.home() / ".cache" / "actionref"
    success_ttl_s: float = 24 * 60 * 60.0
    failure_ttl_s: float = 10 * 60.0

    # ── Fetch configuration ────────────────────────────────────────────────
    fetch_timeout_s: float = 10.0
    raw_content_host: str = DEFAULT_RAW_CONTENT_HOST
    github_host: str = DEFAULT_GITHUB_HOST
    workspace_root: Path = Path(".")
    max_workers: int = 4

    # ── Logging configuration ──────────────────────────────────────────────
    log_level: str = "WARNING"
    max_log_file_bytes: Optional[int] = None
    log_backup_count: Optional[int] = None

    # ── Validators ─────────────────────────────────────────────────────────

    @field_validator("success_ttl_s", "failure_ttl_s", "fetch_timeout_s")
    @classmethod
    def _positive_seconds(cls, v: float, info: ValidationInfo) -> float:
        if v <= 0:
            raise ValueError(f"{info.field_name}={v} must be > 0")
        return v

    @field_validator("raw_content_host", "github_host")
    @classmethod
    def _valid_host(cls, v: str, info: ValidationInfo) -> str:
        v = v.rstrip("/")
        if not _HOST_RE.match(v):
            raise ValueError(
                f"{info.field_name}={v!r} is not a valid host. "
                "Expected a scheme and host, e.g. 'https://github.com'."
            )
        return v

    @field_validator("max_workers")
    @classmethod
    def _valid_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers={v} must be >= 1")
        return v

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        if v.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level={v!r} is not a valid log level. "
                f"Valid values: {', '.join(sorted(_VALID_LOG_LEVELS))}"
            )
        return v.upper()

    @field_validator("max_log_file_bytes", "log_backup_count")
    @classmethod
    def _non_negative(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError(f"{info.field_name}={v} must be >= 0")
        return v


# ── Module-level singleton ─────────────────────────────────────────────────────

_config: Optional[ActionRefConfig] = None
_config_lock = threading.Lock()


def get_config() -> ActionRefConfig:
    """Return the shared config, reading the environment on first use."""
    global _config
    with _config_lock:
        if _config is None:
            _config = ActionRefConfig()
        return _config


def load_and_validate_config() -> ActionRefConfig:
    """Re-read the environment, replace the shared config and return it.

    Raises ``pydantic.ValidationError`` on invalid values; the CLI calls this
    first so configuration errors surface before any fetch.
    """
    global _config
    cfg = ActionRefConfig()
    with _config_lock:
        _config = cfg
    return cfg
