"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from trivyglass.models.config import (
    CacheConfig,
    EncryptionConfig,
    LogConfig,
    ResourceConfig,
    TrivyGlassConfig,
)

# Development-only key used when ENCRYPTION_KEY is unset.  Anything encrypted
# with it is readable by anyone with this source tree.
DEFAULT_ENCRYPTION_KEY = b"trivyglass-development-key-00000"

_KEY_BYTES = 32


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"TRIVYGLASS_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_api_group(value: str) -> str:
    if not re.match(r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$", value):
        raise ValueError(f"Invalid API group: {value}")
    return value


def parse_encryption_key(raw: str) -> bytes:
    """Decode ENCRYPTION_KEY material into a 256-bit key.

    Accepts 64 hex characters or exactly 32 raw characters.
    """
    if len(raw) == _KEY_BYTES * 2 and re.fullmatch(r"[0-9a-fA-F]+", raw):
        return bytes.fromhex(raw)
    key = raw.encode("utf-8")
    if len(key) != _KEY_BYTES:
        raise ValueError(
            f"ENCRYPTION_KEY must be {_KEY_BYTES} bytes or {_KEY_BYTES * 2} hex characters, got {len(key)} bytes"
        )
    return key


def _load_encryption() -> EncryptionConfig:
    raw = os.environ.get("ENCRYPTION_KEY", "")
    if not raw:
        return EncryptionConfig(key=DEFAULT_ENCRYPTION_KEY, using_default_key=True)
    return EncryptionConfig(key=parse_encryption_key(raw), using_default_key=False)


def load_config() -> TrivyGlassConfig:
    """Load configuration from ENCRYPTION_KEY, REDIS_URL and TRIVYGLASS_* variables."""
    return TrivyGlassConfig(
        encryption=_load_encryption(),
        cache=CacheConfig(
            redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379"),
            connect_timeout_seconds=_env_int("REDIS_CONNECT_TIMEOUT", 3, min_val=1, max_val=30),
            ttl_seconds=_env_int("CACHE_TTL", 300, min_val=10, max_val=86400),
            sweep_interval_seconds=_env_int("CACHE_SWEEP_INTERVAL", 60, min_val=1, max_val=3600),
        ),
        resources=ResourceConfig(
            group=_validate_api_group(_env("CRD_GROUP", "aquasecurity.github.io")),
            version=_env("CRD_VERSION", "v1alpha1"),
            api_timeout_seconds=_env_int("API_TIMEOUT", 30, min_val=1, max_val=300),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
