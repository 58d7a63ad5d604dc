"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EncryptionConfig:
    """Credential encryption configuration."""

    key: bytes = b""
    using_default_key: bool = True


@dataclass
class CacheConfig:
    """Tiered cache configuration."""

    redis_url: str = "redis://localhost:6379"
    connect_timeout_seconds: int = 3
    ttl_seconds: int = 300
    sweep_interval_seconds: int = 60


@dataclass
class ResourceConfig:
    """Target custom resource API group and request limits."""

    group: str = "aquasecurity.github.io"
    version: str = "v1alpha1"
    api_timeout_seconds: int = 30


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class TrivyGlassConfig:
    """Top-level trivyglass configuration."""

    encryption: EncryptionConfig = field(default_factory=EncryptionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    resources: ResourceConfig = field(default_factory=ResourceConfig)
    log: LogConfig = field(default_factory=LogConfig)
