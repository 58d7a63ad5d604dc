"""Tiered cache: Redis when reachable at startup, in-process memory otherwise.

The backend is resolved exactly once, by ``resolve_backend``, and the result
is injected into ``TieredCache``.  A Redis server that is down at startup is
never probed again; the process keeps the memory backend for its lifetime.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from trivyglass.cache.backends import CacheBackend, MemoryBackend, RedisBackend

if TYPE_CHECKING:
    from trivyglass.models.config import CacheConfig

_log = structlog.get_logger(component="cache.tiered")


class BackendKind(StrEnum):
    """Which backend the process settled on."""

    REDIS = "redis"
    MEMORY = "memory"


@dataclass(frozen=True)
class ResolvedBackend:
    """Outcome of the one-time backend selection."""

    backend: CacheBackend
    kind: BackendKind


def _default_client_factory(config: CacheConfig) -> aioredis.Redis:
    return aioredis.from_url(
        config.redis_url,
        decode_responses=True,
        socket_connect_timeout=config.connect_timeout_seconds,
        socket_timeout=config.connect_timeout_seconds,
    )


async def resolve_backend(
    config: CacheConfig,
    client_factory: Callable[[CacheConfig], aioredis.Redis] | None = None,
) -> ResolvedBackend:
    """Attempt one Redis connection and fall back to memory on any failure."""
    factory = client_factory or _default_client_factory
    try:
        client = factory(config)
    except ValueError as exc:
        _log.warning("redis_url_invalid_using_memory_cache", error=str(exc))
        return _memory(config)

    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        _log.warning(
            "redis_unavailable_using_memory_cache",
            redis_url=_redact_url(config.redis_url),
            error=str(exc),
        )
        try:
            await client.aclose()
        except RedisError:
            pass  # Connection never opened
        return _memory(config)

    _log.info("redis_cache_connected", redis_url=_redact_url(config.redis_url))
    return ResolvedBackend(backend=RedisBackend(client), kind=BackendKind.REDIS)


def _memory(config: CacheConfig) -> ResolvedBackend:
    backend = MemoryBackend(sweep_interval=config.sweep_interval_seconds)
    return ResolvedBackend(backend=backend, kind=BackendKind.MEMORY)


def _redact_url(url: str) -> str:
    """Drop credentials from a redis:// URL before logging it."""
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"


class TieredCache:
    """JSON-valued facade over the resolved backend.

    Other components address entries by key only.  Values that fail to
    decode are treated as absent.
    """

    def __init__(self, resolved: ResolvedBackend) -> None:
        self._resolved = resolved
        self._backend = resolved.backend

    @property
    def kind(self) -> BackendKind:
        return self._resolved.kind

    async def get(self, key: str) -> Any | None:
        raw = await self._backend.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            _log.warning("cache_value_undecodable", key=key, error=str(exc))
            return None

    async def set_with_expiry(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self._backend.set_with_expiry(key, json.dumps(value), ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._backend.delete(key)

    async def delete_matching(self, pattern: str, predicate: Callable[[str], bool] | None = None) -> int:
        """Delete every key matching the glob *pattern* (and *predicate*, if given).

        Returns the number of deleted keys.
        """
        keys = await self._backend.keys_matching(pattern)
        if predicate is not None:
            keys = [key for key in keys if predicate(key)]
        for key in keys:
            await self._backend.delete(key)
        return len(keys)

    async def hash_get(self, hash_name: str, field: str) -> str | None:
        return await self._backend.hash_get(hash_name, field)

    async def hash_set(self, hash_name: str, field: str, value: str) -> None:
        await self._backend.hash_set(hash_name, field, value)

    async def hash_delete(self, hash_name: str, field: str) -> None:
        await self._backend.hash_delete(hash_name, field)

    async def set_add(self, set_name: str, member: str) -> None:
        await self._backend.set_add(set_name, member)

    async def set_remove(self, set_name: str, member: str) -> None:
        await self._backend.set_remove(set_name, member)

    async def set_members(self, set_name: str) -> set[str]:
        return await self._backend.set_members(set_name)

    async def keys_matching(self, pattern: str) -> list[str]:
        return await self._backend.keys_matching(pattern)

    async def start(self) -> None:
        await self._backend.start()

    async def stop(self) -> None:
        await self._backend.stop()
