"""Cache backend implementations.

CacheBackend   -- ABC shared by both backends.  String values only; the
                  tiered cache handles serialization.
MemoryBackend  -- Process-local dict store with lazy expiry and a periodic
                  sweep task.  Never fails.
RedisBackend   -- redis.asyncio store.  Every Redis error is logged and
                  degrades to an absent read or a no-op write.
"""

from __future__ import annotations

import asyncio
import fnmatch
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from redis.exceptions import RedisError

from trivyglass.errors import UnsupportedCacheOperationError

if TYPE_CHECKING:
    from redis.asyncio import Redis

_log = structlog.get_logger(component="cache.backends")

_T = TypeVar("_T")


class CacheBackend(ABC):
    """Key/value store with TTL plus optional hash, set and key-scan operations.

    The optional operations raise UnsupportedCacheOperationError unless a
    subclass implements them.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier used in logs and errors."""

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    async def hash_get(self, hash_name: str, field: str) -> str | None:
        raise UnsupportedCacheOperationError("hash_get", self.name)

    async def hash_set(self, hash_name: str, field: str, value: str) -> None:
        raise UnsupportedCacheOperationError("hash_set", self.name)

    async def hash_delete(self, hash_name: str, field: str) -> None:
        raise UnsupportedCacheOperationError("hash_delete", self.name)

    async def set_add(self, set_name: str, member: str) -> None:
        raise UnsupportedCacheOperationError("set_add", self.name)

    async def set_remove(self, set_name: str, member: str) -> None:
        raise UnsupportedCacheOperationError("set_remove", self.name)

    async def set_members(self, set_name: str) -> set[str]:
        raise UnsupportedCacheOperationError("set_members", self.name)

    async def keys_matching(self, pattern: str) -> list[str]:
        raise UnsupportedCacheOperationError("keys_matching", self.name)

    async def start(self) -> None:
        """Start background work, if any."""

    async def stop(self) -> None:
        """Release connections and stop background work."""


class MemoryBackend(CacheBackend):
    """In-process fallback store.

    Entries are logically absent once ``clock() >= expires_at``; reads evict
    them lazily and the sweep task evicts the rest every ``sweep_interval``
    seconds.  Hashes and sets never expire.
    """

    def __init__(
        self,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._values: dict[str, tuple[str, float]] = {}
        self._hashes: dict[str, dict[str, str]] = {}
        self._sets: dict[str, set[str]] = {}
        self._sweeper: asyncio.Task[None] | None = None

    @property
    def name(self) -> str:
        return "memory"

    async def get(self, key: str) -> str | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._values[key]
            return None
        return value

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            self._values.pop(key, None)
            return
        self._values[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._hashes.pop(key, None)
        self._sets.pop(key, None)

    async def hash_get(self, hash_name: str, field: str) -> str | None:
        return self._hashes.get(hash_name, {}).get(field)

    async def hash_set(self, hash_name: str, field: str, value: str) -> None:
        self._hashes.setdefault(hash_name, {})[field] = value

    async def hash_delete(self, hash_name: str, field: str) -> None:
        fields = self._hashes.get(hash_name)
        if fields is None:
            return
        fields.pop(field, None)
        if not fields:
            del self._hashes[hash_name]

    async def set_add(self, set_name: str, member: str) -> None:
        self._sets.setdefault(set_name, set()).add(member)

    async def set_remove(self, set_name: str, member: str) -> None:
        members = self._sets.get(set_name)
        if members is None:
            return
        members.discard(member)
        if not members:
            del self._sets[set_name]

    async def set_members(self, set_name: str) -> set[str]:
        return set(self._sets.get(set_name, set()))

    async def keys_matching(self, pattern: str) -> list[str]:
        now = self._clock()
        live = [key for key, (_, expires_at) in self._values.items() if now < expires_at]
        candidates = [*live, *self._hashes, *self._sets]
        return [key for key in candidates if fnmatch.fnmatchcase(key, pattern)]

    def sweep(self) -> int:
        """Evict every expired value.  Returns the number of evicted keys."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._values.items() if now >= expires_at]
        for key in expired:
            del self._values[key]
        return len(expired)

    async def start(self) -> None:
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(), name="memory-cache-sweeper")

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        await asyncio.gather(self._sweeper, return_exceptions=True)
        self._sweeper = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            evicted = self.sweep()
            if evicted:
                _log.debug("memory_cache_swept", evicted=evicted, remaining=len(self._values))


class RedisBackend(CacheBackend):
    """Durable store backed by an already-connected redis.asyncio client.

    The client must be created with ``decode_responses=True``.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return "redis"

    async def _call(self, operation: str, default: _T, fn: Callable[[], Awaitable[Any]]) -> _T:
        try:
            return await fn()  # type: ignore[no-any-return]
        except RedisError as exc:
            _log.warning("redis_operation_failed", operation=operation, error=str(exc))
            return default

    async def get(self, key: str) -> str | None:
        return await self._call("get", None, lambda: self._client.get(key))

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            await self.delete(key)
            return
        await self._call("setex", None, lambda: self._client.setex(key, ttl_seconds, value))

    async def delete(self, key: str) -> None:
        await self._call("delete", None, lambda: self._client.delete(key))

    async def hash_get(self, hash_name: str, field: str) -> str | None:
        return await self._call("hget", None, lambda: self._client.hget(hash_name, field))

    async def hash_set(self, hash_name: str, field: str, value: str) -> None:
        await self._call("hset", None, lambda: self._client.hset(hash_name, field, value))

    async def hash_delete(self, hash_name: str, field: str) -> None:
        await self._call("hdel", None, lambda: self._client.hdel(hash_name, field))

    async def set_add(self, set_name: str, member: str) -> None:
        await self._call("sadd", None, lambda: self._client.sadd(set_name, member))

    async def set_remove(self, set_name: str, member: str) -> None:
        await self._call("srem", None, lambda: self._client.srem(set_name, member))

    async def set_members(self, set_name: str) -> set[str]:
        members = await self._call("smembers", set(), lambda: self._client.smembers(set_name))
        return set(members)

    async def keys_matching(self, pattern: str) -> list[str]:
        async def _scan() -> list[str]:
            return [key async for key in self._client.scan_iter(match=pattern)]

        return await self._call("scan", [], _scan)

    async def stop(self) -> None:
        try:
            await self._client.aclose()
        except RedisError as exc:
            _log.debug("redis_close_failed", error=str(exc))
