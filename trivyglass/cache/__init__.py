"""Cache layer for trivyglass.

Report listings and CRD metadata are cached per cluster with a TTL; the
credential store keeps its hash and set index in the same backend.

Submodules:
    backends -- Memory and Redis backend implementations.
    tiered   -- One-time backend resolution and the JSON-valued TieredCache.
"""

from trivyglass.cache.backends import CacheBackend, MemoryBackend, RedisBackend
from trivyglass.cache.tiered import BackendKind, ResolvedBackend, TieredCache, resolve_backend

__all__ = [
    "BackendKind",
    "CacheBackend",
    "MemoryBackend",
    "RedisBackend",
    "ResolvedBackend",
    "TieredCache",
    "resolve_backend",
]
