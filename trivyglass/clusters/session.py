"""Active-cluster session.

A ClusterSession tracks which cluster current operations are scoped to and
memoizes one ResourceApi handle per cluster.  Sessions are ordinary objects
injected into the report service, so one process can hold several.

Switching commits the new name before validating it.  A switch to a cluster
with missing or undecryptable credentials raises, but the session stays
pointed at that cluster until the caller switches again.

Calls that must finish on the handle they started with take it through
``lease``.  A handle released while leased is retired rather than closed and
is closed when its last lease ends.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial
from typing import TYPE_CHECKING

import structlog

from trivyglass.cache.keys import crds_key, is_report_key_of, reports_pattern
from trivyglass.clusters import kubeconfig
from trivyglass.errors import ClusterNotFoundError
from trivyglass.models.clusters import LOCAL_CLUSTER

if TYPE_CHECKING:
    from trivyglass.cache.tiered import TieredCache
    from trivyglass.clusters.store import CredentialStore
    from trivyglass.crypto import Cipher
    from trivyglass.kube.api import ResourceApi
    from trivyglass.kube.client import ClientFactory

_log = structlog.get_logger(component="clusters.session")


class ClusterSession:
    """Owns the active cluster name and the per-cluster handle map."""

    def __init__(
        self,
        store: CredentialStore,
        cache: TieredCache,
        cipher: Cipher,
        client_factory: ClientFactory,
    ) -> None:
        self._store = store
        self._cache = cache
        self._cipher = cipher
        self._client_factory = client_factory
        self._current = LOCAL_CLUSTER
        self._handles: dict[str, ResourceApi] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # id(handle) -> number of open leases
        self._leases: dict[int, int] = {}
        self._retired: dict[int, ResourceApi] = {}

    @property
    def current_cluster_name(self) -> str:
        return self._current

    def has_handle(self, name: str) -> bool:
        return name in self._handles

    async def switch_to(self, name: str) -> None:
        """Make *name* the active cluster.

        Drops the memoized handles of the previous and the new cluster, builds
        a fresh handle for a stored cluster, then deletes the new cluster's
        CRD and report cache entries.

        Raises:
            ValueError: *name* is empty.
            ClusterNotFoundError: no stored credentials for *name*.
            DecryptionError: the stored credentials cannot be decrypted.
        """
        if not name:
            raise ValueError("Cluster name is required")

        previous = self._current
        self._current = name
        _log.info("cluster_switch", previous=previous, cluster=name)

        if previous != name:
            async with self._lock_for(previous):
                await self._release(previous)

        async with self._lock_for(name):
            await self._release(name)
            if name != LOCAL_CLUSTER:
                self._handles[name] = await self._materialize(name)

        await self.invalidate_cluster_cache(name)

    async def client_handle(self, cluster_name: str | None = None) -> ResourceApi:
        """Return the memoized handle for *cluster_name* (default: active cluster).

        Concurrent callers for the same cluster share a single materialization.
        The handle may be closed by a later switch; use ``lease`` to keep it
        open for the duration of a call.

        Raises:
            ClusterNotFoundError: the cluster's credentials are gone.
            DecryptionError: the stored credentials cannot be decrypted.
        """
        name = cluster_name or self._current
        handle = self._handles.get(name)
        if handle is not None:
            return handle
        async with self._lock_for(name):
            handle = self._handles.get(name)
            if handle is None:
                handle = await self._materialize(name)
                self._handles[name] = handle
            return handle

    @asynccontextmanager
    async def lease(self, cluster_name: str | None = None) -> AsyncIterator[ResourceApi]:
        """Hold the handle for *cluster_name* open until the block exits."""
        handle = await self.client_handle(cluster_name)
        key = id(handle)
        self._leases[key] = self._leases.get(key, 0) + 1
        try:
            yield handle
        finally:
            remaining = self._leases[key] - 1
            if remaining:
                self._leases[key] = remaining
            else:
                del self._leases[key]
                retired = self._retired.pop(key, None)
                if retired is not None:
                    await _close_handle(retired)

    async def drop_handle(self, name: str) -> None:
        """Discard the memoized handle for *name*; the next use rebuilds it."""
        async with self._lock_for(name):
            await self._release(name)

    async def forget(self, name: str) -> None:
        """Drop every trace of a deleted cluster from the session and cache."""
        await self.drop_handle(name)
        self._locks.pop(name, None)
        await self.invalidate_cluster_cache(name)
        if self._current == name:
            _log.info("active_cluster_forgotten", cluster=name, fallback=LOCAL_CLUSTER)
            self._current = LOCAL_CLUSTER

    async def invalidate_cluster_cache(self, name: str) -> None:
        """Delete the CRD and report entries of exactly *name*."""
        await self._cache.delete(crds_key(name))
        removed = await self._cache.delete_matching(reports_pattern(name), partial(is_report_key_of, name))
        _log.debug("cluster_cache_invalidated", cluster=name, report_entries=removed)

    async def close(self) -> None:
        """Close every handle, leased or not."""
        for name in list(self._handles):
            await self._release(name)
        retired = list(self._retired.values())
        self._retired.clear()
        for handle in retired:
            await _close_handle(handle)

    def _lock_for(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock

    async def _materialize(self, name: str) -> ResourceApi:
        if name == LOCAL_CLUSTER:
            return await self._client_factory.for_local()

        record = await self._store.get(name)
        if record is None:
            # Unknown names must not accumulate locks.
            self._locks.pop(name, None)
            raise ClusterNotFoundError(name)
        document = self._cipher.decrypt(record.encrypted_data, record.iv)
        handle = await self._client_factory.for_kubeconfig(kubeconfig.parse(document), name)
        _log.debug("cluster_handle_materialized", cluster=name)
        return handle

    async def _release(self, name: str) -> None:
        handle = self._handles.pop(name, None)
        if handle is None:
            return
        if self._leases.get(id(handle)):
            self._retired[id(handle)] = handle
            _log.debug("cluster_handle_retired", cluster=name)
            return
        await _close_handle(handle)


async def _close_handle(handle: ResourceApi) -> None:
    try:
        await handle.close()
    except Exception as exc:
        _log.debug("cluster_handle_close_failed", cluster=handle.cluster_name, error=str(exc))
