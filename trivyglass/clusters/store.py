"""Encrypted kubeconfig credential store.

Layout in the cache backend:
    hash ``kubeconfigs``   -- field = cluster name, value = ClusterRecord JSON
    set  ``cluster_names`` -- membership index

The ``local`` cluster is synthetic: it is always listed first and never
stored, fetched or deleted.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from trivyglass.clusters import kubeconfig
from trivyglass.errors import InvalidDocumentError, ProtectedClusterError
from trivyglass.models.clusters import LOCAL_CLUSTER, LOCAL_CLUSTER_INFO, ClusterInfo, ClusterRecord

if TYPE_CHECKING:
    from trivyglass.cache.tiered import TieredCache
    from trivyglass.crypto import Cipher

_log = structlog.get_logger(component="clusters.store")

KUBECONFIGS_HASH = "kubeconfigs"
CLUSTER_NAMES_SET = "cluster_names"


class CredentialStore:
    """Sole owner of stored ClusterRecords."""

    def __init__(self, cache: TieredCache, cipher: Cipher) -> None:
        self._cache = cache
        self._cipher = cipher

    async def save(self, document: str) -> list[str]:
        """Store every context of *document* as its own encrypted record.

        All records are built before anything is written, so a parse or
        encryption failure stores nothing.  A context that reuses an existing
        name replaces the stored record.

        Returns:
            The saved context names in document order.

        Raises:
            InvalidDocumentError: empty or non-YAML document.
            NoValidIdentitiesError: the document has no named contexts.
            ProtectedClusterError: a context is named ``local``.
        """
        contexts = kubeconfig.split_contexts(document)
        if LOCAL_CLUSTER in contexts:
            raise ProtectedClusterError(f"Context name '{LOCAL_CLUSTER}' is reserved")

        now = datetime.now(tz=UTC)
        records = []
        for name, narrowed in contexts.items():
            payload = self._cipher.encrypt(narrowed)
            records.append(ClusterRecord(name=name, encrypted_data=payload.ciphertext, iv=payload.iv, created_at=now))

        existing = await self._cache.set_members(CLUSTER_NAMES_SET)
        for record in records:
            if record.name in existing:
                _log.warning("cluster_overwritten", cluster=record.name)
            await self._cache.hash_set(KUBECONFIGS_HASH, record.name, record.to_json())
            await self._cache.set_add(CLUSTER_NAMES_SET, record.name)

        saved = [record.name for record in records]
        _log.info("clusters_saved", clusters=saved)
        return saved

    async def list(self) -> list[ClusterInfo]:
        """``local`` first, then every stored cluster sorted by name.

        Index entries without a record and corrupt records are logged and
        skipped.
        """
        infos = [LOCAL_CLUSTER_INFO]
        for name in sorted(await self._cache.set_members(CLUSTER_NAMES_SET)):
            if name == LOCAL_CLUSTER:
                continue
            try:
                record = await self.get(name)
            except InvalidDocumentError as exc:
                _log.warning("cluster_record_corrupt", cluster=name, error=str(exc))
                continue
            if record is None:
                _log.warning("cluster_index_stale", cluster=name)
                continue
            infos.append(ClusterInfo(name=record.name, created_at=record.created_at))
        return infos

    async def get(self, name: str) -> ClusterRecord | None:
        """Return the stored record, or None for ``local`` and unknown names.

        Raises:
            InvalidDocumentError: the stored record is corrupt.
        """
        if name == LOCAL_CLUSTER:
            return None
        raw = await self._cache.hash_get(KUBECONFIGS_HASH, name)
        if raw is None:
            return None
        try:
            return ClusterRecord.from_json(raw)
        except ValueError as exc:
            raise InvalidDocumentError(f"Stored record for cluster {name} is corrupt: {exc}") from exc

    async def delete(self, name: str) -> None:
        """Remove a stored cluster.  Deleting an unknown name is a no-op.

        Raises:
            ProtectedClusterError: *name* is ``local``.
        """
        if name == LOCAL_CLUSTER:
            raise ProtectedClusterError("Cannot delete local cluster")
        await self._cache.hash_delete(KUBECONFIGS_HASH, name)
        await self._cache.set_remove(CLUSTER_NAMES_SET, name)
        _log.info("cluster_deleted", cluster=name)
