"""Cluster-aware, cached access to custom resource reports.

Every operation reads the session's active cluster name once and uses that
snapshot for both the cache key and the handle lookup, so a concurrent
switch cannot mix one cluster's data into another cluster's cache entry.
Remote calls run under a session lease, so a switch mid-call cannot close
the handle they use.

Resource API failures never escape this module: CRD metadata failures
become an error-shaped ReportsResult (cached for half the normal TTL) and
instance listing failures become an empty instance list.  Session errors
(unknown cluster, undecryptable credentials) still propagate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from trivyglass.cache.keys import crds_key, reports_key
from trivyglass.errors import RemoteListingError, RemoteMetadataError, ResourceApiError
from trivyglass.models.reports import (
    DEFAULT_COLUMNS,
    ColumnDefinition,
    CRDMetadata,
    ReportsResult,
    ResourceResult,
    ResourceScope,
)
from trivyglass.reports.projection import project

if TYPE_CHECKING:
    from trivyglass.cache.tiered import TieredCache
    from trivyglass.clusters.session import ClusterSession
    from trivyglass.kube.api import ResourceApi
    from trivyglass.models.config import ResourceConfig

_log = structlog.get_logger(component="reports.service")


class ReportService:
    """Read operations over the configured custom resource group."""

    def __init__(
        self,
        session: ClusterSession,
        cache: TieredCache,
        resources: ResourceConfig,
        ttl_seconds: int = 300,
    ) -> None:
        self._session = session
        self._cache = cache
        self._group = resources.group
        self._version = resources.version
        self._ttl = ttl_seconds

    @property
    def error_ttl_seconds(self) -> int:
        return max(self._ttl // 2, 1)

    # ------------------------------------------------------------------
    # CRD metadata
    # ------------------------------------------------------------------

    async def list_crd_metadata(self) -> list[CRDMetadata]:
        """Cluster-scoped CRDs of the configured group with their printer columns.

        An API failure yields an empty, uncached list.
        """
        cluster = self._session.current_cluster_name
        key = crds_key(cluster)
        cached = await self._cache.get(key)
        if cached is not None:
            return [CRDMetadata.from_dict(entry) for entry in cached]

        try:
            async with self._session.lease(cluster) as api:
                definitions = await api.list_crds()
        except ResourceApiError as exc:
            _log.warning("crd_listing_failed", cluster=cluster, error=exc.detail)
            return []

        metadata = [
            entry
            for entry in (self._crd_metadata(definition) for definition in definitions)
            if entry is not None and entry.scope == ResourceScope.CLUSTER
        ]
        await self._cache.set_with_expiry(key, [entry.to_dict() for entry in metadata], self._ttl)
        _log.debug("crd_metadata_loaded", cluster=cluster, count=len(metadata))
        return metadata

    # ------------------------------------------------------------------
    # Report listings
    # ------------------------------------------------------------------

    async def load_reports(self, resource: str) -> ReportsResult:
        """Every instance of *resource*, projected to its printer columns."""
        cluster = self._session.current_cluster_name
        key = reports_key(cluster, resource)
        cached = await self._cache.get(key)
        if cached is not None:
            _log.debug("reports_cache_hit", cluster=cluster, resource=resource)
            return ReportsResult.from_dict(cached)

        try:
            async with self._session.lease(cluster) as api:
                definition = await api.get_crd(resource, self._group)
                spec = definition.get("spec") or {}
                scope = (
                    ResourceScope.NAMESPACED
                    if spec.get("scope") == ResourceScope.NAMESPACED
                    else ResourceScope.CLUSTER
                )
                columns = self._columns(spec) or list(DEFAULT_COLUMNS)
                items = await self._list_instances(api, resource, scope)
        except ResourceApiError as exc:
            error = RemoteMetadataError(resource, exc)
            _log.warning("crd_metadata_failed", cluster=cluster, resource=resource, error=str(error))
            result = ReportsResult(
                manifests=[],
                cluster_name=cluster,
                scope=ResourceScope.UNKNOWN,
                resource=resource,
                error=str(error),
            )
            await self._cache.set_with_expiry(key, result.to_dict(), self.error_ttl_seconds)
            return result

        result = ReportsResult(
            manifests=[project(item, columns) for item in items],
            cluster_name=cluster,
            scope=scope,
            resource=resource,
            columns=columns,
        )
        await self._cache.set_with_expiry(key, result.to_dict(), self._ttl)
        _log.info("reports_loaded", cluster=cluster, resource=resource, scope=str(scope), count=len(items))
        return result

    async def invalidate(self, resource: str) -> None:
        cluster = self._session.current_cluster_name
        await self._cache.delete(reports_key(cluster, resource))
        _log.info("reports_cache_invalidated", cluster=cluster, resource=resource)

    # ------------------------------------------------------------------
    # Point lookups (uncached)
    # ------------------------------------------------------------------

    async def get_cluster_resource(self, resource: str, name: str) -> ResourceResult:
        cluster = self._session.current_cluster_name
        try:
            async with self._session.lease(cluster) as api:
                manifest = await api.get_cluster_scoped(self._group, self._version, resource, name)
        except ResourceApiError as exc:
            _log.warning("resource_lookup_failed", cluster=cluster, resource=resource, name=name, error=exc.detail)
            return ResourceResult(manifest=None, cluster_name=cluster, resource=resource, name=name, error=exc.detail)
        return ResourceResult(manifest=manifest, cluster_name=cluster, resource=resource, name=name)

    async def get_namespaced_resource(self, resource: str, namespace: str, name: str) -> ResourceResult:
        cluster = self._session.current_cluster_name
        try:
            async with self._session.lease(cluster) as api:
                manifest = await api.get_namespaced(self._group, self._version, namespace, resource, name)
        except ResourceApiError as exc:
            _log.warning(
                "resource_lookup_failed",
                cluster=cluster,
                resource=resource,
                namespace=namespace,
                name=name,
                error=exc.detail,
            )
            return ResourceResult(
                manifest=None,
                cluster_name=cluster,
                resource=resource,
                name=name,
                namespace=namespace,
                error=exc.detail,
            )
        return ResourceResult(manifest=manifest, cluster_name=cluster, resource=resource, name=name, namespace=namespace)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _list_instances(self, api: ResourceApi, resource: str, scope: ResourceScope) -> list[dict[str, Any]]:
        try:
            if scope == ResourceScope.NAMESPACED:
                listing = await api.list_namespaced_all_namespaces(self._group, self._version, resource)
            else:
                listing = await api.list_cluster_scoped(self._group, self._version, resource)
        except ResourceApiError as exc:
            error = RemoteListingError(resource, exc)
            _log.warning("reports_listing_failed", cluster=api.cluster_name, resource=resource, error=str(error))
            return []
        return [item for item in listing.get("items") or [] if isinstance(item, dict)]

    def _crd_metadata(self, definition: dict[str, Any]) -> CRDMetadata | None:
        spec = definition.get("spec") or {}
        if spec.get("group") != self._group:
            return None
        names = spec.get("names") or {}
        try:
            scope = ResourceScope(spec.get("scope"))
        except ValueError:
            scope = ResourceScope.UNKNOWN
        return CRDMetadata(
            name=str((definition.get("metadata") or {}).get("name", "")),
            kind=str(names.get("kind", "")),
            plural=str(names.get("plural", "")),
            group=self._group,
            version=self._version,
            scope=scope,
            columns=self._columns(spec),
        )

    def _columns(self, spec: dict[str, Any]) -> list[ColumnDefinition]:
        """Printer columns of the configured version (falls back to the first version)."""
        versions = [version for version in spec.get("versions") or [] if isinstance(version, dict)]
        if not versions:
            return []
        selected = next((version for version in versions if version.get("name") == self._version), versions[0])
        return [
            ColumnDefinition.from_dict(column)
            for column in selected.get("additionalPrinterColumns") or []
            if isinstance(column, dict) and column.get("name") and column.get("jsonPath")
        ]
