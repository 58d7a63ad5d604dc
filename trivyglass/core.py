"""The trivyglass contract exposed to route, UI and CLI layers.

TrivyGlass coordinates the three stores that must stay in step: the
credential store, the session's handle map and the tiered cache.  Callers
should go through this object rather than the components directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from trivyglass.models.clusters import ClusterListing, ClusterRecord

if TYPE_CHECKING:
    from trivyglass.clusters.session import ClusterSession
    from trivyglass.clusters.store import CredentialStore
    from trivyglass.models.reports import CRDMetadata, ReportsResult, ResourceResult
    from trivyglass.reports.service import ReportService

_log = structlog.get_logger(component="core")


class TrivyGlass:
    """Cluster management and report access for one session."""

    def __init__(self, store: CredentialStore, session: ClusterSession, reports: ReportService) -> None:
        self._store = store
        self._session = session
        self._reports = reports

    @property
    def session(self) -> ClusterSession:
        return self._session

    # --- clusters -----------------------------------------------------

    async def save_cluster(self, kubeconfig: str) -> list[str]:
        """Store every context of *kubeconfig*.  Returns the saved names.

        Handles built from a previous version of a re-saved context are
        discarded so the new credentials take effect on next use.
        """
        names = await self._store.save(kubeconfig)
        for name in names:
            await self._session.drop_handle(name)
        return names

    async def list_clusters(self) -> ClusterListing:
        return ClusterListing(
            clusters=await self._store.list(),
            current_cluster=self._session.current_cluster_name,
        )

    async def get_cluster(self, name: str) -> ClusterRecord | None:
        return await self._store.get(name)

    async def delete_cluster(self, name: str) -> None:
        await self._store.delete(name)
        await self._session.forget(name)

    def get_current_cluster_name(self) -> str:
        return self._session.current_cluster_name

    async def switch_cluster(self, name: str) -> None:
        await self._session.switch_to(name)

    # --- reports ------------------------------------------------------

    async def list_all_crds(self) -> list[CRDMetadata]:
        return await self._reports.list_crd_metadata()

    async def load_reports(self, resource: str) -> ReportsResult:
        return await self._reports.load_reports(resource)

    async def invalidate_cache(self, resource: str) -> None:
        await self._reports.invalidate(resource)

    async def get_cluster_resource(self, resource: str, name: str) -> ResourceResult:
        return await self._reports.get_cluster_resource(resource, name)

    async def get_namespaced_resource(self, resource: str, namespace: str, name: str) -> ResourceResult:
        return await self._reports.get_namespaced_resource(resource, namespace, name)
