"""Custom-objects adaptor over kubernetes-asyncio.

ResourceApi is the client handle memoized per cluster by the session.  All
calls return plain dicts and raise ResourceApiError on failure, tagged as a
transport failure (no response) or an API failure (status + decoded body).
"""

from __future__ import annotations

import json
from collections.abc import Awaitable
from typing import Any

import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from trivyglass.errors import ApiErrorKind, ResourceApiError

_log = structlog.get_logger(component="kube.api")

CRD_GROUP = "apiextensions.k8s.io"
CRD_VERSION = "v1"
CRD_PLURAL = "customresourcedefinitions"


class ResourceApi:
    """Read-only custom resource operations for one cluster."""

    def __init__(self, api_client: k8s_client.ApiClient, cluster_name: str, timeout_seconds: float = 30.0) -> None:
        self._api_client = api_client
        self._custom = k8s_client.CustomObjectsApi(api_client)
        self.cluster_name = cluster_name
        self._timeout = timeout_seconds

    async def list_cluster_scoped(self, group: str, version: str, plural: str) -> dict[str, Any]:
        return await self._call(
            f"list {plural}.{group}",
            self._custom.list_cluster_custom_object(group, version, plural, _request_timeout=self._timeout),
        )

    async def list_namespaced_all_namespaces(self, group: str, version: str, plural: str) -> dict[str, Any]:
        return await self._call(
            f"list {plural}.{group} in all namespaces",
            self._custom.list_custom_object_for_all_namespaces(group, version, plural, _request_timeout=self._timeout),
        )

    async def get_cluster_scoped(self, group: str, version: str, plural: str, name: str) -> dict[str, Any]:
        return await self._call(
            f"get {plural}.{group}/{name}",
            self._custom.get_cluster_custom_object(group, version, plural, name, _request_timeout=self._timeout),
        )

    async def get_namespaced(self, group: str, version: str, namespace: str, plural: str, name: str) -> dict[str, Any]:
        return await self._call(
            f"get {plural}.{group} {namespace}/{name}",
            self._custom.get_namespaced_custom_object(
                group, version, namespace, plural, name, _request_timeout=self._timeout
            ),
        )

    async def list_crds(self) -> list[dict[str, Any]]:
        """Every CustomResourceDefinition in the cluster, as plain dicts."""
        result = await self.list_cluster_scoped(CRD_GROUP, CRD_VERSION, CRD_PLURAL)
        return list(result.get("items") or [])

    async def get_crd(self, plural: str, group: str) -> dict[str, Any]:
        return await self.get_cluster_scoped(CRD_GROUP, CRD_VERSION, CRD_PLURAL, f"{plural}.{group}")

    async def close(self) -> None:
        await self._api_client.close()

    async def _call(self, description: str, request: Awaitable[Any]) -> dict[str, Any]:
        try:
            result = await request
        except ApiException as exc:
            raise _api_error(description, exc) from exc
        except Exception as exc:
            _log.debug("resource_api_transport_error", cluster=self.cluster_name, call=description, error=str(exc))
            raise ResourceApiError(f"Failed to connect to Kubernetes API: {exc}", kind=ApiErrorKind.TRANSPORT) from exc
        if not isinstance(result, dict):
            return self._api_client.sanitize_for_serialization(result)  # type: ignore[no-any-return]
        return result


def _api_error(description: str, exc: ApiException) -> ResourceApiError:
    body: dict[str, Any] | None = None
    raw = exc.body
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str) and raw:
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, dict):
            body = decoded
    message = f"{description} failed: ({exc.status}) {exc.reason}"
    return ResourceApiError(message, kind=ApiErrorKind.API, status=exc.status, body=body)
