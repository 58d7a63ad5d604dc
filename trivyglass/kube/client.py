"""ResourceApi construction for the local cluster and stored kubeconfigs."""

from __future__ import annotations

from typing import Any

import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]

from trivyglass.errors import InvalidDocumentError, ResourceApiError
from trivyglass.kube.api import ResourceApi
from trivyglass.kube.discovery import load_ambient_configuration
from trivyglass.models.clusters import LOCAL_CLUSTER

_log = structlog.get_logger(component="kube.client")


class ClientFactory:
    """Builds one ResourceApi (and its connection pool) per call."""

    def __init__(self, timeout_seconds: float = 30.0) -> None:
        self._timeout = timeout_seconds

    async def for_local(self) -> ResourceApi:
        """Build the handle for the ambient cluster.

        Raises:
            ResourceApiError: no in-cluster environment and no usable default
                kubeconfig.
        """
        try:
            configuration = await load_ambient_configuration()
        except k8s_config.ConfigException as exc:
            raise ResourceApiError(f"Failed to connect to Kubernetes API: {exc}") from exc
        return ResourceApi(
            k8s_client.ApiClient(configuration=configuration),
            cluster_name=LOCAL_CLUSTER,
            timeout_seconds=self._timeout,
        )

    async def for_kubeconfig(self, config_dict: dict[str, Any], context: str) -> ResourceApi:
        """Build a handle from a decrypted, single-context kubeconfig.

        Raises:
            InvalidDocumentError: the kubeconfig cannot be loaded for *context*.
        """
        configuration = k8s_client.Configuration()
        try:
            await k8s_config.load_kube_config_from_dict(
                config_dict,
                context=context,
                client_configuration=configuration,
            )
        except k8s_config.ConfigException as exc:
            raise InvalidDocumentError(f"Invalid kubeconfig for cluster {context}: {exc}") from exc
        _log.debug("cluster_client_built", cluster=context, host=configuration.host)
        return ResourceApi(
            k8s_client.ApiClient(configuration=configuration),
            cluster_name=context,
            timeout_seconds=self._timeout,
        )
