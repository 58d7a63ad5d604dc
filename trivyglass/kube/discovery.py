"""Ambient cluster configuration discovery."""

from __future__ import annotations

import os

import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]

_log = structlog.get_logger(component="kube.discovery")

SERVICE_HOST_ENV = "KUBERNETES_SERVICE_HOST"
SERVICE_PORT_ENV = "KUBERNETES_SERVICE_PORT"


def in_cluster_environment() -> bool:
    """True when running inside a pod with a service-account environment."""
    return bool(os.environ.get(SERVICE_HOST_ENV)) and bool(os.environ.get(SERVICE_PORT_ENV))


async def load_ambient_configuration() -> k8s_client.Configuration:
    """Build the configuration for the ``local`` cluster.

    In-cluster service account when both service env vars are present,
    otherwise the default kubeconfig location (``$KUBECONFIG`` or
    ``~/.kube/config``) and its current context.
    """
    configuration = k8s_client.Configuration()
    if in_cluster_environment():
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config(client_configuration=configuration)
        _log.info("local_cluster_configured", source="in-cluster service account")
    else:
        await k8s_config.load_kube_config(client_configuration=configuration)
        _log.info("local_cluster_configured", source="kubeconfig")
    return configuration
