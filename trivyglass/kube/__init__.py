"""Kubernetes access for trivyglass.

Submodules:
    discovery -- Ambient (in-cluster or default kubeconfig) configuration.
    api       -- ResourceApi, the custom-objects adaptor used as a client handle.
    client    -- ClientFactory building ResourceApi handles per cluster.
"""

from trivyglass.kube.api import ResourceApi
from trivyglass.kube.client import ClientFactory

__all__ = ["ClientFactory", "ResourceApi"]
