"""Cluster credentials and the active-cluster session.

Submodules:
    kubeconfig -- Kubeconfig parsing and per-context narrowing.
    store      -- CredentialStore, encrypted per-context records.
    session    -- ClusterSession, active cluster and memoized handles.
"""

from trivyglass.clusters.session import ClusterSession
from trivyglass.clusters.store import CredentialStore

__all__ = ["ClusterSession", "CredentialStore"]
