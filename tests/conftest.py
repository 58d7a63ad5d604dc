"""Shared fixtures for trivyglass tests.

Provides a memory-backed tiered cache with a controllable clock, a cipher,
and fake resource API handles so tests exercise the full store → session →
report pipeline without a Redis server or a Kubernetes cluster.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from typing import Any

import pytest
import structlog

from trivyglass.cache.backends import MemoryBackend
from trivyglass.cache.tiered import BackendKind, ResolvedBackend, TieredCache
from trivyglass.clusters.session import ClusterSession
from trivyglass.clusters.store import CredentialStore
from trivyglass.core import TrivyGlass
from trivyglass.crypto import Cipher
from trivyglass.errors import ResourceApiError
from trivyglass.models.config import ResourceConfig
from trivyglass.reports.service import ReportService

TEST_KEY = bytes(range(32))
GROUP = "aquasecurity.github.io"
VERSION = "v1alpha1"

# ---------------------------------------------------------------------------
# Kubeconfig documents
# ---------------------------------------------------------------------------

TWO_CONTEXT_KUBECONFIG = """\
apiVersion: v1
kind: Config
preferences: {}
clusters:
- name: ca
  cluster:
    server: https://ca.example.com:6443
- name: cb
  cluster:
    server: https://cb.example.com:6443
contexts:
- name: a
  context:
    cluster: ca
    user: ua
- name: b
  context:
    cluster: cb
    user: ub
users:
- name: ua
  user:
    token: token-a
- name: ub
  user:
    token: token-b
current-context: a
"""

NO_CONTEXT_KUBECONFIG = """\
apiVersion: v1
kind: Config
clusters:
- name: ca
  cluster:
    server: https://ca.example.com:6443
"""


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Resource API fakes
# ---------------------------------------------------------------------------


def make_crd(
    plural: str,
    scope: str = "Namespaced",
    columns: list[dict[str, Any]] | None = None,
    group: str = GROUP,
    kind: str | None = None,
) -> dict[str, Any]:
    """Build a CustomResourceDefinition dict."""
    version: dict[str, Any] = {"name": VERSION, "served": True, "storage": True}
    if columns is not None:
        version["additionalPrinterColumns"] = columns
    return {
        "metadata": {"name": f"{plural}.{group}"},
        "spec": {
            "group": group,
            "scope": scope,
            "names": {"plural": plural, "kind": kind or plural.rstrip("s").title()},
            "versions": [version],
        },
    }


def make_report(name: str, namespace: str | None = None, **extra: Any) -> dict[str, Any]:
    metadata: dict[str, Any] = {"name": name, "creationTimestamp": "2025-01-01T00:00:00Z"}
    if namespace is not None:
        metadata["namespace"] = namespace
    return {"metadata": metadata, **extra}


class FakeCluster:
    """Data and failure switches behind every handle built for one cluster."""

    def __init__(self) -> None:
        self.crds: dict[str, dict[str, Any]] = {}
        self.items: dict[str, list[dict[str, Any]]] = {}
        self.objects: dict[tuple[str | None, str, str], dict[str, Any]] = {}
        self.crd_error: ResourceApiError | None = None
        self.list_error: ResourceApiError | None = None
        self.get_error: ResourceApiError | None = None
        # When set, listings wait on it after signalling list_started.
        self.list_gate: asyncio.Event | None = None
        self.list_started = asyncio.Event()
        self.calls: dict[str, int] = {}

    def add_crd(self, crd: dict[str, Any]) -> None:
        spec = crd["spec"]
        self.crds[f"{spec['names']['plural']}.{spec['group']}"] = crd

    def count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1


class FakeResourceApi:
    """In-memory stand-in for ResourceApi.

    Like the real client, every call fails once the handle is closed.
    """

    def __init__(self, cluster_name: str, state: FakeCluster, config: dict[str, Any] | None = None) -> None:
        self.cluster_name = cluster_name
        self.state = state
        self.config = config
        self.closed = False

    async def list_crds(self) -> list[dict[str, Any]]:
        self.state.count("list_crds")
        self._check_open()
        if self.state.crd_error is not None:
            raise self.state.crd_error
        return list(self.state.crds.values())

    async def get_crd(self, plural: str, group: str) -> dict[str, Any]:
        self.state.count("get_crd")
        self._check_open()
        if self.state.crd_error is not None:
            raise self.state.crd_error
        try:
            return self.state.crds[f"{plural}.{group}"]
        except KeyError:
            raise ResourceApiError("not found") from None

    async def list_cluster_scoped(self, group: str, version: str, plural: str) -> dict[str, Any]:
        self.state.count("list_cluster_scoped")
        await self._listing()
        if self.state.list_error is not None:
            raise self.state.list_error
        return {"items": self.state.items.get(plural, [])}

    async def list_namespaced_all_namespaces(self, group: str, version: str, plural: str) -> dict[str, Any]:
        self.state.count("list_namespaced_all_namespaces")
        await self._listing()
        if self.state.list_error is not None:
            raise self.state.list_error
        return {"items": self.state.items.get(plural, [])}

    async def get_cluster_scoped(self, group: str, version: str, plural: str, name: str) -> dict[str, Any]:
        self.state.count("get_cluster_scoped")
        return self._get(None, plural, name)

    async def get_namespaced(self, group: str, version: str, namespace: str, plural: str, name: str) -> dict[str, Any]:
        self.state.count("get_namespaced")
        return self._get(namespace, plural, name)

    def _get(self, namespace: str | None, plural: str, name: str) -> dict[str, Any]:
        self._check_open()
        if self.state.get_error is not None:
            raise self.state.get_error
        try:
            return self.state.objects[(namespace, plural, name)]
        except KeyError:
            raise ResourceApiError(f"{plural} {name} not found") from None

    async def close(self) -> None:
        self.closed = True

    def _check_open(self) -> None:
        if self.closed:
            raise ResourceApiError("Failed to connect to Kubernetes API: Session is closed")

    async def _listing(self) -> None:
        self.state.list_started.set()
        if self.state.list_gate is not None:
            await self.state.list_gate.wait()
        self._check_open()


class FakeClientFactory:
    """Builds a fresh FakeResourceApi per call, sharing one FakeCluster per name."""

    def __init__(self) -> None:
        self.clusters: dict[str, FakeCluster] = {}
        self.built: list[FakeResourceApi] = []

    def cluster(self, name: str) -> FakeCluster:
        return self.clusters.setdefault(name, FakeCluster())

    def built_for(self, name: str) -> list[FakeResourceApi]:
        return [api for api in self.built if api.cluster_name == name]

    async def for_local(self) -> FakeResourceApi:
        return self._build("local", None)

    async def for_kubeconfig(self, config_dict: dict[str, Any], context: str) -> FakeResourceApi:
        return self._build(context, config_dict)

    def _build(self, name: str, config: dict[str, Any] | None) -> FakeResourceApi:
        api = FakeResourceApi(name, self.cluster(name), config)
        self.built.append(api)
        return api


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def memory_backend(clock: FakeClock) -> MemoryBackend:
    return MemoryBackend(sweep_interval=60, clock=clock)


@pytest.fixture()
def cache(memory_backend: MemoryBackend) -> TieredCache:
    return TieredCache(ResolvedBackend(backend=memory_backend, kind=BackendKind.MEMORY))


@pytest.fixture()
def cipher() -> Cipher:
    return Cipher(TEST_KEY)


@pytest.fixture()
def store(cache: TieredCache, cipher: Cipher) -> CredentialStore:
    return CredentialStore(cache, cipher)


@pytest.fixture()
def factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture()
def session(store: CredentialStore, cache: TieredCache, cipher: Cipher, factory: FakeClientFactory) -> ClusterSession:
    return ClusterSession(store=store, cache=cache, cipher=cipher, client_factory=factory)  # type: ignore[arg-type]


@pytest.fixture()
def reports(session: ClusterSession, cache: TieredCache) -> ReportService:
    return ReportService(
        session=session,
        cache=cache,
        resources=ResourceConfig(group=GROUP, version=VERSION),
        ttl_seconds=300,
    )


@pytest.fixture()
def glass(store: CredentialStore, session: ClusterSession, reports: ReportService) -> TrivyGlass:
    return TrivyGlass(store=store, session=session, reports=reports)


@pytest.fixture()
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Replace the app's JSON logging with a logger that drops everything.

    Keeps CliRunner's captured stdout/stderr free of log lines.
    """

    def _setup(level: str = "info") -> None:
        structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL))

    monkeypatch.setattr("trivyglass.app.setup_logging", _setup)
    yield
    structlog.reset_defaults()


@pytest.fixture()
def memory_resolver(monkeypatch: pytest.MonkeyPatch, memory_backend: MemoryBackend) -> MemoryBackend:
    """Make app startup resolve to a shared memory backend instead of probing Redis."""

    async def _resolve(config: Any, client_factory: Any = None) -> ResolvedBackend:
        return ResolvedBackend(backend=memory_backend, kind=BackendKind.MEMORY)

    monkeypatch.setattr("trivyglass.app.resolve_backend", _resolve)
    return memory_backend
