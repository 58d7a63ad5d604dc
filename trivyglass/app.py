"""Application bootstrap for trivyglass.

Wires all components in dependency order.
Startup order: config → logging → cipher → cache backend → credential store
              → client factory → cluster session → report service

Shutdown runs in reverse order.  Each component's stop error is caught and
logged independently so that one failing teardown does not prevent the rest
from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from trivyglass.cache.tiered import TieredCache, resolve_backend
from trivyglass.clusters.session import ClusterSession
from trivyglass.clusters.store import CredentialStore
from trivyglass.config import load_config
from trivyglass.core import TrivyGlass
from trivyglass.crypto import Cipher
from trivyglass.kube.client import ClientFactory
from trivyglass.models.config import TrivyGlassConfig
from trivyglass.observability.logging import get_logger, setup_logging
from trivyglass.reports.service import ReportService

if TYPE_CHECKING:
    from types import TracebackType

    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class TrivyGlassApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Usable as an async context manager::

        async with TrivyGlassApp() as glass:
            await glass.switch_cluster("prod")
            result = await glass.load_reports("vulnerabilityreports")

    ``stop()`` is safe to call on an app that never started.
    """

    def __init__(
        self,
        config: TrivyGlassConfig | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self._cache: TieredCache | None = None
        self._session: ClusterSession | None = None
        self._glass: TrivyGlass | None = None
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def glass(self) -> TrivyGlass:
        if self._glass is None:
            raise RuntimeError("TrivyGlassApp is not started")
        return self._glass

    async def __aenter__(self) -> TrivyGlass:
        return await self.start()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> TrivyGlass:
        """Start all components in dependency order.

        Raises ComponentError if a component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("trivyglass starting", version=_trivyglass_version())

        cipher = self._start_cipher()
        cache = await self._start_cache()

        store = CredentialStore(cache, cipher)
        factory = self._client_factory or ClientFactory(timeout_seconds=self.config.resources.api_timeout_seconds)
        self._session = ClusterSession(store=store, cache=cache, cipher=cipher, client_factory=factory)
        reports = ReportService(
            session=self._session,
            cache=cache,
            resources=self.config.resources,
            ttl_seconds=self.config.cache.ttl_seconds,
        )
        self._glass = TrivyGlass(store=store, session=self._session, reports=reports)

        self._running = True
        self._log.info("trivyglass started", cache_backend=str(cache.kind))
        return self._glass

    def _start_cipher(self) -> Cipher:
        assert self._log is not None
        assert self.config is not None
        try:
            return Cipher(self.config.encryption.key, using_default_key=self.config.encryption.using_default_key)
        except ValueError as exc:
            raise ComponentError("cipher", exc) from exc

    async def _start_cache(self) -> TieredCache:
        """Resolve the cache backend once and start its background work."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting cache")
        try:
            resolved = await resolve_backend(self.config.cache)
            cache = TieredCache(resolved)
            await cache.start()
        except Exception as exc:
            raise ComponentError("cache", exc) from exc
        self._cache = cache
        self._log.info("cache started", backend=str(resolved.kind))
        return cache

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("trivyglass shutting down")
        self._running = False

        await self._stop_component("session", self._session.close() if self._session else None)
        await self._stop_component("cache", self._cache.stop() if self._cache else None)
        self._session = None
        self._cache = None
        self._glass = None

        log.info("trivyglass stopped")

    async def _stop_component(self, name: str, stopping: object | None) -> None:
        if stopping is None:
            return
        log = self._log or get_logger("app")
        try:
            if asyncio.iscoroutine(stopping):
                await asyncio.wait_for(stopping, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _trivyglass_version() -> str:
    from trivyglass import __version__

    return __version__
