"""trivyglass CLI.

Commands:
    clusters list       List stored clusters (local first)
    clusters add        Store every context of a kubeconfig file
    clusters delete     Delete a stored cluster
    crds                List cluster-scoped report CRDs and their columns
    reports             List every instance of a report kind
    get                 Fetch one report (cluster-scoped or namespaced)
    invalidate          Drop the cached listing of a report kind

The active cluster only lives for one invocation; ``--cluster`` switches to
a stored cluster before the command runs.  Output is JSON on stdout.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click

from trivyglass import __version__
from trivyglass.app import ComponentError, TrivyGlassApp
from trivyglass.core import TrivyGlass
from trivyglass.errors import TrivyGlassError
from trivyglass.notifications import build_notification

_cluster_option = click.option(
    "--cluster",
    "cluster",
    default=None,
    help="Stored cluster to switch to before running the command.",
)


def _emit(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _run(action: Callable[[TrivyGlass], Awaitable[Any]], cluster: str | None = None) -> None:
    """Start the app, optionally switch cluster, run *action*, print its result."""

    async def _main() -> Any:
        async with TrivyGlassApp() as glass:
            if cluster:
                await glass.switch_cluster(cluster)
            return await action(glass)

    try:
        result = asyncio.run(_main())
    except (TrivyGlassError, ComponentError, ValueError) as e:
        notification = build_notification(e)
        click.echo(f"[{notification.severity}] {notification.message}", err=True)
        sys.exit(1)
    if result is not None:
        _emit(result)


# --- Root group ---


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """trivyglass: multi-cluster access to Trivy security reports."""


# --- clusters ---


@cli.group()
def clusters() -> None:
    """Manage stored cluster credentials."""


@clusters.command("list")
def clusters_list() -> None:
    """List clusters and the current one."""

    async def _action(glass: TrivyGlass) -> dict[str, Any]:
        listing = await glass.list_clusters()
        return {
            "clusters": [info.to_dict() for info in listing.clusters],
            "currentCluster": listing.current_cluster,
        }

    _run(_action)


@clusters.command("add")
@click.argument("kubeconfig", type=click.File("r"))
def clusters_add(kubeconfig: Any) -> None:
    """Store every context of KUBECONFIG ("-" reads stdin)."""
    document = kubeconfig.read()

    async def _action(glass: TrivyGlass) -> dict[str, Any]:
        return {"success": True, "contexts": await glass.save_cluster(document)}

    _run(_action)


@clusters.command("delete")
@click.argument("name")
def clusters_delete(name: str) -> None:
    """Delete the stored cluster NAME."""

    async def _action(glass: TrivyGlass) -> dict[str, Any]:
        await glass.delete_cluster(name)
        return {"success": True}

    _run(_action)


# --- reports ---


@cli.command()
@_cluster_option
def crds(cluster: str | None) -> None:
    """List cluster-scoped report definitions."""

    async def _action(glass: TrivyGlass) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in await glass.list_all_crds()]

    _run(_action, cluster)


@cli.command()
@click.argument("resource")
@_cluster_option
def reports(resource: str, cluster: str | None) -> None:
    """List every RESOURCE instance (e.g. vulnerabilityreports)."""

    async def _action(glass: TrivyGlass) -> dict[str, Any]:
        return (await glass.load_reports(resource)).to_dict()

    _run(_action, cluster)


@cli.command()
@click.argument("resource")
@click.argument("name")
@click.option("--namespace", "-n", default=None, help="Namespace of a namespaced report.")
@_cluster_option
def get(resource: str, name: str, namespace: str | None, cluster: str | None) -> None:
    """Fetch the RESOURCE report NAME."""

    async def _action(glass: TrivyGlass) -> dict[str, Any]:
        if namespace:
            result = await glass.get_namespaced_resource(resource, namespace, name)
        else:
            result = await glass.get_cluster_resource(resource, name)
        return result.to_dict()

    _run(_action, cluster)


@cli.command()
@click.argument("resource")
@_cluster_option
def invalidate(resource: str, cluster: str | None) -> None:
    """Drop the cached RESOURCE listing of the cluster."""

    async def _action(glass: TrivyGlass) -> dict[str, Any]:
        await glass.invalidate_cache(resource)
        return {"success": True, "message": f"Cache invalidated for {resource}"}

    _run(_action, cluster)
