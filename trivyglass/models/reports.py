"""Report listing and resource lookup data structures."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class ResourceScope(StrEnum):
    """Scope declared by a custom resource definition."""

    CLUSTER = "Cluster"
    NAMESPACED = "Namespaced"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class ColumnDefinition:
    """One printer column declared by a CRD version."""

    name: str
    json_path: str
    type: str = "string"
    priority: int = 0
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "jsonPath": self.json_path,
            "type": self.type,
            "priority": self.priority,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColumnDefinition:
        return cls(
            name=str(data.get("name", "")),
            json_path=str(data.get("jsonPath", "")),
            type=str(data.get("type", "string")),
            priority=int(data.get("priority", 0) or 0),
            description=str(data.get("description", "") or ""),
        )


DEFAULT_COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition(name="Name", json_path=".metadata.name", type="string"),
    ColumnDefinition(name="Age", json_path=".metadata.creationTimestamp", type="date"),
)


@dataclass(frozen=True)
class CRDMetadata:
    """Column projection metadata for one custom resource definition."""

    name: str
    kind: str
    plural: str
    group: str
    version: str
    scope: ResourceScope
    columns: list[ColumnDefinition] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "plural": self.plural,
            "group": self.group,
            "version": self.version,
            "scope": str(self.scope),
            "columns": [column.to_dict() for column in self.columns],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CRDMetadata:
        return cls(
            name=data["name"],
            kind=data["kind"],
            plural=data["plural"],
            group=data["group"],
            version=data["version"],
            scope=ResourceScope(data["scope"]),
            columns=[ColumnDefinition.from_dict(column) for column in data.get("columns", [])],
        )


@dataclass(frozen=True)
class ReportsResult:
    """Flattened, UI-ready snapshot of every instance of one resource kind.

    Recomputed on each cache miss and never mutated afterwards.  ``error`` is
    set only for the error-shaped result (no manifests, scope Unknown).
    """

    manifests: list[dict[str, Any]]
    cluster_name: str
    scope: ResourceScope
    resource: str
    columns: list[ColumnDefinition] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "manifests": self.manifests,
            "clusterName": self.cluster_name,
            "scope": str(self.scope),
            "resource": self.resource,
            "columns": [column.to_dict() for column in self.columns],
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportsResult:
        return cls(
            manifests=list(data.get("manifests", [])),
            cluster_name=data["clusterName"],
            scope=ResourceScope(data.get("scope", ResourceScope.UNKNOWN)),
            resource=data["resource"],
            columns=[ColumnDefinition.from_dict(column) for column in data.get("columns", [])],
            error=data.get("error"),
        )


@dataclass(frozen=True)
class ResourceResult:
    """Outcome of a single uncached resource lookup."""

    manifest: dict[str, Any] | None
    cluster_name: str
    resource: str
    name: str
    namespace: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["clusterName"] = data.pop("cluster_name")
        if self.namespace is None:
            data.pop("namespace")
        if self.error is None:
            data.pop("error")
        return data
