"""Core data structures for trivyglass."""

from trivyglass.models.clusters import (
    LOCAL_CLUSTER,
    ClusterInfo,
    ClusterListing,
    ClusterRecord,
)
from trivyglass.models.config import TrivyGlassConfig
from trivyglass.models.reports import (
    DEFAULT_COLUMNS,
    ColumnDefinition,
    CRDMetadata,
    ReportsResult,
    ResourceResult,
    ResourceScope,
)

__all__ = [
    "CRDMetadata",
    "ClusterInfo",
    "ClusterListing",
    "ClusterRecord",
    "ColumnDefinition",
    "DEFAULT_COLUMNS",
    "LOCAL_CLUSTER",
    "ReportsResult",
    "ResourceResult",
    "ResourceScope",
    "TrivyGlassConfig",
]
