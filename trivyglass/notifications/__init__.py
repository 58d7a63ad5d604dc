"""User-facing error classification for trivyglass.

UI layers call ``build_notification`` with any error raised by the core to
pick a notification category, severity and display duration.

Exports:
    ErrorCategory      -- cluster_connection / cache_connection / other.
    Notification       -- What a UI should show for an error.
    classify_error     -- Keyword-based category for an error or message.
    build_notification -- Category plus severity, prefix and duration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import structlog

from trivyglass.errors import (
    ClusterNotFoundError,
    InvalidDocumentError,
    NoValidIdentitiesError,
    UnsupportedCacheOperationError,
)

_log = structlog.get_logger(component="notifications")

__all__ = [
    "ErrorCategory",
    "Notification",
    "NotificationSeverity",
    "build_notification",
    "classify_error",
]


class ErrorCategory(StrEnum):
    """Kind of connection problem behind an error."""

    CLUSTER = "cluster_connection"
    CACHE = "cache_connection"
    OTHER = "other"


class NotificationSeverity(StrEnum):
    """Display level of a notification."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A renderable notification for one error."""

    category: ErrorCategory
    severity: NotificationSeverity
    message: str
    duration_ms: int


_CLUSTER_PHRASES = (
    "Failed to connect to Kubernetes API",
    "Unable to connect to the server",
    "Cluster not found",
    "cluster not found",
    "No valid contexts found",
    "Invalid kubeconfig",
)
_CLUSTER_KEYWORDS = ("cluster", "kubernetes")
_CACHE_PHRASES = (
    "Redis Client Error",
    "Failed to connect to Redis",
    "Redis connection",
)

_PRESENTATION: dict[ErrorCategory, tuple[NotificationSeverity, str, int]] = {
    ErrorCategory.CLUSTER: (NotificationSeverity.ERROR, "Cluster connection error", 7000),
    ErrorCategory.CACHE: (NotificationSeverity.WARNING, "Cache connection error", 7000),
    ErrorCategory.OTHER: (NotificationSeverity.INFO, "Application error", 5000),
}


def classify_error(error: BaseException | str) -> ErrorCategory:
    """Categorize *error*.

    Typed trivyglass errors map directly; anything else is matched on its
    message, cluster keywords first, then cache keywords.
    """
    if isinstance(error, ClusterNotFoundError | NoValidIdentitiesError | InvalidDocumentError):
        return ErrorCategory.CLUSTER
    if isinstance(error, UnsupportedCacheOperationError):
        return ErrorCategory.CACHE

    message = str(error)
    lowered = message.lower()
    if any(phrase in message for phrase in _CLUSTER_PHRASES) or any(word in lowered for word in _CLUSTER_KEYWORDS):
        return ErrorCategory.CLUSTER
    if any(phrase in message for phrase in _CACHE_PHRASES):
        return ErrorCategory.CACHE
    return ErrorCategory.OTHER


def build_notification(error: BaseException | str) -> Notification:
    category = classify_error(error)
    severity, prefix, duration_ms = _PRESENTATION[category]
    _log.debug("notification_built", category=str(category), severity=str(severity))
    return Notification(
        category=category,
        severity=severity,
        message=f"{prefix}: {error}",
        duration_ms=duration_ms,
    )
