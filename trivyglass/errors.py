"""Exception hierarchy for trivyglass.

Credential store and cluster session errors propagate to callers.  Errors
raised by the resource API inside the report service are absorbed and turned
into structured results (see ``trivyglass.reports.service``).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class TrivyGlassError(Exception):
    """Base class for every error raised by trivyglass."""


class DecryptionError(TrivyGlassError):
    """Stored credential material could not be decrypted."""


class InvalidDocumentError(TrivyGlassError):
    """A kubeconfig document (or a stored record) could not be parsed."""


class NoValidIdentitiesError(TrivyGlassError):
    """A kubeconfig document contained no named contexts."""

    def __init__(self, message: str = "No valid contexts found in kubeconfig") -> None:
        super().__init__(message)


class ProtectedClusterError(TrivyGlassError):
    """An operation attempted to create or remove the reserved local cluster."""


class ClusterNotFoundError(TrivyGlassError):
    """The referenced cluster has no stored credentials."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Cluster {name} not found")
        self.name = name


class UnsupportedCacheOperationError(TrivyGlassError):
    """The resolved cache backend does not implement a required operation."""

    def __init__(self, operation: str, backend: str) -> None:
        super().__init__(f"Cache backend '{backend}' does not support '{operation}'")
        self.operation = operation
        self.backend = backend


class ApiErrorKind(StrEnum):
    """How a resource API call failed."""

    TRANSPORT = "transport"
    API = "api"


class ResourceApiError(TrivyGlassError):
    """A resource API call failed.

    ``kind`` is TRANSPORT when no HTTP response was received and API when the
    API server answered with an error status.  ``body`` holds the decoded
    response body for API errors when it was JSON.
    """

    def __init__(
        self,
        message: str,
        kind: ApiErrorKind = ApiErrorKind.TRANSPORT,
        status: int | None = None,
        body: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status = status
        self.body = body

    @property
    def detail(self) -> str:
        """The API server's ``message`` field when present, else the raw message."""
        if self.body:
            message = self.body.get("message")
            if isinstance(message, str) and message:
                return message
        return self.message


class RemoteListingError(TrivyGlassError):
    """Listing custom resource instances failed.  Recovered with an empty list."""

    def __init__(self, resource: str, cause: Exception) -> None:
        super().__init__(f"Failed to list {resource}: {cause}")
        self.resource = resource
        self.cause = cause


class RemoteMetadataError(TrivyGlassError):
    """Fetching a custom resource definition failed."""

    def __init__(self, resource: str, cause: Exception) -> None:
        message = cause.detail if isinstance(cause, ResourceApiError) else str(cause)
        super().__init__(message)
        self.resource = resource
        self.cause = cause
