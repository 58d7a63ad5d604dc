"""Stored cluster credential data structures."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime

LOCAL_CLUSTER = "local"


@dataclass(frozen=True)
class ClusterRecord:
    """One stored kubeconfig context, encrypted.

    Immutable: re-saving a context replaces the record rather than mutating it.
    """

    name: str
    encrypted_data: bytes
    iv: bytes
    created_at: datetime

    def to_json(self) -> str:
        return json.dumps(
            {
                "name": self.name,
                "encryptedData": self.encrypted_data.hex(),
                "iv": self.iv.hex(),
                "createdAt": self.created_at.isoformat(),
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> ClusterRecord:
        """Parse the stored JSON form.

        Raises:
            ValueError: the document is not a valid record (JSON errors,
                missing keys and bad hex all surface as ValueError).
        """
        try:
            data = json.loads(raw)
            return cls(
                name=str(data["name"]),
                encrypted_data=bytes.fromhex(data["encryptedData"]),
                iv=bytes.fromhex(data["iv"]),
                created_at=datetime.fromisoformat(data["createdAt"]),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed cluster record: {exc}") from exc


@dataclass(frozen=True)
class ClusterInfo:
    """Listing view of a cluster.  Never carries credential material."""

    name: str
    is_local: bool = False
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"name": self.name, "isLocal": self.is_local}
        if self.created_at is not None:
            data["createdAt"] = self.created_at.isoformat()
        return data


LOCAL_CLUSTER_INFO = ClusterInfo(name=LOCAL_CLUSTER, is_local=True)


@dataclass(frozen=True)
class ClusterListing:
    """Every known cluster plus the one the session currently points at."""

    clusters: list[ClusterInfo]
    current_cluster: str
