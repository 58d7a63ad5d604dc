"""Cache key layout.  Resource data is always namespaced by cluster name."""

from __future__ import annotations


def crds_key(cluster: str) -> str:
    return f"crds:{cluster}"


def reports_key(cluster: str, resource: str) -> str:
    return f"reports:{cluster}:{resource}"


def reports_pattern(cluster: str) -> str:
    """Glob matching every report entry of *cluster*.

    Also matches entries of clusters named ``{cluster}:...``; filter the
    matches with ``is_report_key_of``.
    """
    return f"reports:{_escape_glob(cluster)}:*"


def is_report_key_of(cluster: str, key: str) -> bool:
    """True when *key* is a report entry of exactly *cluster*.

    Resource plurals never contain ``:``, so anything after the cluster
    prefix that does belongs to a longer, colon-bearing cluster name.
    """
    prefix = f"reports:{cluster}:"
    return key.startswith(prefix) and ":" not in key[len(prefix) :]


def _escape_glob(value: str) -> str:
    # Context names may legally contain glob metacharacters.  A bare "]" is
    # literal in both fnmatch and Redis globs; "[]]" is not valid in Redis.
    return "".join(f"[{ch}]" if ch in "*?[" else ch for ch in value)
