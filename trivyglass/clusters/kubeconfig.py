"""Kubeconfig parsing and per-context narrowing.

A multi-context kubeconfig is split into one self-contained document per
context: that context, the cluster and user it references, and
``current-context`` pointing at it.  Every other context, cluster and user
is stripped.
"""

from __future__ import annotations

import copy
from typing import Any

import yaml

from trivyglass.errors import InvalidDocumentError, NoValidIdentitiesError


def parse(document: str) -> dict[str, Any]:
    """Parse kubeconfig YAML.

    A document that is valid YAML but not a mapping parses to an empty
    config, which then has no contexts.

    Raises:
        InvalidDocumentError: the text is empty or not valid YAML.
    """
    if not document or not document.strip():
        raise InvalidDocumentError("Kubeconfig is required")
    try:
        parsed = yaml.safe_load(document)
    except yaml.YAMLError as exc:
        raise InvalidDocumentError(f"Invalid kubeconfig: {exc}") from exc
    if not isinstance(parsed, dict):
        return {}
    return parsed


def serialize(config: dict[str, Any]) -> str:
    return yaml.safe_dump(config, default_flow_style=False, sort_keys=False)


def context_names(config: dict[str, Any]) -> list[str]:
    """Names of every named context, in document order, duplicates dropped."""
    names: list[str] = []
    for entry in _named_entries(config, "contexts"):
        if entry["name"] not in names:
            names.append(entry["name"])
    return names


def narrow_to_context(config: dict[str, Any], context_name: str) -> dict[str, Any]:
    """Return a copy of *config* holding only *context_name* and what it references.

    Raises:
        NoValidIdentitiesError: *context_name* is not in the document.
    """
    context = _find(config, "contexts", context_name)
    if context is None:
        raise NoValidIdentitiesError(f"Context {context_name} not found in kubeconfig")

    refs = context.get("context") or {}
    cluster = _find(config, "clusters", refs.get("cluster"))
    user = _find(config, "users", refs.get("user"))

    narrowed = {
        key: copy.deepcopy(value)
        for key, value in config.items()
        if key not in ("contexts", "clusters", "users", "current-context")
    }
    narrowed["clusters"] = [copy.deepcopy(cluster)] if cluster is not None else []
    narrowed["contexts"] = [copy.deepcopy(context)]
    narrowed["users"] = [copy.deepcopy(user)] if user is not None else []
    narrowed["current-context"] = context_name
    return narrowed


def split_contexts(document: str) -> dict[str, str]:
    """Split *document* into ``{context name: narrowed kubeconfig YAML}``.

    Raises:
        InvalidDocumentError: the document is not valid YAML.
        NoValidIdentitiesError: the document has no named contexts.
    """
    config = parse(document)
    names = context_names(config)
    if not names:
        raise NoValidIdentitiesError()
    return {name: serialize(narrow_to_context(config, name)) for name in names}


def _named_entries(config: dict[str, Any], section: str) -> list[dict[str, Any]]:
    entries = config.get(section) or []
    if not isinstance(entries, list):
        return []
    return [
        entry
        for entry in entries
        if isinstance(entry, dict) and isinstance(entry.get("name"), str) and entry["name"]
    ]


def _find(config: dict[str, Any], section: str, name: object) -> dict[str, Any] | None:
    if not isinstance(name, str):
        return None
    for entry in _named_entries(config, section):
        if entry["name"] == name:
            return entry
    return None
