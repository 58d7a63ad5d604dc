"""Printer-column projection of custom resource instances."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from trivyglass.models.reports import ColumnDefinition

_MISSING = object()


def path_segments(json_path: str) -> list[str]:
    """Split a printer-column path such as ``.status.summary.criticalCount``.

    Surrounding braces, a leading ``$`` and the leading separator are
    dropped; empty segments are ignored.
    """
    path = json_path.strip().strip("{}").lstrip("$")
    return [segment for segment in path.split(".") if segment]


def extract(obj: Any, json_path: str) -> Any:
    """Walk *json_path* through *obj*.  A missing segment yields None."""
    current = obj
    for segment in path_segments(json_path):
        current = _step(current, segment)
        if current is _MISSING:
            return None
    return current


def is_timestamp_column(column: ColumnDefinition) -> bool:
    return column.type == "date" or "timestamp" in column.json_path.lower()


def format_timestamp(value: Any) -> Any:
    """Render an ISO-8601 timestamp as a localized date string.

    Values that are not parseable timestamps are returned unchanged.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    else:
        return value
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%x %X")


def project(item: dict[str, Any], columns: list[ColumnDefinition]) -> dict[str, Any]:
    """Reduce *item* to its metadata plus one value per column."""
    row: dict[str, Any] = {"metadata": item.get("metadata") or {}}
    for column in columns:
        value = extract(item, column.json_path)
        if value is not None and is_timestamp_column(column):
            value = format_timestamp(value)
        row[column.name] = value
    return row


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, dict):
        return current.get(segment, _MISSING)
    if isinstance(current, list) and segment.lstrip("-").isdigit():
        index = int(segment)
        if -len(current) <= index < len(current):
            return current[index]
    return _MISSING
