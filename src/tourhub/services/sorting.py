"""Sorting helpers for in-memory list materialization."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from bson import ObjectId

from tourhub.core.models import SortSpec


def sortable(value: Any, descending: bool = False) -> tuple[int, Any]:
    """Order heterogeneous values the way MongoDB orders BSON types.

    Nulls sort first, then numbers, strings, object ids, booleans and dates,
    so in-memory sorting agrees with database-side sorting. An array sorts by
    its smallest element ascending and by its largest element descending.
    """
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (4, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, ObjectId):
        return (3, str(value))
    if isinstance(value, datetime):
        return (5, value.timestamp())
    if isinstance(value, (list, tuple)):
        keys = [sortable(v, descending) for v in value]
        if not keys:
            return (0, 0)
        return max(keys) if descending else min(keys)
    return (2, str(value))


def get_path(doc: Mapping[str, Any], path: str) -> Any:
    """Read a dot-notated field value from a document."""
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def sort_documents(
    docs: Iterable[Mapping[str, Any]],
    sort: SortSpec,
    tiebreak: str | None = None,
) -> list[Any]:
    """Stable sort by one field, optionally breaking ties on a second field in the same direction."""
    if tiebreak is None:
        return sorted(docs, key=lambda d: sortable(get_path(d, sort.field), sort.descending), reverse=sort.descending)
    return sorted(
        docs,
        key=lambda d: (
            sortable(get_path(d, sort.field), sort.descending),
            sortable(get_path(d, tiebreak), sort.descending),
        ),
        reverse=sort.descending,
    )


def sort_by_keys(docs: Iterable[Mapping[str, Any]], keys: Iterable[SortSpec]) -> list[Any]:
    """Multi-key stable sort; earlier keys take precedence."""
    result = list(docs)
    for spec in reversed(list(keys)):
        result = sorted(
            result,
            key=lambda d, s=spec: sortable(get_path(d, s.field), s.descending),
            reverse=spec.descending,
        )
    return result
