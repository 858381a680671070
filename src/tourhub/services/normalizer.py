"""Serialization helpers for API responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from bson import ObjectId

from tourhub.core.constants import K_ID, K_VERSION
from tourhub.core.models import PageResult


def to_jsonable(value: Any) -> Any:
    """Recursively normalize stored values for JSON responses.

    ``_id`` keys become ``id``, object ids become strings, datetimes become
    ISO 8601 strings and the storage version counter is dropped.
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for key, item in value.items():
            if key == K_VERSION:
                continue
            out["id" if key == K_ID else str(key)] = to_jsonable(item)
        return out
    return str(value)


def normalize_docs(docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [to_jsonable(doc) for doc in docs]


def page_envelope(result: PageResult) -> dict[str, Any]:
    """Wrap a page as ``{items, pagination}``."""
    return {
        "items": normalize_docs(result.items),
        "pagination": {
            "page": result.page,
            "limit": result.limit,
            "totalItems": result.total_items,
            "totalPages": result.total_pages,
        },
    }
