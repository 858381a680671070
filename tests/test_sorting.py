"""Tests for in-memory document ordering."""

from datetime import UTC, datetime

from bson import ObjectId

from tourhub.core.models import SortSpec
from tourhub.services.sorting import sort_by_keys, sort_documents, sortable


def test_nulls_sort_before_values():
    docs = [{"n": "b", "v": 3}, {"n": "a", "v": None}, {"n": "c"}, {"n": "d", "v": 1}]

    ascending = sort_documents(docs, SortSpec("v", "asc"))
    descending = sort_documents(docs, SortSpec("v", "desc"))

    assert [d["n"] for d in ascending] == ["a", "c", "d", "b"]
    assert [d["n"] for d in descending][:2] == ["b", "d"]


def test_type_order_matches_database():
    values = [datetime(2024, 1, 1, tzinfo=UTC), True, ObjectId(), "x", 2, None]
    ordered = sorted(values, key=sortable)
    assert [type(v) for v in ordered] == [type(None), int, str, ObjectId, bool, datetime]


def test_arrays_sort_by_min_ascending_and_max_descending():
    docs = [{"n": "wide", "tags": [1, 9]}, {"n": "mid", "tags": [4, 5]}, {"n": "empty", "tags": []}]

    ascending = sort_documents(docs, SortSpec("tags", "asc"))
    descending = sort_documents(docs, SortSpec("tags", "desc"))

    assert [d["n"] for d in ascending] == ["empty", "wide", "mid"]
    assert [d["n"] for d in descending] == ["wide", "mid", "empty"]


def test_multi_key_sort_respects_each_direction():
    docs = [
        {"rating": 5, "createdAt": 1, "tags": [2]},
        {"rating": 4, "createdAt": 3, "tags": [1, 8]},
        {"rating": 5, "createdAt": 2, "tags": [3]},
    ]

    result = sort_by_keys(docs, [SortSpec("rating", "desc"), SortSpec("createdAt", "desc")])
    by_tags = sort_by_keys(docs, [SortSpec("tags", "desc")])

    assert [d["createdAt"] for d in result] == [2, 1, 3]
    assert [d["tags"] for d in by_tags] == [[1, 8], [3], [2]]
