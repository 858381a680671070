"""In-process repositories with the same contract as the MongoDB ones.

Used for local development (``storage_backend=memory``) and tests. Every
operation runs under a single ``asyncio.Lock`` so each call is atomic, the
way a single-document MongoDB update is.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Mapping
from typing import Any

from bson import ObjectId

from tourhub.adapters import mongo_mapper
from tourhub.core.constants import (
    K_CREATED_AT,
    K_ID,
    K_REPLIES,
    K_REVIEWS,
    K_STATUS,
    K_VERSION,
    REVIEW_COUNTERS,
    TOUR_COUNTERS,
)
from tourhub.core.models import (
    AddReview,
    DerivedAggregates,
    RemoveReview,
    Reply,
    ReviewMutation,
    ReviewPredicate,
    SortSpec,
    Tour,
    UpdateReview,
    utcnow,
)
from tourhub.repositories.base import TargetResult
from tourhub.services.sorting import get_path, sort_documents


def _field_matches(actual: Any, expected: Any) -> bool:
    # Equality on an array field means "contains", as in MongoDB
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def matches_filters(doc: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    return all(_field_matches(get_path(doc, key), value) for key, value in filters.items())


def _find_element(items: list[dict[str, Any]], oid: ObjectId | None) -> dict[str, Any] | None:
    if oid is None:
        return None
    return next((item for item in items if item.get(K_ID) == oid), None)


class _MemoryCollection:
    """Ordered document map with Mongo-like count/find semantics."""

    def __init__(self, hidden_fields: tuple[str, ...] = ()):
        self._docs: dict[ObjectId, dict[str, Any]] = {}
        self._hidden = hidden_fields
        self._lock = asyncio.Lock()

    async def count(self, filters: Mapping[str, Any]) -> int:
        await asyncio.sleep(0)
        async with self._lock:
            return sum(1 for doc in self._docs.values() if matches_filters(doc, filters))

    async def find(
        self,
        filters: Mapping[str, Any],
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        async with self._lock:
            matched = [doc for doc in self._docs.values() if matches_filters(doc, filters)]
            if sort is None:
                matched = sort_documents(matched, SortSpec(K_ID))
            else:
                matched = sort_documents(matched, sort, tiebreak=K_ID)
            end = None if limit is None else skip + limit
            window = matched[skip:end]
            return [
                {k: copy.deepcopy(v) for k, v in doc.items() if k not in self._hidden}
                for doc in window
            ]


class MemoryTourRepository(_MemoryCollection):
    """Tour store kept in process memory."""

    def __init__(self) -> None:
        super().__init__(hidden_fields=(K_REVIEWS,))

    async def insert_tour(self, tour: Tour) -> None:
        doc = mongo_mapper.tour_to_document(tour)
        async with self._lock:
            if doc[K_ID] in self._docs:
                raise ValueError(f"Duplicate tour id {tour.id}")
            self._docs[doc[K_ID]] = doc

    async def get_tour(self, tour_id: str) -> Tour | None:
        await asyncio.sleep(0)
        async with self._lock:
            doc = self._get(tour_id)
            return mongo_mapper.document_to_tour(copy.deepcopy(doc)) if doc else None

    async def find_tour_by_review(self, review_id: str) -> Tour | None:
        oid = mongo_mapper.as_object_id(review_id)
        await asyncio.sleep(0)
        async with self._lock:
            for doc in self._docs.values():
                if _find_element(doc[K_REVIEWS], oid) is not None:
                    return mongo_mapper.document_to_tour(copy.deepcopy(doc))
            return None

    async def find_tours_with_reviews(self, predicate: ReviewPredicate) -> list[Tour]:
        await asyncio.sleep(0)
        async with self._lock:
            docs = sorted(self._scoped(predicate), key=lambda d: str(d[K_ID]))
            return [mongo_mapper.document_to_tour(copy.deepcopy(doc)) for doc in docs]

    async def count_reviews(self, predicate: ReviewPredicate) -> int:
        await asyncio.sleep(0)
        async with self._lock:
            return sum(
                1
                for doc in self._scoped(predicate)
                for review in doc[K_REVIEWS]
                if predicate.status is None or review.get(K_STATUS) == predicate.status
            )

    async def apply_review_mutation(
        self,
        tour_id: str,
        expected_version: int,
        mutation: ReviewMutation,
        aggregates: DerivedAggregates,
    ) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            doc = self._get(tour_id)
            if doc is None or doc.get(K_VERSION, 0) != expected_version:
                return False

            reviews: list[dict[str, Any]] = doc[K_REVIEWS]
            if isinstance(mutation, AddReview):
                reviews.append(mongo_mapper.review_to_document(mutation.review))
            elif isinstance(mutation, UpdateReview):
                target = _find_element(reviews, ObjectId(mutation.review_id))
                if target is not None:
                    target.update(mongo_mapper.review_changes_to_fields(mutation.changes))
            elif isinstance(mutation, RemoveReview):
                doc[K_REVIEWS] = [r for r in reviews if r[K_ID] != ObjectId(mutation.review_id)]
            else:  # pragma: no cover
                raise TypeError(f"Unsupported review mutation: {mutation!r}")

            doc.update(mongo_mapper.aggregates_to_fields(aggregates))
            doc["updatedAt"] = utcnow()
            doc[K_VERSION] = doc.get(K_VERSION, 0) + 1
            return True

    async def push_reply(self, tour_id: str, review_id: str, reply: Reply) -> TargetResult:
        await asyncio.sleep(0)
        async with self._lock:
            doc = self._get(tour_id)
            if doc is None:
                return TargetResult.TOUR_MISSING
            review = _find_element(doc[K_REVIEWS], mongo_mapper.as_object_id(review_id))
            if review is None:
                return TargetResult.REVIEW_MISSING
            review.setdefault(K_REPLIES, []).append(mongo_mapper.reply_to_document(reply))
            return TargetResult.UPDATED

    async def increment_review_counter(
        self,
        review_id: str,
        field: str,
        tour_id: str | None = None,
        amount: int = 1,
    ) -> TargetResult:
        if field not in REVIEW_COUNTERS:
            raise ValueError(f"Unsupported review counter: {field}")
        review_oid = mongo_mapper.as_object_id(review_id)
        await asyncio.sleep(0)
        async with self._lock:
            if tour_id is not None:
                doc = self._get(tour_id)
                if doc is None:
                    return TargetResult.TOUR_MISSING
                candidates = [doc]
            else:
                candidates = list(self._docs.values())
            for doc in candidates:
                review = _find_element(doc[K_REVIEWS], review_oid)
                if review is not None:
                    review[field] = review.get(field, 0) + amount
                    return TargetResult.UPDATED
            return TargetResult.REVIEW_MISSING

    async def increment_reply_counter(
        self,
        tour_id: str,
        review_id: str,
        reply_id: str,
        field: str,
        amount: int = 1,
    ) -> TargetResult:
        if field not in REVIEW_COUNTERS:
            raise ValueError(f"Unsupported reply counter: {field}")
        await asyncio.sleep(0)
        async with self._lock:
            doc = self._get(tour_id)
            if doc is None:
                return TargetResult.TOUR_MISSING
            review = _find_element(doc[K_REVIEWS], mongo_mapper.as_object_id(review_id))
            if review is None:
                return TargetResult.REVIEW_MISSING
            reply = _find_element(review.get(K_REPLIES, []), mongo_mapper.as_object_id(reply_id))
            if reply is None:
                return TargetResult.REPLY_MISSING
            reply[field] = reply.get(field, 0) + amount
            return TargetResult.UPDATED

    async def increment_tour_counter(self, tour_id: str, field: str, amount: int = 1) -> int | None:
        if field not in TOUR_COUNTERS:
            raise ValueError(f"Unsupported tour counter: {field}")
        await asyncio.sleep(0)
        async with self._lock:
            doc = self._get(tour_id)
            if doc is None:
                return None
            doc[field] = doc.get(field, 0) + amount
            return int(doc[field])

    def _get(self, tour_id: str) -> dict[str, Any] | None:
        oid = mongo_mapper.as_object_id(tour_id)
        return self._docs.get(oid) if oid is not None else None

    def _scoped(self, predicate: ReviewPredicate) -> list[dict[str, Any]]:
        docs = list(self._docs.values())
        if predicate.tour_id is not None:
            doc = self._get(predicate.tour_id)
            docs = [doc] if doc is not None else []
        if predicate.tour_author is not None:
            docs = [d for d in docs if d.get("author") == predicate.tour_author]
        return [
            d
            for d in docs
            if any(predicate.status is None or r.get(K_STATUS) == predicate.status for r in d[K_REVIEWS])
        ]


class MemoryUserRepository(_MemoryCollection):
    """User store kept in process memory."""

    def __init__(self) -> None:
        super().__init__(hidden_fields=("password", "refreshToken"))

    async def insert_user(self, user: Mapping[str, Any]) -> str:
        doc = copy.deepcopy(dict(user))
        doc.setdefault(K_ID, ObjectId())
        doc.setdefault(K_CREATED_AT, utcnow())
        async with self._lock:
            self._docs[doc[K_ID]] = doc
        return str(doc[K_ID])
