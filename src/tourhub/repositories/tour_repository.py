"""Repository for tours and their embedded reviews stored in MongoDB."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection

from tourhub.adapters import mongo_mapper
from tourhub.core.constants import (
    K_ID,
    K_REPLIES,
    K_REVIEWS,
    K_STATUS,
    K_VERSION,
    REVIEW_COUNTERS,
    TOUR_COUNTERS,
)
from tourhub.core.logging import get_logger
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

logger = get_logger(__name__)

# Listings return tour summaries; reviews are served through the review endpoints.
LIST_PROJECTION: dict[str, int] = {K_REVIEWS: 0}


def build_sort(sort: SortSpec | None) -> list[tuple[str, int]]:
    """Mongo sort document with ``_id`` as a tie-break in the same direction."""
    if sort is None:
        return [(K_ID, ASCENDING)]
    direction = DESCENDING if sort.descending else ASCENDING
    if sort.field == K_ID:
        return [(K_ID, direction)]
    return [(sort.field, direction), (K_ID, direction)]


def tour_scope(predicate: ReviewPredicate) -> dict[str, Any] | None:
    """Tour-level part of a review predicate; ``None`` when the tour id cannot exist."""
    query: dict[str, Any] = {}
    if predicate.tour_id is not None:
        oid = mongo_mapper.as_object_id(predicate.tour_id)
        if oid is None:
            return None
        query[K_ID] = oid
    if predicate.tour_author is not None:
        query["author"] = predicate.tour_author
    return query


def review_existence_filter(predicate: ReviewPredicate) -> dict[str, Any] | None:
    """Tours holding at least one review that matches the predicate."""
    query = tour_scope(predicate)
    if query is None:
        return None
    if predicate.status is not None:
        query[K_REVIEWS] = {"$elemMatch": {K_STATUS: predicate.status}}
    else:
        query[f"{K_REVIEWS}.0"] = {"$exists": True}
    return query


class MongoTourRepository:
    """Encapsulates tour persistence, review mutations and targeted counters."""

    def __init__(self, collection: AsyncCollection[dict[str, Any]]):
        self._tours = collection

    async def count(self, filters: Mapping[str, Any]) -> int:
        return await self._tours.count_documents(dict(filters))

    async def find(
        self,
        filters: Mapping[str, Any],
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        cursor = self._tours.find(dict(filters), LIST_PROJECTION).sort(build_sort(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=None)

    async def insert_tour(self, tour: Tour) -> None:
        await self._tours.insert_one(mongo_mapper.tour_to_document(tour))

    async def get_tour(self, tour_id: str) -> Tour | None:
        oid = mongo_mapper.as_object_id(tour_id)
        if oid is None:
            return None
        doc = await self._tours.find_one({K_ID: oid})
        return mongo_mapper.document_to_tour(doc) if doc else None

    async def find_tour_by_review(self, review_id: str) -> Tour | None:
        oid = mongo_mapper.as_object_id(review_id)
        if oid is None:
            return None
        doc = await self._tours.find_one({f"{K_REVIEWS}._id": oid})
        return mongo_mapper.document_to_tour(doc) if doc else None

    async def find_tours_with_reviews(self, predicate: ReviewPredicate) -> list[Tour]:
        """Fetch every tour that has a matching review, in ``_id`` order."""
        query = review_existence_filter(predicate)
        if query is None:
            return []
        docs = await self._tours.find(query).sort(K_ID, ASCENDING).to_list(length=None)
        return [mongo_mapper.document_to_tour(doc) for doc in docs]

    async def count_reviews(self, predicate: ReviewPredicate) -> int:
        """Count embedded reviews matching the predicate without fetching them."""
        query = review_existence_filter(predicate)
        if query is None:
            return 0
        pipeline: list[dict[str, Any]] = [{"$match": query}, {"$unwind": f"${K_REVIEWS}"}]
        if predicate.status is not None:
            pipeline.append({"$match": {f"{K_REVIEWS}.{K_STATUS}": predicate.status}})
        pipeline.append({"$count": "n"})
        cursor = await self._tours.aggregate(pipeline)
        rows = await cursor.to_list(length=1)
        return int(rows[0]["n"]) if rows else 0

    async def apply_review_mutation(
        self,
        tour_id: str,
        expected_version: int,
        mutation: ReviewMutation,
        aggregates: DerivedAggregates,
    ) -> bool:
        """Commit one review mutation and the recomputed aggregates in a single conditional write.

        The write only applies if the tour still carries ``expected_version``; it touches the
        addressed array element only, so counters incremented concurrently are preserved.

        Returns:
            bool: False when another writer bumped the version first.
        """
        oid = mongo_mapper.as_object_id(tour_id)
        if oid is None:
            return False

        set_fields: dict[str, Any] = mongo_mapper.aggregates_to_fields(aggregates)
        set_fields["updatedAt"] = utcnow()
        update: dict[str, Any] = {"$set": set_fields, "$inc": {K_VERSION: 1}}
        array_filters: list[dict[str, Any]] | None = None

        if isinstance(mutation, AddReview):
            update["$push"] = {K_REVIEWS: mongo_mapper.review_to_document(mutation.review)}
        elif isinstance(mutation, UpdateReview):
            for key, value in mongo_mapper.review_changes_to_fields(mutation.changes).items():
                set_fields[f"{K_REVIEWS}.$[r].{key}"] = value
            array_filters = [{"r._id": ObjectId(mutation.review_id)}]
        elif isinstance(mutation, RemoveReview):
            update["$pull"] = {K_REVIEWS: {K_ID: ObjectId(mutation.review_id)}}
        else:  # pragma: no cover
            raise TypeError(f"Unsupported review mutation: {mutation!r}")

        result = await self._tours.update_one(
            {K_ID: oid, K_VERSION: expected_version},
            update,
            array_filters=array_filters,
        )
        if result.matched_count == 0:
            logger.warning("Version conflict on tour %s (expected __v=%s)", tour_id, expected_version)
            return False
        return True

    async def push_reply(self, tour_id: str, review_id: str, reply: Reply) -> TargetResult:
        tour_oid = mongo_mapper.as_object_id(tour_id)
        review_oid = mongo_mapper.as_object_id(review_id)
        if tour_oid is None:
            return TargetResult.TOUR_MISSING
        if review_oid is None:
            return TargetResult.REVIEW_MISSING

        result = await self._tours.update_one(
            {K_ID: tour_oid, f"{K_REVIEWS}._id": review_oid},
            {"$push": {f"{K_REVIEWS}.$[r].{K_REPLIES}": mongo_mapper.reply_to_document(reply)}},
            array_filters=[{"r._id": review_oid}],
        )
        if result.matched_count:
            return TargetResult.UPDATED
        return await self._diagnose(tour_oid, review_oid)

    async def increment_review_counter(
        self,
        review_id: str,
        field: str,
        tour_id: str | None = None,
        amount: int = 1,
    ) -> TargetResult:
        """``$inc`` one counter of one review, addressed by array filter."""
        if field not in REVIEW_COUNTERS:
            raise ValueError(f"Unsupported review counter: {field}")
        review_oid = mongo_mapper.as_object_id(review_id)
        tour_oid = mongo_mapper.as_object_id(tour_id) if tour_id is not None else None
        if tour_id is not None and tour_oid is None:
            return TargetResult.TOUR_MISSING
        if review_oid is None:
            return TargetResult.REVIEW_MISSING

        query: dict[str, Any] = {f"{K_REVIEWS}._id": review_oid}
        if tour_oid is not None:
            query[K_ID] = tour_oid
        result = await self._tours.update_one(
            query,
            {"$inc": {f"{K_REVIEWS}.$[r].{field}": amount}},
            array_filters=[{"r._id": review_oid}],
        )
        if result.matched_count:
            return TargetResult.UPDATED
        if tour_oid is None:
            return TargetResult.REVIEW_MISSING
        return await self._diagnose(tour_oid, review_oid)

    async def increment_reply_counter(
        self,
        tour_id: str,
        review_id: str,
        reply_id: str,
        field: str,
        amount: int = 1,
    ) -> TargetResult:
        """``$inc`` one counter of one reply using two nested array filters."""
        if field not in REVIEW_COUNTERS:
            raise ValueError(f"Unsupported reply counter: {field}")
        tour_oid = mongo_mapper.as_object_id(tour_id)
        review_oid = mongo_mapper.as_object_id(review_id)
        reply_oid = mongo_mapper.as_object_id(reply_id)
        if tour_oid is None:
            return TargetResult.TOUR_MISSING
        if review_oid is None:
            return TargetResult.REVIEW_MISSING
        if reply_oid is None:
            return TargetResult.REPLY_MISSING

        result = await self._tours.update_one(
            {
                K_ID: tour_oid,
                K_REVIEWS: {"$elemMatch": {K_ID: review_oid, f"{K_REPLIES}._id": reply_oid}},
            },
            {"$inc": {f"{K_REVIEWS}.$[r].{K_REPLIES}.$[p].{field}": amount}},
            array_filters=[{"r._id": review_oid}, {"p._id": reply_oid}],
        )
        if result.matched_count:
            return TargetResult.UPDATED
        return await self._diagnose(tour_oid, review_oid, reply_oid)

    async def increment_tour_counter(self, tour_id: str, field: str, amount: int = 1) -> int | None:
        if field not in TOUR_COUNTERS:
            raise ValueError(f"Unsupported tour counter: {field}")
        oid = mongo_mapper.as_object_id(tour_id)
        if oid is None:
            return None
        doc = await self._tours.find_one_and_update(
            {K_ID: oid},
            {"$inc": {field: amount}},
            projection={field: 1},
            return_document=ReturnDocument.AFTER,
        )
        return int(doc[field]) if doc else None

    async def _diagnose(
        self,
        tour_oid: ObjectId,
        review_oid: ObjectId,
        reply_oid: ObjectId | None = None,
    ) -> TargetResult:
        """Work out which nesting level was missing after an update matched nothing."""
        if await self._tours.count_documents({K_ID: tour_oid}, limit=1) == 0:
            return TargetResult.TOUR_MISSING
        if await self._tours.count_documents({K_ID: tour_oid, f"{K_REVIEWS}._id": review_oid}, limit=1) == 0:
            return TargetResult.REVIEW_MISSING
        if reply_oid is not None:
            return TargetResult.REPLY_MISSING
        # The review appeared after the update ran; report the state the update observed.
        return TargetResult.REVIEW_MISSING
