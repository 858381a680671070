"""Tests for the MongoDB repositories against a mocked async collection."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from conftest import make_review, make_tour
from pymongo import ASCENDING, DESCENDING

from tourhub.adapters.mongo_mapper import new_id, tour_to_document
from tourhub.core.models import (
    AddReview,
    DerivedAggregates,
    RemoveReview,
    ReviewPredicate,
    SortSpec,
    UpdateReview,
)
from tourhub.repositories.base import TargetResult
from tourhub.repositories.tour_repository import MongoTourRepository, build_sort, review_existence_filter
from tourhub.repositories.user_repository import USER_PROJECTION, MongoUserRepository

pytestmark = pytest.mark.asyncio


def _cursor(docs: list[dict]) -> MagicMock:
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


def _update_result(matched: int) -> MagicMock:
    result = MagicMock()
    result.matched_count = matched
    return result


@pytest.fixture
def collection() -> MagicMock:
    col = MagicMock()
    col.update_one = AsyncMock(return_value=_update_result(1))
    col.count_documents = AsyncMock(return_value=0)
    col.find_one = AsyncMock(return_value=None)
    col.find_one_and_update = AsyncMock(return_value=None)
    col.insert_one = AsyncMock()
    col.aggregate = AsyncMock()
    return col


async def test_build_sort_adds_id_tiebreak() -> None:
    assert build_sort(None) == [("_id", ASCENDING)]
    assert build_sort(SortSpec("price", "desc")) == [("price", DESCENDING), ("_id", DESCENDING)]
    assert build_sort(SortSpec("_id", "asc")) == [("_id", ASCENDING)]


async def test_review_existence_filter() -> None:
    tour_id = new_id()
    assert review_existence_filter(ReviewPredicate(status="pending", tour_author="s1")) == {
        "author": "s1",
        "reviews": {"$elemMatch": {"status": "pending"}},
    }
    assert review_existence_filter(ReviewPredicate(tour_id=tour_id)) == {
        "_id": ObjectId(tour_id),
        "reviews.0": {"$exists": True},
    }
    assert review_existence_filter(ReviewPredicate(tour_id="nope")) is None


async def test_find_projects_out_reviews_and_pages(collection: MagicMock) -> None:
    cursor = _cursor([{"_id": ObjectId(), "title": "A"}])
    collection.find.return_value = cursor
    repo = MongoTourRepository(collection)

    docs = await repo.find({"tourStatus": "Published"}, SortSpec("createdAt", "desc"), skip=20, limit=10)

    assert docs[0]["title"] == "A"
    collection.find.assert_called_once_with({"tourStatus": "Published"}, {"reviews": 0})
    cursor.sort.assert_called_once_with([("createdAt", DESCENDING), ("_id", DESCENDING)])
    cursor.skip.assert_called_once_with(20)
    cursor.limit.assert_called_once_with(10)


async def test_add_review_is_one_conditional_write(collection: MagicMock) -> None:
    repo = MongoTourRepository(collection)
    tour_id = new_id()
    review = make_review(4)
    aggregates = DerivedAggregates(4.0, 1, 1)

    assert await repo.apply_review_mutation(tour_id, 3, AddReview(review), aggregates) is True

    (query, update), kwargs = collection.update_one.call_args
    assert query == {"_id": ObjectId(tour_id), "__v": 3}
    assert update["$inc"] == {"__v": 1}
    assert update["$set"]["averageRating"] == 4.0
    assert update["$set"]["reviewCount"] == 1
    assert update["$set"]["approvedReviewCount"] == 1
    assert "updatedAt" in update["$set"]
    assert update["$push"]["reviews"]["_id"] == ObjectId(review.id)
    assert kwargs["array_filters"] is None


async def test_update_review_targets_one_element(collection: MagicMock) -> None:
    repo = MongoTourRepository(collection)
    review_id = new_id()

    await repo.apply_review_mutation(
        new_id(), 0, UpdateReview(review_id, {"status": "approved", "rating": 3.5}), DerivedAggregates()
    )

    (_, update), kwargs = collection.update_one.call_args
    assert update["$set"]["reviews.$[r].status"] == "approved"
    assert update["$set"]["reviews.$[r].rating"] == 3.5
    assert "reviews" not in update["$set"]
    assert kwargs["array_filters"] == [{"r._id": ObjectId(review_id)}]


async def test_remove_review_pulls_by_id(collection: MagicMock) -> None:
    repo = MongoTourRepository(collection)
    review_id = new_id()

    await repo.apply_review_mutation(new_id(), 0, RemoveReview(review_id), DerivedAggregates())

    (_, update), _ = collection.update_one.call_args
    assert update["$pull"] == {"reviews": {"_id": ObjectId(review_id)}}


async def test_version_mismatch_reports_conflict(collection: MagicMock) -> None:
    collection.update_one.return_value = _update_result(0)
    repo = MongoTourRepository(collection)

    assert await repo.apply_review_mutation(new_id(), 5, AddReview(make_review(2)), DerivedAggregates()) is False


async def test_reply_counter_uses_nested_array_filters(collection: MagicMock) -> None:
    repo = MongoTourRepository(collection)
    tour_id, review_id, reply_id = new_id(), new_id(), new_id()

    assert await repo.increment_reply_counter(tour_id, review_id, reply_id, "likes") is TargetResult.UPDATED

    (_, update), kwargs = collection.update_one.call_args
    assert update == {"$inc": {"reviews.$[r].replies.$[p].likes": 1}}
    assert kwargs["array_filters"] == [{"r._id": ObjectId(review_id)}, {"p._id": ObjectId(reply_id)}]


@pytest.mark.parametrize(
    ("counts", "expected"),
    [
        ([0], TargetResult.TOUR_MISSING),
        ([1, 0], TargetResult.REVIEW_MISSING),
        ([1, 1], TargetResult.REPLY_MISSING),
    ],
)
async def test_reply_counter_diagnoses_missing_level(collection: MagicMock, counts, expected) -> None:
    collection.update_one.return_value = _update_result(0)
    collection.count_documents.side_effect = counts
    repo = MongoTourRepository(collection)

    assert await repo.increment_reply_counter(new_id(), new_id(), new_id(), "views") is expected


async def test_review_counter_without_tour_scope(collection: MagicMock) -> None:
    repo = MongoTourRepository(collection)
    review_id = new_id()

    assert await repo.increment_review_counter(review_id, "likes") is TargetResult.UPDATED
    (query, update), _ = collection.update_one.call_args
    assert query == {"reviews._id": ObjectId(review_id)}
    assert update == {"$inc": {"reviews.$[r].likes": 1}}

    collection.update_one.return_value = _update_result(0)
    assert await repo.increment_review_counter(review_id, "likes") is TargetResult.REVIEW_MISSING
    assert await repo.increment_review_counter("bad-id", "likes") is TargetResult.REVIEW_MISSING


async def test_unsupported_counter_is_rejected(collection: MagicMock) -> None:
    repo = MongoTourRepository(collection)
    with pytest.raises(ValueError):
        await repo.increment_review_counter(new_id(), "rating")
    with pytest.raises(ValueError):
        await repo.increment_tour_counter(new_id(), "price")


async def test_tour_counter_returns_new_value(collection: MagicMock) -> None:
    collection.find_one_and_update.return_value = {"_id": ObjectId(), "views": 12}
    repo = MongoTourRepository(collection)

    assert await repo.increment_tour_counter(new_id(), "views") == 12

    (_, update), _ = collection.find_one_and_update.call_args
    assert update == {"$inc": {"views": 1}}


async def test_count_reviews_unwinds_and_counts(collection: MagicMock) -> None:
    collection.aggregate.return_value = _cursor([{"n": 600}])
    repo = MongoTourRepository(collection)

    assert await repo.count_reviews(ReviewPredicate(status="approved")) == 600

    (pipeline,), _ = collection.aggregate.call_args
    assert pipeline == [
        {"$match": {"reviews": {"$elemMatch": {"status": "approved"}}}},
        {"$unwind": "$reviews"},
        {"$match": {"reviews.status": "approved"}},
        {"$count": "n"},
    ]


async def test_get_tour_maps_document(collection: MagicMock) -> None:
    tour = make_tour(title="Dunes", reviews=[make_review(5)])
    collection.find_one.return_value = tour_to_document(tour)
    repo = MongoTourRepository(collection)

    loaded = await repo.get_tour(tour.id)

    assert loaded is not None
    assert loaded.title == "Dunes"
    assert loaded.reviews[0].id == tour.reviews[0].id
    assert await repo.get_tour("not-an-object-id") is None


async def test_user_listing_hides_credentials(collection: MagicMock) -> None:
    cursor = _cursor([])
    collection.find.return_value = cursor
    repo = MongoUserRepository(collection)

    await repo.find({"roles": "seller"}, SortSpec("name"))

    collection.find.assert_called_once_with({"roles": "seller"}, USER_PROJECTION)
    cursor.sort.assert_called_once_with([("name", ASCENDING), ("_id", ASCENDING)])
    cursor.skip.assert_not_called()
    cursor.limit.assert_not_called()
