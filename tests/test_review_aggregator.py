"""Tests for flattening embedded reviews across tours."""

from __future__ import annotations

import pytest
from conftest import at, make_review, make_tour

from tourhub.adapters.mongo_mapper import new_id
from tourhub.core.constants import (
    E_REPLY_NOT_FOUND,
    E_RESULT_SET_TOO_LARGE,
    E_REVIEW_NOT_FOUND,
    E_TOUR_NOT_FOUND,
    REVIEW_APPROVED,
    REVIEW_PENDING,
    REVIEW_REJECTED,
)
from tourhub.core.exceptions import NotFoundException, ResultSetTooLargeError
from tourhub.core.models import PageRequest, Reply, ReviewPredicate, SortSpec
from tourhub.repositories.memory import MemoryTourRepository
from tourhub.services.review_aggregator import ReviewAggregator

pytestmark = pytest.mark.asyncio

ALL = PageRequest(page=1, limit="all")


@pytest.fixture
def store() -> MemoryTourRepository:
    return MemoryTourRepository()


@pytest.fixture
def aggregator(store: MemoryTourRepository) -> ReviewAggregator:
    return ReviewAggregator(store, max_bounded_limit=100, memory_threshold=2000)


async def test_pending_listing_returns_decorated_review(
    store: MemoryTourRepository, aggregator: ReviewAggregator
) -> None:
    tour = make_tour(
        title="Alps Trek",
        images=["cover.jpg", "second.jpg"],
        reviews=[
            make_review(5, REVIEW_APPROVED),
            make_review(3, REVIEW_PENDING),
            make_review(1, REVIEW_APPROVED),
        ],
    )
    await store.insert_tour(tour)

    result = await aggregator.list_reviews(ReviewPredicate(status=REVIEW_PENDING), ALL)

    assert result.total_items == 1
    (item,) = result.items
    assert item["rating"] == 3
    assert item["tourId"] == tour.id
    assert item["tourTitle"] == "Alps Trek"
    assert item["tourSlug"] == "alps-trek"
    assert item["tourImage"] == "cover.jpg"


async def test_default_sort_is_rating_then_newest(store: MemoryTourRepository, aggregator: ReviewAggregator) -> None:
    older_five = make_review(5, REVIEW_APPROVED, created_at=at(1))
    newer_five = make_review(5, REVIEW_APPROVED, created_at=at(2))
    await store.insert_tour(make_tour(reviews=[make_review(3, REVIEW_PENDING), older_five]))
    await store.insert_tour(make_tour(images=[], reviews=[make_review(1, REVIEW_APPROVED), newer_five]))

    result = await aggregator.list_reviews(ReviewPredicate(), ALL)

    assert [r["rating"] for r in result.items] == [5, 5, 3, 1]
    assert [str(r["_id"]) for r in result.items[:2]] == [newer_five.id, older_five.id]
    assert result.items[0]["tourImage"] is None


async def test_explicit_sort_applies_to_whole_flattened_set(
    store: MemoryTourRepository, aggregator: ReviewAggregator
) -> None:
    await store.insert_tour(make_tour(reviews=[make_review(4, likes=1), make_review(2, likes=9)]))
    await store.insert_tour(make_tour(reviews=[make_review(5, likes=5)]))

    result = await aggregator.list_reviews(ReviewPredicate(), ALL, SortSpec("likes", "desc"))

    assert [r["likes"] for r in result.items] == [9, 5, 1]


async def test_single_tour_defaults_to_newest_first(
    store: MemoryTourRepository, aggregator: ReviewAggregator
) -> None:
    tour = make_tour(
        reviews=[
            make_review(5, created_at=at(1)),
            make_review(1, created_at=at(3)),
            make_review(3, created_at=at(2)),
        ]
    )
    await store.insert_tour(tour)
    await store.insert_tour(make_tour(reviews=[make_review(4)]))

    result = await aggregator.list_reviews(ReviewPredicate(tour_id=tour.id), ALL)

    assert [r["rating"] for r in result.items] == [1, 3, 5]


async def test_tour_author_scoping(store: MemoryTourRepository, aggregator: ReviewAggregator) -> None:
    await store.insert_tour(make_tour(author="seller-a", reviews=[make_review(4, REVIEW_PENDING)]))
    await store.insert_tour(make_tour(author="seller-b", reviews=[make_review(2, REVIEW_PENDING)]))

    result = await aggregator.list_reviews(
        ReviewPredicate(status=REVIEW_PENDING, tour_author="seller-a"),
        ALL,
    )

    assert [r["rating"] for r in result.items] == [4]


async def test_pages_of_flattened_reviews(store: MemoryTourRepository, aggregator: ReviewAggregator) -> None:
    for t in range(3):
        await store.insert_tour(make_tour(reviews=[make_review(1 + (t + i) % 5) for i in range(4)]))

    ids: list[str] = []
    for page in (1, 2, 3):
        result = await aggregator.list_reviews(ReviewPredicate(), PageRequest(page=page, limit=5))
        assert result.total_items == 12
        assert result.total_pages == 3
        ids.extend(str(r["_id"]) for r in result.items)

    assert len(ids) == len(set(ids)) == 12
    beyond = await aggregator.list_reviews(ReviewPredicate(), PageRequest(page=4, limit=5))
    assert beyond.items == []


async def test_memory_threshold_guards_limit_all(store: MemoryTourRepository) -> None:
    aggregator = ReviewAggregator(store, max_bounded_limit=100, memory_threshold=500)
    # 600 approved reviews spread over 6 tours, 400 of them on tours by seller-a
    for t in range(6):
        author = "seller-a" if t < 4 else "seller-b"
        await store.insert_tour(make_tour(author=author, reviews=[make_review(4) for _ in range(100)]))

    with pytest.raises(ResultSetTooLargeError) as exc_info:
        await aggregator.list_reviews(ReviewPredicate(status=REVIEW_APPROVED), ALL)
    assert exc_info.value.code == E_RESULT_SET_TOO_LARGE
    assert exc_info.value.details == {"totalItems": 600, "threshold": 500}

    narrowed = await aggregator.list_reviews(ReviewPredicate(status=REVIEW_APPROVED, tour_author="seller-a"), ALL)
    assert narrowed.total_items == 400
    assert len(narrowed.items) == 400
    assert narrowed.total_pages == 1


async def test_rejected_reviews_are_not_listed_publicly(
    store: MemoryTourRepository, aggregator: ReviewAggregator
) -> None:
    await store.insert_tour(make_tour(reviews=[make_review(2, REVIEW_REJECTED), make_review(4, REVIEW_APPROVED)]))

    result = await aggregator.list_reviews(ReviewPredicate(status=REVIEW_APPROVED), ALL)

    assert [r["rating"] for r in result.items] == [4]


async def test_get_review_and_locate_report_missing_level(
    store: MemoryTourRepository, aggregator: ReviewAggregator
) -> None:
    reply = Reply(id=new_id(), user="u1", comment="thanks")
    review = make_review(4, replies=[reply])
    tour = make_tour(title="Coast", reviews=[review])
    await store.insert_tour(tour)

    record = await aggregator.get_review(review.id)
    assert record["tourTitle"] == "Coast"

    location = await aggregator.locate(tour.id, review.id, reply.id)
    assert location.reply is not None and location.reply.comment == "thanks"

    cases = [
        ((new_id(), review.id, reply.id), E_TOUR_NOT_FOUND),
        (("not-an-id", review.id, None), E_TOUR_NOT_FOUND),
        ((tour.id, new_id(), reply.id), E_REVIEW_NOT_FOUND),
        ((tour.id, review.id, new_id()), E_REPLY_NOT_FOUND),
    ]
    for args, code in cases:
        with pytest.raises(NotFoundException) as exc_info:
            await aggregator.locate(*args)
        assert exc_info.value.code == code
        assert exc_info.value.status_code == 404

    with pytest.raises(NotFoundException) as exc_info:
        await aggregator.get_review(new_id())
    assert exc_info.value.code == E_REVIEW_NOT_FOUND
