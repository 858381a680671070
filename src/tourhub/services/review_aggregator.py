"""Flattens reviews embedded in tours into one paginated, parent-decorated list."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tourhub.adapters.mongo_mapper import decorate_review
from tourhub.core.constants import (
    E_REPLY_NOT_FOUND,
    E_REVIEW_NOT_FOUND,
    E_TOUR_NOT_FOUND,
    K_CREATED_AT,
    K_RATING,
)
from tourhub.core.exceptions import NotFoundException
from tourhub.core.logging import get_logger
from tourhub.core.models import PageRequest, PageResult, Reply, Review, ReviewPredicate, SortSpec, Tour
from tourhub.repositories.base import TourStore
from tourhub.services.pagination import Strategy, ensure_within_threshold, select_strategy, slice_page
from tourhub.services.sorting import sort_by_keys, sort_documents

logger = get_logger(__name__)

CROSS_TOUR_DEFAULT_SORT: tuple[SortSpec, ...] = (SortSpec(K_RATING, "desc"), SortSpec(K_CREATED_AT, "desc"))
SINGLE_TOUR_DEFAULT_SORT: tuple[SortSpec, ...] = (SortSpec(K_CREATED_AT, "desc"),)


@dataclass(frozen=True)
class ReviewLocation:
    """A review addressed through its tour, optionally down to one reply."""

    tour: Tour
    review: Review
    reply: Reply | None = None


class ReviewAggregator:
    """Builds review listings across tours (or within one tour)."""

    def __init__(self, store: TourStore, max_bounded_limit: int, memory_threshold: int):
        self.store = store
        self.max_bounded_limit = max_bounded_limit
        self.memory_threshold = memory_threshold

    async def list_reviews(
        self,
        predicate: ReviewPredicate,
        request: PageRequest,
        sort: SortSpec | None = None,
    ) -> PageResult:
        """Return one page of matching reviews, each carrying its tour's context.

        Tours are visited in ``_id`` order and their matching reviews
        concatenated before the global sort, so the order of equal sort keys
        is deterministic between requests. Without an explicit ``sort`` the
        cross-tour default is rating then recency; a single tour defaults to
        recency.

        Raises:
            ResultSetTooLargeError: ``limit`` is ``all`` (or above the bounded
                maximum) and more reviews match than may be held in memory.
        """
        if select_strategy(request.limit, self.max_bounded_limit) is Strategy.HYBRID:
            total = await self.store.count_reviews(predicate)
            ensure_within_threshold(total, self.memory_threshold)

        tours = await self.store.find_tours_with_reviews(predicate)
        items = [
            decorate_review(review, tour)
            for tour in tours
            for review in tour.reviews
            if predicate.matches(review)
        ]

        if sort is not None:
            items = sort_documents(items, sort)
        else:
            default = SINGLE_TOUR_DEFAULT_SORT if predicate.tour_id else CROSS_TOUR_DEFAULT_SORT
            items = sort_by_keys(items, default)

        logger.info(
            "Aggregated %s reviews from %s tours (status=%s, author=%s, tour=%s)",
            len(items),
            len(tours),
            predicate.status,
            predicate.tour_author,
            predicate.tour_id,
        )
        return slice_page(items, request)

    async def get_review(self, review_id: str) -> dict[str, Any]:
        """Return one review decorated with its tour's context."""
        tour = await self.store.find_tour_by_review(review_id)
        review = tour.find_review(review_id) if tour else None
        if tour is None or review is None:
            raise NotFoundException("Review not found", code=E_REVIEW_NOT_FOUND)
        return decorate_review(review, tour)

    async def locate(self, tour_id: str, review_id: str, reply_id: str | None = None) -> ReviewLocation:
        """Resolve a tour/review/reply path, reporting the first level that is missing."""
        tour = await self.store.get_tour(tour_id)
        if tour is None:
            raise NotFoundException("Tour not found", code=E_TOUR_NOT_FOUND)
        review = tour.find_review(review_id)
        if review is None:
            raise NotFoundException("Review not found", code=E_REVIEW_NOT_FOUND)
        if reply_id is None:
            return ReviewLocation(tour=tour, review=review)
        reply = next((r for r in review.replies if r.id == reply_id), None)
        if reply is None:
            raise NotFoundException("Reply not found", code=E_REPLY_NOT_FOUND)
        return ReviewLocation(tour=tour, review=review, reply=reply)
