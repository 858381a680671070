"""Keeps derived tour aggregates consistent with the embedded review array."""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Callable, Iterable

from tourhub.core.constants import (
    E_REPLY_NOT_FOUND,
    E_REVIEW_NOT_FOUND,
    E_TOUR_NOT_FOUND,
)
from tourhub.core.exceptions import ConcurrentModificationError, NotFoundException
from tourhub.core.logging import get_logger
from tourhub.core.models import (
    AddReview,
    DerivedAggregates,
    RemoveReview,
    Review,
    ReviewMutation,
    Tour,
    UpdateReview,
)
from tourhub.repositories.base import TargetResult, TourStore

logger = get_logger(__name__)

MutationFactory = Callable[[Tour], ReviewMutation]


def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def recompute_aggregates(reviews: Iterable[Review]) -> DerivedAggregates:
    """Derive the rating summary of a tour from its full review list.

    The average covers approved reviews only and is rounded to one decimal;
    ``review_count`` counts every review regardless of status.
    """
    all_reviews = list(reviews)
    approved = [r.rating for r in all_reviews if r.is_approved]
    average = round_half_up(sum(approved) / len(approved), 1) if approved else 0.0
    return DerivedAggregates(
        average_rating=average,
        review_count=len(all_reviews),
        approved_review_count=len(approved),
    )


def apply_mutation(reviews: list[Review], mutation: ReviewMutation) -> list[Review]:
    """Return a new review list with ``mutation`` applied; the input is left untouched."""
    if isinstance(mutation, AddReview):
        return [*reviews, mutation.review]
    if isinstance(mutation, UpdateReview):
        return [
            dataclasses.replace(r, **mutation.changes) if r.id == mutation.review_id else r
            for r in reviews
        ]
    if isinstance(mutation, RemoveReview):
        return [r for r in reviews if r.id != mutation.review_id]
    raise TypeError(f"Unsupported review mutation: {mutation!r}")


def raise_for_target(result: TargetResult) -> None:
    """Turn a failed nested-element update into the matching not-found error."""
    if result is TargetResult.TOUR_MISSING:
        raise NotFoundException("Tour not found", code=E_TOUR_NOT_FOUND)
    if result is TargetResult.REVIEW_MISSING:
        raise NotFoundException("Review not found", code=E_REVIEW_NOT_FOUND)
    if result is TargetResult.REPLY_MISSING:
        raise NotFoundException("Reply not found", code=E_REPLY_NOT_FOUND)


class AggregateMaintainer:
    """Runs every write that touches a tour's reviews.

    Structural changes (add, overwrite, status change, delete) go through
    ``mutate_reviews`` as a version-guarded write that carries the recomputed
    aggregates. Counters go through single ``$inc`` updates and never read
    the document first.
    """

    def __init__(self, store: TourStore, max_attempts: int = 3):
        self.store = store
        self.max_attempts = max(1, max_attempts)

    async def mutate_reviews(self, tour_id: str, build_mutation: MutationFactory) -> Tour:
        """Apply one review mutation with its aggregates, retrying on version conflicts.

        Args:
            tour_id: Tour owning the reviews.
            build_mutation: Called with a freshly loaded tour on every attempt;
                may raise to abort (ownership checks, missing review).

        Returns:
            Tour: The tour as written, with updated reviews, aggregates and version.

        Raises:
            NotFoundException: The tour does not exist.
            ConcurrentModificationError: Every attempt lost against another writer.
        """
        for attempt in range(1, self.max_attempts + 1):
            tour = await self.store.get_tour(tour_id)
            if tour is None:
                raise NotFoundException("Tour not found", code=E_TOUR_NOT_FOUND)

            mutation = build_mutation(tour)
            reviews = apply_mutation(tour.reviews, mutation)
            aggregates = recompute_aggregates(reviews)

            if await self.store.apply_review_mutation(tour.id, tour.version, mutation, aggregates):
                return dataclasses.replace(
                    tour,
                    reviews=reviews,
                    aggregates=aggregates,
                    version=tour.version + 1,
                )
            logger.warning(
                "Review write on tour %s lost a version race (attempt %s/%s)",
                tour_id,
                attempt,
                self.max_attempts,
            )

        raise ConcurrentModificationError()

    async def increment_review_counter(
        self,
        review_id: str,
        field: str,
        tour_id: str | None = None,
        amount: int = 1,
    ) -> None:
        raise_for_target(await self.store.increment_review_counter(review_id, field, tour_id, amount))

    async def increment_reply_counter(
        self,
        tour_id: str,
        review_id: str,
        reply_id: str,
        field: str,
        amount: int = 1,
    ) -> None:
        raise_for_target(
            await self.store.increment_reply_counter(tour_id, review_id, reply_id, field, amount)
        )

    async def increment_tour_counter(self, tour_id: str, field: str, amount: int = 1) -> int:
        value = await self.store.increment_tour_counter(tour_id, field, amount)
        if value is None:
            raise NotFoundException("Tour not found", code=E_TOUR_NOT_FOUND)
        return value
