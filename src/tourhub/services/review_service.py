"""Review listing, submission and moderation on top of the embedded review array."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tourhub.adapters.mongo_mapper import new_id
from tourhub.config import Settings
from tourhub.core.constants import (
    E_REVIEW_NOT_FOUND,
    E_TOUR_NOT_FOUND,
    K_LIKES,
    K_VIEWS,
    RATING_MAX,
    RATING_MIN,
    REVIEW_APPROVED,
    REVIEW_PENDING,
    REVIEW_STATUSES,
    ROLE_ADMIN,
    ROLE_SELLER,
)
from tourhub.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from tourhub.core.logging import get_logger
from tourhub.core.models import (
    AddReview,
    Identity,
    PageRequest,
    PageResult,
    RemoveReview,
    Reply,
    Review,
    ReviewMutation,
    ReviewPredicate,
    Tour,
    UpdateReview,
    utcnow,
)
from tourhub.repositories.base import TourStore
from tourhub.services.aggregates import AggregateMaintainer, raise_for_target, round_half_up
from tourhub.services.filter_sort import ValidatedQuery
from tourhub.services.review_aggregator import ReviewAggregator, ReviewLocation

logger = get_logger(__name__)


def normalize_rating(rating: float) -> float:
    """Validate a submitted rating and round it to the nearest half star."""
    if not RATING_MIN <= rating <= RATING_MAX:
        raise ValidationException(f"Rating must be between {RATING_MIN} and {RATING_MAX}", field="rating")
    return round_half_up(rating * 2) / 2


@dataclass(frozen=True)
class ReviewWriteResult:
    tour: Tour
    review: Review
    created: bool = False


class ReviewService:
    """Entry point for every review operation exposed over HTTP."""

    def __init__(self, settings: Settings, store: TourStore):
        self.settings = settings
        self.store = store
        self.aggregator = ReviewAggregator(
            store,
            max_bounded_limit=settings.pagination_max_limit,
            memory_threshold=settings.pagination_memory_threshold,
        )
        self.maintainer = AggregateMaintainer(store, max_attempts=settings.structural_write_retries)

    # Listings

    async def list_public(self, request: PageRequest, query: ValidatedQuery) -> PageResult:
        """Cross-tour listing; only approved reviews unless a status filter says otherwise."""
        status = query.filters.get("status", REVIEW_APPROVED)
        return await self.aggregator.list_reviews(ReviewPredicate(status=status), request, query.sort)

    async def list_pending(self, identity: Identity, request: PageRequest, query: ValidatedQuery) -> PageResult:
        predicate = ReviewPredicate(status=REVIEW_PENDING, tour_author=self._scope_author(identity))
        return await self.aggregator.list_reviews(predicate, request, query.sort)

    async def list_managed(self, identity: Identity, request: PageRequest, query: ValidatedQuery) -> PageResult:
        predicate = ReviewPredicate(
            status=query.filters.get("status"),
            tour_author=self._scope_author(identity),
        )
        return await self.aggregator.list_reviews(predicate, request, query.sort)

    async def list_tour_reviews(self, tour_id: str, request: PageRequest, query: ValidatedQuery) -> PageResult:
        if await self.store.get_tour(tour_id) is None:
            raise NotFoundException("Tour not found", code=E_TOUR_NOT_FOUND)
        predicate = ReviewPredicate(status=query.filters.get("status"), tour_id=tour_id)
        return await self.aggregator.list_reviews(predicate, request, query.sort)

    async def get_review(self, review_id: str) -> dict[str, Any]:
        return await self.aggregator.get_review(review_id)

    # Structural writes

    async def submit_review(
        self,
        tour_id: str,
        identity: Identity,
        rating: float,
        comment: str = "",
    ) -> ReviewWriteResult:
        """Add the caller's review, or overwrite it if they already reviewed this tour.

        An overwrite resets the review to pending and refreshes its timestamp.
        """
        rounded = normalize_rating(rating)
        created = False
        review_id = ""

        def build(tour: Tour) -> ReviewMutation:
            nonlocal created, review_id
            existing = tour.find_review_by_user(identity.user_id)
            if existing is not None:
                created = False
                review_id = existing.id
                return UpdateReview(
                    existing.id,
                    {"rating": rounded, "comment": comment, "status": REVIEW_PENDING, "created_at": utcnow()},
                )
            created = True
            review_id = new_id()
            return AddReview(Review(id=review_id, user=identity.user_id, rating=rounded, comment=comment))

        tour = await self.maintainer.mutate_reviews(tour_id, build)
        review = self._require_review(tour, review_id)
        logger.info(
            "Review %s %s on tour %s by %s",
            review.id,
            "added" if created else "overwritten",
            tour.id,
            identity.user_id,
        )
        return ReviewWriteResult(tour=tour, review=review, created=created)

    async def update_status(self, review_id: str, identity: Identity, status: str) -> ReviewWriteResult:
        if status not in REVIEW_STATUSES:
            raise ValidationException(f"Status must be one of {', '.join(REVIEW_STATUSES)}", field="status")
        tour = await self._tour_of_review(review_id)
        if not (identity.is_admin or tour.author == identity.user_id):
            raise ForbiddenException("You are not authorized to manage this review")

        def build(current: Tour) -> ReviewMutation:
            self._require_review(current, review_id)
            return UpdateReview(review_id, {"status": status})

        updated = await self.maintainer.mutate_reviews(tour.id, build)
        review = self._require_review(updated, review_id)
        logger.info("Review %s set to %s by %s", review_id, status, identity.user_id)
        return ReviewWriteResult(tour=updated, review=review)

    async def delete_review(self, review_id: str, identity: Identity) -> Tour:
        """Delete a review; allowed for admins, the tour's author and the review's author."""
        tour = await self._tour_of_review(review_id)
        review = self._require_review(tour, review_id)
        if not (identity.is_admin or tour.author == identity.user_id or review.user == identity.user_id):
            raise ForbiddenException("You are not authorized to delete this review")

        def build(current: Tour) -> ReviewMutation:
            self._require_review(current, review_id)
            return RemoveReview(review_id)

        updated = await self.maintainer.mutate_reviews(tour.id, build)
        logger.info("Review %s deleted from tour %s by %s", review_id, tour.id, identity.user_id)
        return updated

    async def add_reply(self, review_id: str, identity: Identity, comment: str) -> Reply:
        if not comment or not comment.strip():
            raise ValidationException("Reply comment is required", field="comment")
        tour = await self._tour_of_review(review_id)
        reply = Reply(id=new_id(), user=identity.user_id, comment=comment)
        raise_for_target(await self.store.push_reply(tour.id, review_id, reply))
        return reply

    # Counters

    async def like_review(self, review_id: str) -> None:
        await self.maintainer.increment_review_counter(review_id, K_LIKES)

    async def view_review(self, tour_id: str, review_id: str) -> Review:
        await self.maintainer.increment_review_counter(review_id, K_VIEWS, tour_id=tour_id)
        location = await self.aggregator.locate(tour_id, review_id)
        return location.review

    async def bump_reply(self, tour_id: str, review_id: str, reply_id: str, field: str) -> ReviewLocation:
        await self.maintainer.increment_reply_counter(tour_id, review_id, reply_id, field)
        return await self.aggregator.locate(tour_id, review_id, reply_id)

    # Helpers

    @staticmethod
    def _scope_author(identity: Identity) -> str | None:
        """Admins see every tour; sellers only their own."""
        if identity.is_admin:
            return None
        if identity.has_any_role(ROLE_SELLER):
            return identity.user_id
        raise ForbiddenException(f"Requires one of the roles: {ROLE_ADMIN}, {ROLE_SELLER}")

    async def _tour_of_review(self, review_id: str) -> Tour:
        tour = await self.store.find_tour_by_review(review_id)
        if tour is None:
            raise NotFoundException("Review not found", code=E_REVIEW_NOT_FOUND)
        return tour

    @staticmethod
    def _require_review(tour: Tour, review_id: str) -> Review:
        review = tour.find_review(review_id)
        if review is None:
            raise NotFoundException("Review not found", code=E_REVIEW_NOT_FOUND)
        return review
