"""Domain models for tours, their embedded reviews, and listing requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from tourhub.core.constants import REVIEW_APPROVED, REVIEW_PENDING, ROLE_ADMIN


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class Reply:
    """A reply embedded inside a review."""

    id: str
    user: str
    comment: str
    views: int = 0
    likes: int = 0
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Review:
    """A review embedded inside a tour; owned exclusively by that tour."""

    id: str
    user: str
    rating: float
    comment: str = ""
    status: str = REVIEW_PENDING
    views: int = 0
    likes: int = 0
    created_at: datetime = field(default_factory=utcnow)
    replies: list[Reply] = field(default_factory=list)

    @property
    def is_approved(self) -> bool:
        return self.status == REVIEW_APPROVED


@dataclass(frozen=True)
class DerivedAggregates:
    """Rating summary stored on the tour, always recomputed from its reviews."""

    average_rating: float = 0.0
    review_count: int = 0
    approved_review_count: int = 0


@dataclass
class Tour:
    """Top-level tour document owning an embedded review collection."""

    id: str
    title: str
    author: str
    slug: str = ""
    tour_status: str = "Draft"
    category: str | None = None
    destination: str | None = None
    price: float = 0.0
    images: list[str] = field(default_factory=list)
    views: int = 0
    booking_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    reviews: list[Review] = field(default_factory=list)
    aggregates: DerivedAggregates = field(default_factory=DerivedAggregates)
    version: int = 0

    def find_review(self, review_id: str) -> Review | None:
        return next((r for r in self.reviews if r.id == review_id), None)

    def find_review_by_user(self, user_id: str) -> Review | None:
        return next((r for r in self.reviews if r.user == user_id), None)

    @property
    def cover_image(self) -> str | None:
        return self.images[0] if self.images else None


@dataclass(frozen=True)
class AddReview:
    """Append a new review."""

    review: Review


@dataclass(frozen=True)
class UpdateReview:
    """Overwrite selected fields (rating, comment, status, created_at) of one review."""

    review_id: str
    changes: dict[str, Any]


@dataclass(frozen=True)
class RemoveReview:
    """Remove one review together with its replies."""

    review_id: str


ReviewMutation = AddReview | UpdateReview | RemoveReview


@dataclass(frozen=True)
class ReviewPredicate:
    """Selects embedded reviews across tours.

    ``status`` filters the reviews themselves; ``tour_author`` and ``tour_id``
    restrict which parent tours are considered.
    """

    status: str | None = None
    tour_author: str | None = None
    tour_id: str | None = None

    def matches(self, review: Review) -> bool:
        return self.status is None or review.status == self.status


@dataclass(frozen=True)
class SortSpec:
    """Sort field/order pair using storage field names."""

    field: str
    order: Literal["asc", "desc"] = "asc"

    @property
    def descending(self) -> bool:
        return self.order == "desc"


@dataclass(frozen=True)
class PageRequest:
    """Validated page and limit; ``limit`` is an int or the ``"all"`` sentinel."""

    page: int = 1
    limit: int | Literal["all"] = 10

    @property
    def is_all(self) -> bool:
        return self.limit == "all"

    @property
    def skip(self) -> int:
        if isinstance(self.limit, int):
            return (self.page - 1) * self.limit
        return 0


@dataclass(frozen=True)
class PageResult:
    """One page of items plus the metadata clients need to walk the rest."""

    items: list[dict[str, Any]]
    page: int
    limit: int
    total_items: int
    total_pages: int


@dataclass(frozen=True)
class Identity:
    """Caller identity produced by the upstream authentication layer."""

    user_id: str
    roles: frozenset[str] = frozenset()

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    def has_any_role(self, *roles: str) -> bool:
        return bool(self.roles.intersection(roles))
