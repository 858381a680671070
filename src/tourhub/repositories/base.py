"""Storage contracts shared by the MongoDB and in-memory repositories."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol

from tourhub.core.models import (
    DerivedAggregates,
    Reply,
    ReviewMutation,
    ReviewPredicate,
    SortSpec,
    Tour,
)


class TargetResult(str, Enum):
    """Outcome of an update addressed at a nested element."""

    UPDATED = "updated"
    TOUR_MISSING = "tour_missing"
    REVIEW_MISSING = "review_missing"
    REPLY_MISSING = "reply_missing"


class PageableStore(Protocol):
    """A top-level collection that can be counted and sliced."""

    async def count(self, filters: Mapping[str, Any]) -> int: ...

    async def find(
        self,
        filters: Mapping[str, Any],
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...


class TourStore(PageableStore, Protocol):
    """Tour persistence, including the embedded review collection."""

    async def insert_tour(self, tour: Tour) -> None: ...

    async def get_tour(self, tour_id: str) -> Tour | None: ...

    async def find_tour_by_review(self, review_id: str) -> Tour | None: ...

    async def find_tours_with_reviews(self, predicate: ReviewPredicate) -> list[Tour]: ...

    async def count_reviews(self, predicate: ReviewPredicate) -> int: ...

    async def apply_review_mutation(
        self,
        tour_id: str,
        expected_version: int,
        mutation: ReviewMutation,
        aggregates: DerivedAggregates,
    ) -> bool: ...

    async def push_reply(self, tour_id: str, review_id: str, reply: Reply) -> TargetResult: ...

    async def increment_review_counter(
        self,
        review_id: str,
        field: str,
        tour_id: str | None = None,
        amount: int = 1,
    ) -> TargetResult: ...

    async def increment_reply_counter(
        self,
        tour_id: str,
        review_id: str,
        reply_id: str,
        field: str,
        amount: int = 1,
    ) -> TargetResult: ...

    async def increment_tour_counter(self, tour_id: str, field: str, amount: int = 1) -> int | None: ...


class UserStore(PageableStore, Protocol):
    """User listing; account management lives with the authentication collaborator."""

    async def insert_user(self, user: Mapping[str, Any]) -> str: ...
