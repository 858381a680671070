"""Tour listing, creation and tour-level counters."""

from __future__ import annotations

from typing import Any

from tourhub.adapters.mongo_mapper import new_id
from tourhub.config import Settings
from tourhub.core.constants import (
    E_TOUR_NOT_FOUND,
    K_BOOKING_COUNT,
    K_TOUR_STATUS,
    K_VIEWS,
    TOUR_PUBLISHED,
    TOUR_STATUSES,
)
from tourhub.core.exceptions import NotFoundException, ValidationException
from tourhub.core.logging import get_logger
from tourhub.core.models import DerivedAggregates, Identity, PageRequest, PageResult, Tour
from tourhub.repositories.base import TourStore
from tourhub.services.aggregates import AggregateMaintainer
from tourhub.services.filter_sort import ValidatedQuery
from tourhub.services.pagination import CollectionPager

logger = get_logger(__name__)


class TourService:
    """Service for tour operations."""

    def __init__(self, settings: Settings, store: TourStore):
        self.settings = settings
        self.store = store
        self.pager = CollectionPager(
            store,
            max_bounded_limit=settings.pagination_max_limit,
            memory_threshold=settings.pagination_memory_threshold,
        )
        self.maintainer = AggregateMaintainer(store, max_attempts=settings.structural_write_retries)

    async def list_tours(
        self,
        request: PageRequest,
        query: ValidatedQuery,
        identity: Identity | None = None,
    ) -> PageResult:
        """Page through tours; callers other than admins only see published tours."""
        filters: dict[str, Any] = dict(query.filters)
        if identity is None or not identity.is_admin:
            filters[K_TOUR_STATUS] = TOUR_PUBLISHED
        result = await self.pager.paginate(filters, request, query.sort)
        logger.info(
            "Listed tours page %s/%s (%s total, filters=%s)",
            result.page,
            result.total_pages,
            result.total_items,
            filters,
        )
        return result

    async def get_tour(self, tour_id: str) -> Tour:
        tour = await self.store.get_tour(tour_id)
        if tour is None:
            raise NotFoundException("Tour not found", code=E_TOUR_NOT_FOUND)
        return tour

    async def create_tour(
        self,
        identity: Identity,
        title: str,
        slug: str = "",
        tour_status: str = "Draft",
        category: str | None = None,
        destination: str | None = None,
        price: float = 0.0,
        images: list[str] | None = None,
    ) -> Tour:
        if tour_status not in TOUR_STATUSES:
            raise ValidationException(f"tourStatus must be one of {', '.join(TOUR_STATUSES)}", field="tourStatus")
        tour = Tour(
            id=new_id(),
            title=title,
            author=identity.user_id,
            slug=slug or _slugify(title),
            tour_status=tour_status,
            category=category,
            destination=destination,
            price=price,
            images=list(images or []),
        )
        await self.store.insert_tour(tour)
        logger.info("Tour %s created by %s", tour.id, identity.user_id)
        return tour

    async def get_rating(self, tour_id: str) -> DerivedAggregates:
        return (await self.get_tour(tour_id)).aggregates

    async def increment_views(self, tour_id: str) -> int:
        return await self.maintainer.increment_tour_counter(tour_id, K_VIEWS)

    async def increment_bookings(self, tour_id: str) -> int:
        return await self.maintainer.increment_tour_counter(tour_id, K_BOOKING_COUNT)


def _slugify(title: str) -> str:
    words = "".join(c if c.isalnum() else " " for c in title.lower()).split()
    return "-".join(words)
