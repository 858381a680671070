"""Bounded and hybrid pagination over top-level collections."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from tourhub.core.constants import K_CREATED_AT, K_ID, LIMIT_ALL
from tourhub.core.exceptions import ResultSetTooLargeError
from tourhub.core.logging import get_logger
from tourhub.core.models import PageRequest, PageResult, SortSpec
from tourhub.repositories.base import PageableStore
from tourhub.services.sorting import sort_documents

logger = get_logger(__name__)

DEFAULT_SORT = SortSpec(K_CREATED_AT, "desc")


class Strategy(str, Enum):
    """How a page is produced."""

    BOUNDED = "bounded"  # store-side skip/limit
    HYBRID = "hybrid"  # count, fetch everything, slice in memory


def select_strategy(limit: int | str, max_bounded_limit: int) -> Strategy:
    """Pick bounded paging for a numeric limit within range, hybrid otherwise."""
    if limit == LIMIT_ALL:
        return Strategy.HYBRID
    if isinstance(limit, int) and not isinstance(limit, bool) and 1 <= limit <= max_bounded_limit:
        return Strategy.BOUNDED
    if isinstance(limit, int) and limit > max_bounded_limit:
        return Strategy.HYBRID
    raise ValueError(f"Unsupported limit: {limit!r}")


def ensure_within_threshold(total_items: int, threshold: int) -> None:
    if total_items > threshold:
        raise ResultSetTooLargeError(total_items, threshold)


def total_pages(total_items: int, limit: int) -> int:
    return math.ceil(total_items / limit) if limit > 0 else 0


def slice_page(items: Sequence[dict[str, Any]], request: PageRequest) -> PageResult:
    """Cut one page out of a fully materialized, already ordered list.

    With ``limit="all"`` the whole list is returned as a single page.
    """
    total = len(items)
    if request.is_all:
        return PageResult(items=list(items), page=1, limit=total, total_items=total, total_pages=1)
    limit = int(request.limit)
    start = request.skip
    return PageResult(
        items=list(items[start : start + limit]),
        page=request.page,
        limit=limit,
        total_items=total,
        total_pages=total_pages(total, limit),
    )


class CollectionPager:
    """Pages a top-level collection, choosing bounded or hybrid mode per request."""

    def __init__(
        self,
        store: PageableStore,
        max_bounded_limit: int,
        memory_threshold: int,
        default_sort: SortSpec | None = DEFAULT_SORT,
    ):
        self.store = store
        self.max_bounded_limit = max_bounded_limit
        self.memory_threshold = memory_threshold
        self.default_sort = default_sort

    async def paginate(
        self,
        filters: Mapping[str, Any],
        request: PageRequest,
        sort: SortSpec | None = None,
    ) -> PageResult:
        """Return one page of matching documents.

        Args:
            filters: Equality filters in storage field names.
            request: Validated page and limit.
            sort: Explicit sort; the pager default applies when omitted.

        Returns:
            PageResult: Items plus page metadata.

        Raises:
            ResultSetTooLargeError: Hybrid mode and the count exceeds the memory threshold.
        """
        effective_sort = sort or self.default_sort
        strategy = select_strategy(request.limit, self.max_bounded_limit)

        if strategy is Strategy.BOUNDED:
            limit = int(request.limit)
            total, items = await asyncio.gather(
                self.store.count(filters),
                self.store.find(filters, sort=effective_sort, skip=request.skip, limit=limit),
            )
            return PageResult(
                items=items,
                page=request.page,
                limit=limit,
                total_items=total,
                total_pages=total_pages(total, limit),
            )

        # Hybrid: nothing is fetched unless the count fits in memory
        total = await self.store.count(filters)
        ensure_within_threshold(total, self.memory_threshold)
        docs = await self.store.find(filters)
        if effective_sort is not None:
            docs = sort_documents(docs, effective_sort, tiebreak=K_ID)
        logger.info("Hybrid page over %s documents (limit=%s, page=%s)", len(docs), request.limit, request.page)
        return slice_page(docs, request)
