"""Admin listing of users."""

from __future__ import annotations

from tourhub.config import Settings
from tourhub.core.models import PageRequest, PageResult
from tourhub.repositories.base import UserStore
from tourhub.services.filter_sort import ValidatedQuery
from tourhub.services.pagination import CollectionPager


class UserService:
    def __init__(self, settings: Settings, store: UserStore):
        self.settings = settings
        self.store = store
        self.pager = CollectionPager(
            store,
            max_bounded_limit=settings.pagination_max_limit,
            memory_threshold=settings.pagination_memory_threshold,
        )

    async def list_users(self, request: PageRequest, query: ValidatedQuery) -> PageResult:
        return await self.pager.paginate(query.filters, request, query.sort)
