"""Shared list query parameters for paginated endpoints."""

from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Query, Request

from tourhub.core.models import PageRequest
from tourhub.dependencies import SettingsDep
from tourhub.services.filter_sort import (
    ResourceQuerySpec,
    ValidatedQuery,
    parse_page_request,
    validate_filter_sort,
)


@dataclass(frozen=True)
class ListQuery:
    """Validated paging plus whitelisted filters and sort for one request."""

    page: PageRequest
    query: ValidatedQuery


def list_query(spec: ResourceQuerySpec) -> Callable[..., ListQuery]:
    """Build a dependency that validates list parameters against ``spec``.

    ``page`` and ``limit`` are taken as strings so that ``limit=all`` and
    malformed values reach our own validation and error codes.
    """

    def dependency(
        request: Request,
        settings: SettingsDep,
        page: str | None = Query(None, description="Page number, starting at 1"),
        limit: str | None = Query(None, description="Page size, or 'all' for every matching item"),
        sort: str | None = Query(None, description=f"One of: {', '.join(spec.allowed_sorts)}"),
        order: str | None = Query(None, description="asc or desc"),
    ) -> ListQuery:
        page_request = parse_page_request(
            page,
            limit,
            max_limit=settings.pagination_max_limit,
            default_limit=settings.pagination_default_limit,
        )
        raw = dict(request.query_params)
        return ListQuery(page=page_request, query=validate_filter_sort(spec, raw))

    return dependency
