"""Whitelist validation of list query parameters."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from tourhub.core.constants import (
    K_AVERAGE_RATING,
    K_CREATED_AT,
    K_LIKES,
    K_RATING,
    K_STATUS,
    K_TOUR_STATUS,
    K_VIEWS,
    LIMIT_ALL,
)
from tourhub.core.exceptions import InvalidSortFieldError, ValidationException
from tourhub.core.models import PageRequest, SortSpec

# Query keys that steer paging and sorting rather than filtering.
RESERVED_KEYS: frozenset[str] = frozenset({"page", "limit", "sort", "order"})

# Largest offset a database skip can carry (signed 64-bit).
MAX_SKIP: int = 2**63 - 1


@dataclass(frozen=True)
class ResourceQuerySpec:
    """Filter and sort whitelist for one listable resource.

    ``field_map`` translates public parameter names into storage field names;
    names absent from it are used as-is.
    """

    name: str
    allowed_filters: frozenset[str]
    allowed_sorts: tuple[str, ...]
    field_map: Mapping[str, str] = field(default_factory=dict)

    def storage_field(self, public_name: str) -> str:
        return self.field_map.get(public_name, public_name)


@dataclass(frozen=True)
class ValidatedQuery:
    """Filters and sort expressed in storage field names."""

    filters: dict[str, Any]
    sort: SortSpec | None = None


TOURS = ResourceQuerySpec(
    name="tours",
    allowed_filters=frozenset({"status", "category", "destination"}),
    allowed_sorts=("createdAt", "price", "title", "views", "rating"),
    field_map={"status": K_TOUR_STATUS, "rating": K_AVERAGE_RATING},
)

USERS = ResourceQuerySpec(
    name="users",
    allowed_filters=frozenset({"roles", "sellerStatus"}),
    allowed_sorts=("createdAt", "name", "email"),
)

REVIEWS = ResourceQuerySpec(
    name="reviews",
    allowed_filters=frozenset({K_STATUS}),
    allowed_sorts=(K_CREATED_AT, K_RATING, K_LIKES, K_VIEWS),
)

TOUR_REVIEWS = ResourceQuerySpec(
    name="tour_reviews",
    allowed_filters=frozenset({K_STATUS}),
    allowed_sorts=(K_CREATED_AT, K_RATING),
)


def validate_filter_sort(spec: ResourceQuerySpec, raw_query: Mapping[str, Any]) -> ValidatedQuery:
    """Split raw query parameters into whitelisted filters and a sort spec.

    Unknown filter keys and empty values are dropped silently. An unknown sort
    field is rejected, as is an ``order`` other than ``asc``/``desc``.

    Args:
        spec: Whitelist of the resource being listed.
        raw_query: Query parameters as received.

    Returns:
        ValidatedQuery: Filters keyed by storage field name, plus the sort.

    Raises:
        InvalidSortFieldError: ``sort`` names a field outside the whitelist.
        ValidationException: ``order`` is not ``asc`` or ``desc``.
    """
    filters: dict[str, Any] = {}
    for key, value in raw_query.items():
        if key in RESERVED_KEYS or key not in spec.allowed_filters:
            continue
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        filters[spec.storage_field(key)] = value

    order = _parse_order(raw_query.get("order"))

    sort_field = raw_query.get("sort")
    if sort_field is None or sort_field == "":
        return ValidatedQuery(filters=filters)
    if sort_field not in spec.allowed_sorts:
        raise InvalidSortFieldError(str(sort_field), list(spec.allowed_sorts))
    return ValidatedQuery(filters=filters, sort=SortSpec(spec.storage_field(sort_field), order))


def _parse_order(raw: Any) -> str:
    if raw is None or raw == "":
        return "asc"
    order = str(raw).strip().lower()
    if order not in ("asc", "desc"):
        raise ValidationException(f"order must be 'asc' or 'desc', got '{raw}'", field="order")
    return order


def parse_page_request(
    page: str | int | None,
    limit: str | int | None,
    max_limit: int,
    default_limit: int = 10,
) -> PageRequest:
    """Validate ``page``/``limit`` query values.

    ``limit`` accepts a positive integer up to ``max_limit`` or the
    case-insensitive keyword ``all``. Out-of-range values are rejected, never
    clamped.
    """
    page_number = 1 if page is None or page == "" else _parse_positive_int(page, "page")

    if isinstance(limit, str) and limit.strip().lower() == LIMIT_ALL:
        return PageRequest(page=page_number, limit=LIMIT_ALL)

    if limit is None or limit == "":
        size = default_limit
    else:
        size = _parse_positive_int(limit, "limit")
        if size > max_limit:
            raise ValidationException(
                f"limit must be between 1 and {max_limit} or '{LIMIT_ALL}', got {size}",
                field="limit",
            )
    if (page_number - 1) * size > MAX_SKIP:
        raise ValidationException(f"page {page_number} is beyond the last addressable page", field="page")
    return PageRequest(page=page_number, limit=size)


def _parse_positive_int(value: str | int, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationException(f"{name} must be a positive integer", field=name)
    if isinstance(value, int):
        number = value
    else:
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise ValidationException(f"{name} must be a positive integer, got '{value}'", field=name)
        try:
            number = int(text)
        except ValueError:
            raise ValidationException(f"{name} is out of range", field=name) from None
    if number < 1:
        raise ValidationException(f"{name} must be a positive integer, got {number}", field=name)
    return number
