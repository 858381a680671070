"""Helpers to translate between domain models and MongoDB documents."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, cast

from bson import ObjectId
from bson.errors import InvalidId

from tourhub.core.constants import (
    K_APPROVED_REVIEW_COUNT,
    K_AUTHOR,
    K_AVERAGE_RATING,
    K_BOOKING_COUNT,
    K_CREATED_AT,
    K_ID,
    K_LIKES,
    K_RATING,
    K_REPLIES,
    K_REVIEW_COUNT,
    K_REVIEWS,
    K_STATUS,
    K_TOUR_ID,
    K_TOUR_IMAGE,
    K_TOUR_SLUG,
    K_TOUR_STATUS,
    K_TOUR_TITLE,
    K_USER,
    K_VERSION,
    K_VIEWS,
    REVIEW_STATUSES,
)
from tourhub.core.models import DerivedAggregates, Reply, Review, Tour

# Domain attribute -> stored key for the review fields a mutation may overwrite.
REVIEW_FIELD_KEYS: dict[str, str] = {
    "rating": K_RATING,
    "comment": "comment",
    "status": K_STATUS,
    "created_at": K_CREATED_AT,
}


def new_id() -> str:
    return str(ObjectId())


def as_object_id(value: str | ObjectId) -> ObjectId | None:
    """Parse an identifier, returning ``None`` when it cannot name a stored document."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def reply_to_document(reply: Reply) -> dict[str, Any]:
    return {
        K_ID: ObjectId(reply.id),
        K_USER: reply.user,
        "comment": reply.comment,
        K_VIEWS: reply.views,
        K_LIKES: reply.likes,
        K_CREATED_AT: reply.created_at,
    }


def review_to_document(review: Review) -> dict[str, Any]:
    return {
        K_ID: ObjectId(review.id),
        K_USER: review.user,
        K_RATING: review.rating,
        "comment": review.comment,
        K_STATUS: review.status,
        K_VIEWS: review.views,
        K_LIKES: review.likes,
        K_CREATED_AT: review.created_at,
        K_REPLIES: [reply_to_document(r) for r in review.replies],
    }


def aggregates_to_fields(aggregates: DerivedAggregates) -> dict[str, Any]:
    return {
        K_AVERAGE_RATING: aggregates.average_rating,
        K_REVIEW_COUNT: aggregates.review_count,
        K_APPROVED_REVIEW_COUNT: aggregates.approved_review_count,
    }


def tour_to_document(tour: Tour) -> dict[str, Any]:
    """Convert a tour into its stored document, reviews embedded."""
    doc: dict[str, Any] = {
        K_ID: ObjectId(tour.id),
        "title": tour.title,
        "slug": tour.slug,
        K_AUTHOR: tour.author,
        K_TOUR_STATUS: tour.tour_status,
        "category": tour.category,
        "destination": tour.destination,
        "price": tour.price,
        "images": list(tour.images),
        K_VIEWS: tour.views,
        K_BOOKING_COUNT: tour.booking_count,
        K_CREATED_AT: tour.created_at,
        "updatedAt": tour.updated_at,
        K_REVIEWS: [review_to_document(r) for r in tour.reviews],
        K_VERSION: tour.version,
    }
    doc.update(aggregates_to_fields(tour.aggregates))
    return doc


def review_changes_to_fields(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Map domain field names of a review overwrite onto stored keys."""
    unknown = set(changes) - set(REVIEW_FIELD_KEYS)
    if unknown:
        raise ValueError(f"Unsupported review fields: {sorted(unknown)}")
    return {REVIEW_FIELD_KEYS[name]: value for name, value in changes.items()}


def document_to_reply(doc: Mapping[str, Any]) -> Reply:
    return Reply(
        id=_stringify_id(doc.get(K_ID)),
        user=str(doc.get(K_USER) or ""),
        comment=cast(str | None, doc.get("comment")) or "",
        views=_coerce_int(doc.get(K_VIEWS)),
        likes=_coerce_int(doc.get(K_LIKES)),
        created_at=_coerce_datetime(doc.get(K_CREATED_AT)),
    )


def document_to_review(doc: Mapping[str, Any]) -> Review:
    """Convert an embedded review document, rejecting shapes the service cannot reason about."""
    status = doc.get(K_STATUS)
    if status not in REVIEW_STATUSES:
        raise ValueError(f"Review {doc.get(K_ID)} has unknown status {status!r}")
    rating = doc.get(K_RATING)
    if not isinstance(rating, (int, float)) or isinstance(rating, bool):
        raise ValueError(f"Review {doc.get(K_ID)} has non-numeric rating {rating!r}")
    return Review(
        id=_stringify_id(doc.get(K_ID)),
        user=str(doc.get(K_USER) or ""),
        rating=float(rating),
        comment=cast(str | None, doc.get("comment")) or "",
        status=cast(str, status),
        views=_coerce_int(doc.get(K_VIEWS)),
        likes=_coerce_int(doc.get(K_LIKES)),
        created_at=_coerce_datetime(doc.get(K_CREATED_AT)),
        replies=[document_to_reply(r) for r in doc.get(K_REPLIES) or []],
    )


def document_to_tour(doc: Mapping[str, Any]) -> Tour:
    """Convert a stored tour document into a Tour model."""
    images = doc.get("images") or []
    return Tour(
        id=_stringify_id(doc.get(K_ID)),
        title=cast(str | None, doc.get("title")) or "",
        slug=cast(str | None, doc.get("slug")) or "",
        author=str(doc.get(K_AUTHOR) or ""),
        tour_status=cast(str | None, doc.get(K_TOUR_STATUS)) or "Draft",
        category=cast(str | None, doc.get("category")),
        destination=cast(str | None, doc.get("destination")),
        price=float(doc.get("price") or 0),
        images=[str(i) for i in images],
        views=_coerce_int(doc.get(K_VIEWS)),
        booking_count=_coerce_int(doc.get(K_BOOKING_COUNT)),
        created_at=_coerce_datetime(doc.get(K_CREATED_AT)),
        updated_at=_coerce_datetime(doc.get("updatedAt")),
        reviews=[document_to_review(r) for r in doc.get(K_REVIEWS) or []],
        aggregates=DerivedAggregates(
            average_rating=float(doc.get(K_AVERAGE_RATING) or 0),
            review_count=_coerce_int(doc.get(K_REVIEW_COUNT)),
            approved_review_count=_coerce_int(doc.get(K_APPROVED_REVIEW_COUNT)),
        ),
        version=_coerce_int(doc.get(K_VERSION)),
    )


def decorate_review(review: Review, tour: Tour) -> dict[str, Any]:
    """Flattened review record carrying its parent tour's context."""
    record = review_to_document(review)
    record[K_TOUR_ID] = tour.id
    record[K_TOUR_TITLE] = tour.title
    record[K_TOUR_SLUG] = tour.slug
    record[K_TOUR_IMAGE] = tour.cover_image
    return record


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def _coerce_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        # Mongo hands back naive UTC unless the client is tz aware
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.fromtimestamp(0, UTC)


def _stringify_id(value: Any) -> str:
    return str(value) if value is not None else ""
