"""Central constants shared across the listing and review stack."""

from typing import Final

# Storage collections.
TOURS_COLLECTION: Final[str] = "tours"
USERS_COLLECTION: Final[str] = "users"

# Document keys.
K_ID: Final[str] = "_id"
K_VERSION: Final[str] = "__v"
K_REVIEWS: Final[str] = "reviews"
K_REPLIES: Final[str] = "replies"
K_AUTHOR: Final[str] = "author"
K_USER: Final[str] = "user"
K_STATUS: Final[str] = "status"
K_RATING: Final[str] = "rating"
K_CREATED_AT: Final[str] = "createdAt"
K_VIEWS: Final[str] = "views"
K_LIKES: Final[str] = "likes"
K_BOOKING_COUNT: Final[str] = "bookingCount"
K_TOUR_STATUS: Final[str] = "tourStatus"

# Derived aggregate keys stored on the tour.
K_AVERAGE_RATING: Final[str] = "averageRating"
K_REVIEW_COUNT: Final[str] = "reviewCount"
K_APPROVED_REVIEW_COUNT: Final[str] = "approvedReviewCount"

# Parent context attached to flattened reviews.
K_TOUR_ID: Final[str] = "tourId"
K_TOUR_TITLE: Final[str] = "tourTitle"
K_TOUR_SLUG: Final[str] = "tourSlug"
K_TOUR_IMAGE: Final[str] = "tourImage"

# Review lifecycle.
REVIEW_PENDING: Final[str] = "pending"
REVIEW_APPROVED: Final[str] = "approved"
REVIEW_REJECTED: Final[str] = "rejected"
REVIEW_STATUSES: Final[tuple[str, ...]] = (REVIEW_PENDING, REVIEW_APPROVED, REVIEW_REJECTED)

RATING_MIN: Final[float] = 0.5
RATING_MAX: Final[float] = 5.0

# Tour lifecycle.
TOUR_PUBLISHED: Final[str] = "Published"
TOUR_STATUSES: Final[tuple[str, ...]] = ("Draft", TOUR_PUBLISHED, "Archived")

# Counters that may be incremented in place.
REVIEW_COUNTERS: Final[frozenset[str]] = frozenset({K_VIEWS, K_LIKES})
TOUR_COUNTERS: Final[frozenset[str]] = frozenset({K_VIEWS, K_BOOKING_COUNT})

# Roles handed over by the authentication collaborator.
ROLE_ADMIN: Final[str] = "admin"
ROLE_SELLER: Final[str] = "seller"

# Sentinel limit requesting every matching item.
LIMIT_ALL: Final[str] = "all"

# Error codes.
E_VALIDATION: Final[str] = "VALIDATION_ERROR"
E_INVALID_SORT_FIELD: Final[str] = "INVALID_SORT_FIELD"
E_RESULT_SET_TOO_LARGE: Final[str] = "RESULT_SET_TOO_LARGE"
E_NOT_FOUND: Final[str] = "NOT_FOUND"
E_TOUR_NOT_FOUND: Final[str] = "TOUR_NOT_FOUND"
E_REVIEW_NOT_FOUND: Final[str] = "REVIEW_NOT_FOUND"
E_REPLY_NOT_FOUND: Final[str] = "REPLY_NOT_FOUND"
E_FORBIDDEN: Final[str] = "FORBIDDEN"
E_AUTHENTICATION_REQUIRED: Final[str] = "AUTHENTICATION_REQUIRED"
E_CONCURRENT_MODIFICATION: Final[str] = "CONCURRENT_MODIFICATION"
E_INTERNAL: Final[str] = "INTERNAL_SERVER_ERROR"
