"""Tour endpoints, including the reviews nested under a tour."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from tourhub.adapters import mongo_mapper
from tourhub.api.v1.params import ListQuery, list_query
from tourhub.core.constants import K_BOOKING_COUNT, K_LIKES, K_VIEWS, ROLE_ADMIN, ROLE_SELLER
from tourhub.core.logging import get_logger
from tourhub.core.security import ensure_roles
from tourhub.dependencies import IdentityDep, OptionalIdentityDep, ReviewServiceDep, TourServiceDep
from tourhub.schemas.common import ApiResponse, PageData
from tourhub.schemas.reviews import ReviewSubmitRequest, ReviewWriteData
from tourhub.schemas.tours import CounterData, RatingData, TourCreateRequest
from tourhub.services.filter_sort import TOUR_REVIEWS, TOURS
from tourhub.services.normalizer import to_jsonable

logger = get_logger(__name__)

router = APIRouter(prefix="/tours", tags=["tours"])

ToursQuery = Annotated[ListQuery, Depends(list_query(TOURS))]
TourReviewsQuery = Annotated[ListQuery, Depends(list_query(TOUR_REVIEWS))]


@router.get(
    "",
    response_model=ApiResponse[PageData],
    summary="List Tours",
    description="Paginated tours; only published tours unless the caller is an admin",
)
async def list_tours(
    params: ToursQuery,
    tour_service: TourServiceDep,
    identity: OptionalIdentityDep,
) -> ApiResponse[PageData]:
    result = await tour_service.list_tours(params.page, params.query, identity)
    return ApiResponse(message="Tours retrieved", data=PageData.from_result(result))


@router.post(
    "",
    response_model=ApiResponse[dict[str, Any]],
    summary="Create Tour",
    status_code=status.HTTP_201_CREATED,
)
async def create_tour(
    body: TourCreateRequest,
    tour_service: TourServiceDep,
    identity: IdentityDep,
) -> ApiResponse[dict[str, Any]]:
    ensure_roles(identity, ROLE_SELLER, ROLE_ADMIN)
    tour = await tour_service.create_tour(
        identity,
        title=body.title,
        slug=body.slug,
        tour_status=body.tourStatus,
        category=body.category,
        destination=body.destination,
        price=body.price,
        images=body.images,
    )
    return ApiResponse(message="Tour created", data=to_jsonable(mongo_mapper.tour_to_document(tour)))


@router.get("/{tour_id}", response_model=ApiResponse[dict[str, Any]], summary="Get Tour")
async def get_tour(tour_id: str, tour_service: TourServiceDep) -> ApiResponse[dict[str, Any]]:
    tour = await tour_service.get_tour(tour_id)
    return ApiResponse(message="Tour retrieved", data=to_jsonable(mongo_mapper.tour_to_document(tour)))


@router.patch(
    "/{tour_id}/views/increment",
    response_model=ApiResponse[CounterData],
    summary="Increment Tour Views",
)
async def increment_tour_views(tour_id: str, tour_service: TourServiceDep) -> ApiResponse[CounterData]:
    value = await tour_service.increment_views(tour_id)
    return ApiResponse(message="Tour view count incremented", data=CounterData(id=tour_id, field=K_VIEWS, value=value))


@router.patch(
    "/{tour_id}/bookings/increment",
    response_model=ApiResponse[CounterData],
    summary="Increment Tour Bookings",
)
async def increment_tour_bookings(
    tour_id: str,
    tour_service: TourServiceDep,
    identity: IdentityDep,
) -> ApiResponse[CounterData]:
    value = await tour_service.increment_bookings(tour_id)
    return ApiResponse(
        message="Tour booking count incremented",
        data=CounterData(id=tour_id, field=K_BOOKING_COUNT, value=value),
    )


@router.get("/{tour_id}/rating", response_model=ApiResponse[RatingData], summary="Get Tour Rating")
async def get_tour_rating(tour_id: str, tour_service: TourServiceDep) -> ApiResponse[RatingData]:
    aggregates = await tour_service.get_rating(tour_id)
    return ApiResponse(message="Tour rating retrieved", data=RatingData.from_aggregates(aggregates))


@router.get(
    "/{tour_id}/reviews",
    response_model=ApiResponse[PageData],
    summary="List Tour Reviews",
    description="Paginated reviews of one tour, newest first unless a sort is given",
)
async def list_tour_reviews(
    tour_id: str,
    params: TourReviewsQuery,
    review_service: ReviewServiceDep,
) -> ApiResponse[PageData]:
    result = await review_service.list_tour_reviews(tour_id, params.page, params.query)
    return ApiResponse(message="Reviews retrieved", data=PageData.from_result(result))


@router.post(
    "/{tour_id}/reviews",
    response_model=ApiResponse[ReviewWriteData],
    summary="Submit Review",
    description="Adds the caller's review, or overwrites it (back to pending) if one exists",
)
async def submit_review(
    tour_id: str,
    body: ReviewSubmitRequest,
    review_service: ReviewServiceDep,
    identity: IdentityDep,
) -> ApiResponse[ReviewWriteData]:
    result = await review_service.submit_review(tour_id, identity, body.rating, body.comment)
    aggregates = result.tour.aggregates
    message = (
        "Review added successfully. It will be visible after approval."
        if result.created
        else "Review updated successfully"
    )
    return ApiResponse(
        message=message,
        data=ReviewWriteData(
            review=to_jsonable(mongo_mapper.review_to_document(result.review)),
            **RatingData.from_aggregates(aggregates).model_dump(),
        ),
    )


@router.post(
    "/{tour_id}/reviews/{review_id}/views",
    response_model=ApiResponse[CounterData],
    summary="Increment Review Views",
)
async def increment_review_views(
    tour_id: str,
    review_id: str,
    review_service: ReviewServiceDep,
) -> ApiResponse[CounterData]:
    review = await review_service.view_review(tour_id, review_id)
    return ApiResponse(
        message="Review view count incremented",
        data=CounterData(id=review_id, field=K_VIEWS, value=review.views),
    )


@router.post(
    "/{tour_id}/reviews/{review_id}/replies/{reply_id}/views",
    response_model=ApiResponse[CounterData],
    summary="Increment Reply Views",
)
async def increment_reply_views(
    tour_id: str,
    review_id: str,
    reply_id: str,
    review_service: ReviewServiceDep,
) -> ApiResponse[CounterData]:
    location = await review_service.bump_reply(tour_id, review_id, reply_id, K_VIEWS)
    value = location.reply.views if location.reply else 0
    return ApiResponse(message="Reply view count incremented", data=CounterData(id=reply_id, field=K_VIEWS, value=value))


@router.post(
    "/{tour_id}/reviews/{review_id}/replies/{reply_id}/likes",
    response_model=ApiResponse[CounterData],
    summary="Like Reply",
)
async def like_reply(
    tour_id: str,
    review_id: str,
    reply_id: str,
    review_service: ReviewServiceDep,
    identity: IdentityDep,
) -> ApiResponse[CounterData]:
    location = await review_service.bump_reply(tour_id, review_id, reply_id, K_LIKES)
    value = location.reply.likes if location.reply else 0
    logger.info("Reply %s liked by %s", reply_id, identity.user_id)
    return ApiResponse(message="Reply liked successfully", data=CounterData(id=reply_id, field=K_LIKES, value=value))
