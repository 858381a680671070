"""Cross-tour review endpoints: listings, moderation, replies and likes."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from tourhub.adapters import mongo_mapper
from tourhub.api.v1.params import ListQuery, list_query
from tourhub.core.constants import ROLE_ADMIN, ROLE_SELLER
from tourhub.core.security import ensure_roles
from tourhub.dependencies import IdentityDep, ReviewServiceDep
from tourhub.schemas.common import ApiResponse, PageData
from tourhub.schemas.reviews import ReplyCreateRequest, ReviewStatusRequest, ReviewWriteData
from tourhub.schemas.tours import RatingData
from tourhub.services.filter_sort import REVIEWS
from tourhub.services.normalizer import to_jsonable

router = APIRouter(prefix="/reviews", tags=["reviews"])

ReviewsQuery = Annotated[ListQuery, Depends(list_query(REVIEWS))]


@router.get(
    "",
    response_model=ApiResponse[PageData],
    summary="List Reviews",
    description="Approved reviews across all tours, highest rated first unless a sort is given",
)
async def list_reviews(params: ReviewsQuery, review_service: ReviewServiceDep) -> ApiResponse[PageData]:
    result = await review_service.list_public(params.page, params.query)
    return ApiResponse(message="Reviews retrieved", data=PageData.from_result(result))


@router.get(
    "/pending",
    response_model=ApiResponse[PageData],
    summary="List Pending Reviews",
    description="Pending reviews on every tour for admins, on their own tours for sellers",
)
async def list_pending_reviews(
    params: ReviewsQuery,
    review_service: ReviewServiceDep,
    identity: IdentityDep,
) -> ApiResponse[PageData]:
    ensure_roles(identity, ROLE_ADMIN, ROLE_SELLER)
    result = await review_service.list_pending(identity, params.page, params.query)
    return ApiResponse(message="Pending reviews retrieved", data=PageData.from_result(result))


@router.get(
    "/manage",
    response_model=ApiResponse[PageData],
    summary="List Reviews For Moderation",
    description="Reviews in any status (or the requested one) on the tours the caller manages",
)
async def list_managed_reviews(
    params: ReviewsQuery,
    review_service: ReviewServiceDep,
    identity: IdentityDep,
) -> ApiResponse[PageData]:
    ensure_roles(identity, ROLE_ADMIN, ROLE_SELLER)
    result = await review_service.list_managed(identity, params.page, params.query)
    return ApiResponse(message="Reviews retrieved", data=PageData.from_result(result))


@router.get("/{review_id}", response_model=ApiResponse[dict[str, Any]], summary="Get Review")
async def get_review(review_id: str, review_service: ReviewServiceDep) -> ApiResponse[dict[str, Any]]:
    record = await review_service.get_review(review_id)
    return ApiResponse(message="Review retrieved", data=to_jsonable(record))


@router.patch(
    "/{review_id}/status",
    response_model=ApiResponse[ReviewWriteData],
    summary="Update Review Status",
)
async def update_review_status(
    review_id: str,
    body: ReviewStatusRequest,
    review_service: ReviewServiceDep,
    identity: IdentityDep,
) -> ApiResponse[ReviewWriteData]:
    ensure_roles(identity, ROLE_ADMIN, ROLE_SELLER)
    result = await review_service.update_status(review_id, identity, body.status)
    return ApiResponse(
        message=f"Review {body.status}",
        data=ReviewWriteData(
            review=to_jsonable(mongo_mapper.review_to_document(result.review)),
            **RatingData.from_aggregates(result.tour.aggregates).model_dump(),
        ),
    )


@router.delete("/{review_id}", response_model=ApiResponse[RatingData], summary="Delete Review")
async def delete_review(
    review_id: str,
    review_service: ReviewServiceDep,
    identity: IdentityDep,
) -> ApiResponse[RatingData]:
    tour = await review_service.delete_review(review_id, identity)
    return ApiResponse(message="Review deleted", data=RatingData.from_aggregates(tour.aggregates))


@router.post(
    "/{review_id}/replies",
    response_model=ApiResponse[dict[str, Any]],
    summary="Reply To Review",
    status_code=status.HTTP_201_CREATED,
)
async def add_reply(
    review_id: str,
    body: ReplyCreateRequest,
    review_service: ReviewServiceDep,
    identity: IdentityDep,
) -> ApiResponse[dict[str, Any]]:
    reply = await review_service.add_reply(review_id, identity, body.comment)
    return ApiResponse(message="Reply added", data=to_jsonable(mongo_mapper.reply_to_document(reply)))


@router.post("/{review_id}/likes", response_model=ApiResponse[None], summary="Like Review")
async def like_review(
    review_id: str,
    review_service: ReviewServiceDep,
    identity: IdentityDep,
) -> ApiResponse[None]:
    await review_service.like_review(review_id)
    return ApiResponse(message="Review liked successfully")
