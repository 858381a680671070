"""Review request and response schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from tourhub.schemas.tours import RatingData


class ReviewSubmitRequest(BaseModel):
    """Request model for submitting (or overwriting) a review."""

    rating: float = Field(..., description="Rating from 0.5 to 5, rounded to the nearest half", ge=0.5, le=5)
    comment: str = Field("", description="Review text", max_length=5000)


class ReviewStatusRequest(BaseModel):
    """Request model for moderating a review."""

    status: Literal["pending", "approved", "rejected"] = Field(..., description="New review status")


class ReplyCreateRequest(BaseModel):
    """Request model for replying to a review."""

    comment: str = Field(..., description="Reply text", min_length=1, max_length=5000)


class ReviewWriteData(RatingData):
    """A written review together with the tour's refreshed rating summary."""

    review: dict[str, Any] = Field(..., description="The review as stored")
