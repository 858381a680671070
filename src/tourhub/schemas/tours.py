"""Tour request and response schemas."""

from pydantic import BaseModel, Field

from tourhub.core.models import DerivedAggregates


class TourCreateRequest(BaseModel):
    """Request model for creating a tour."""

    title: str = Field(..., description="Tour title", min_length=1)
    slug: str = Field("", description="URL slug; derived from the title when empty")
    tourStatus: str = Field("Draft", description="Draft, Published or Archived")
    category: str | None = Field(None, description="Category name")
    destination: str | None = Field(None, description="Destination name")
    price: float = Field(0.0, description="Base price", ge=0)
    images: list[str] = Field(default_factory=list, description="Image URLs; the first is the cover")


class RatingData(BaseModel):
    """Stored rating summary of a tour."""

    averageRating: float = Field(..., description="Mean rating of approved reviews, one decimal")
    reviewCount: int = Field(..., description="Number of reviews in any status")
    approvedReviewCount: int = Field(..., description="Number of approved reviews")

    @classmethod
    def from_aggregates(cls, aggregates: DerivedAggregates) -> "RatingData":
        return cls(
            averageRating=aggregates.average_rating,
            reviewCount=aggregates.review_count,
            approvedReviewCount=aggregates.approved_review_count,
        )


class CounterData(BaseModel):
    """Value of a counter after an atomic increment."""

    id: str = Field(..., description="Identifier of the incremented document or element")
    field: str = Field(..., description="Counter name")
    value: int = Field(..., description="Counter value after the increment")

