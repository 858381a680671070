"""Response envelopes shared by every endpoint."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from tourhub.core.models import PageResult
from tourhub.services.normalizer import page_envelope

T = TypeVar("T")


class Pagination(BaseModel):
    """Page metadata returned with every list."""

    page: int = Field(..., description="Current page, 1-based")
    limit: int = Field(..., description="Page size; equals totalItems when limit=all was requested")
    totalItems: int = Field(..., description="Number of items matching the query")
    totalPages: int = Field(..., description="Number of pages at this page size")


class PageData(BaseModel):
    """A page of normalized documents."""

    items: list[dict[str, Any]] = Field(..., description="Normalized documents")
    pagination: Pagination

    @classmethod
    def from_result(cls, result: PageResult) -> "PageData":
        return cls.model_validate(page_envelope(result))


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope."""

    success: bool = Field(True, description="Always true on success")
    message: str = Field("", description="Human readable summary")
    data: T | None = Field(None, description="Payload")


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Machine readable error code")
    message: str = Field(..., description="Human readable message")
    details: Any = Field(None, description="Structured context, when available")
    timestamp: str = Field(..., description="ISO 8601 time of the failure")
    path: str = Field(..., description="Request path")


class ErrorResponse(BaseModel):
    """Failure envelope."""

    error: ErrorDetail
