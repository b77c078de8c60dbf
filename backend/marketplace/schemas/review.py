"""Review schemas."""

from typing import Optional

from pydantic import Field

from ..core.enums import ReviewTargetType
from .base import Money, ResponseModel, StrictRequestModel, UtcDatetime


class ReviewCreate(StrictRequestModel):
    target_type: ReviewTargetType
    target_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(ResponseModel):
    id: str
    author_id: str
    target_type: str
    target_id: str
    rating: int
    comment: Optional[str] = None
    created_at: UtcDatetime
    target_rating_average: Optional[Money] = None
    target_rating_count: Optional[int] = None
