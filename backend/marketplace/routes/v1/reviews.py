# backend/marketplace/routes/v1/reviews.py
"""
Review routes - API v1

Endpoints:
    POST /    → Review a driver, car or product
"""

from fastapi import APIRouter, Body, Depends, status

from ...api.dependencies import get_current_actor, get_review_service
from ...core.actor import Actor
from ...core.exceptions import DomainException
from ...schemas.review import ReviewCreate, ReviewResponse
from ...services.review_service import ReviewService, make_target
from .common import handle_domain_exception

router = APIRouter(tags=["reviews-v1"])


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "No qualifying history with the target"},
        409: {"description": "Already reviewed"},
    },
)
def submit_review(
    data: ReviewCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    """Submit a review; the response carries the target's updated average."""
    try:
        review, rated = service.submit_review(
            actor, make_target(data.target_type, data.target_id), data.rating, data.comment
        )
        return ReviewResponse.model_validate(review).model_copy(
            update={
                "target_rating_average": rated.rating_average,
                "target_rating_count": rated.rating_count,
            }
        )
    except DomainException as e:
        handle_domain_exception(e)
