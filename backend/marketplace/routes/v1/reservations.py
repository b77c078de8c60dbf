# backend/marketplace/routes/v1/reservations.py
"""
Reservation routes - API v1

Rentals and test drives under /api/v1/reservations.
All business logic delegated to ReservationService.

Endpoints:
    POST /                              → Request a rental or test drive (customer)
    GET /                               → My reservations (as customer, or as owner)
    GET /{reservation_id}               → Reservation details (parties, admin)
    POST /{reservation_id}/transition   → Lifecycle move (confirm/reject/activate/complete)
    POST /{reservation_id}/cancel       → Cancel with notice-based refund
    POST /{reservation_id}/reschedule   → Move to a new window (back to pending)
    POST /{reservation_id}/feedback     → Test drive feedback (customer)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_current_actor, get_reservation_service
from ...core.actor import Actor
from ...core.exceptions import DomainException
from ...schemas.reservation import (
    ReservationCancelRequest,
    ReservationCreate,
    ReservationRescheduleRequest,
    ReservationResponse,
    ReservationTransitionRequest,
    TestDriveFeedbackRequest,
)
from ...services.reservation_service import ReservationService
from .common import handle_domain_exception, ulid_path

logger = logging.getLogger(__name__)

# V1 router - no prefix here, added when mounting
router = APIRouter(tags=["reservations-v1"])


@router.post(
    "",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Car or negotiation not found"},
        409: {"description": "Window overlaps an existing reservation"},
        422: {"description": "Car has no rate for the requested rate type"},
    },
)
def create_reservation(
    data: ReservationCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    """
    Request a rental or a test drive.

    The reservation starts out pending; the car owner confirms it. A 409
    carries the conflicting reservation id and the next free moment.
    """
    try:
        reservation = service.create_reservation(actor, data)
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[ReservationResponse])
def list_reservations(
    as_owner: bool = Query(False, description="List reservations on my cars instead"),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> List[ReservationResponse]:
    reservations = service.list_reservations(actor, as_owner=as_owner)
    return [ReservationResponse.model_validate(r) for r in reservations]


@router.get(
    "/{reservation_id}",
    response_model=ReservationResponse,
    responses={404: {"description": "Reservation not found"}},
)
def get_reservation(
    reservation_id: str = ulid_path("Reservation ULID"),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        return ReservationResponse.model_validate(service.get_reservation(actor, reservation_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{reservation_id}/transition",
    response_model=ReservationResponse,
    responses={409: {"description": "Move not allowed from the current status"}},
)
def transition_reservation(
    reservation_id: str = ulid_path("Reservation ULID"),
    payload: ReservationTransitionRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    """Apply one lifecycle move; the caller's role on the reservation decides what is allowed."""
    try:
        reservation = service.transition_reservation(
            actor, reservation_id, payload.status, note=payload.note
        )
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: str = ulid_path("Reservation ULID"),
    payload: Optional[ReservationCancelRequest] = Body(None),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reason = payload.reason if payload else None
        reservation = service.cancel_reservation(actor, reservation_id, reason=reason)
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{reservation_id}/reschedule", response_model=ReservationResponse)
def reschedule_reservation(
    reservation_id: str = ulid_path("Reservation ULID"),
    payload: ReservationRescheduleRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = service.reschedule_reservation(
            actor,
            reservation_id,
            payload.start_at,
            end_at=payload.end_at,
            reason=payload.reason,
        )
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{reservation_id}/feedback", response_model=ReservationResponse)
def submit_test_drive_feedback(
    reservation_id: str = ulid_path("Reservation ULID"),
    payload: TestDriveFeedbackRequest = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = service.submit_feedback(
            actor,
            reservation_id,
            payload.rating,
            comments=payload.comments,
            interested_in_purchase=payload.interested_in_purchase,
        )
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)
