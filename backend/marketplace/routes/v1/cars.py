# backend/marketplace/routes/v1/cars.py
"""
Car routes - API v1

Schedules, availability and documents under /api/v1/cars.

Endpoints:
    GET /documents/expiry-stats              → Document expiry buckets (admin)
    POST /documents/check-expiry             → Run the expiry sweep now (admin)
    GET /{car_id}                            → Car details
    GET /{car_id}/slots?day=YYYY-MM-DD       → Free slots on a local day
    GET /{car_id}/calendar?start=..&end=..   → Booked windows and free gaps
    PATCH /{car_id}/availability             → Manual availability override (owner, admin)
    GET /{car_id}/documents                  → Documents on file (owner, admin)
    POST /{car_id}/documents                 → Upload a document (owner, admin)
    POST /{car_id}/documents/{id}/verify     → Approve or reject (admin)
    POST /{car_id}/documents/{id}/remind     → Manual renewal reminder (admin)
    DELETE /{car_id}/documents/{id}          → Remove a document (owner, admin)
"""

from datetime import date, datetime
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...api.dependencies import (
    get_availability_service,
    get_car_service,
    get_current_actor,
    require_admin,
)
from ...core.actor import Actor
from ...core.exceptions import DomainException, ForbiddenException
from ...schemas.car import (
    AvailabilityUpdate,
    CarDocumentCreate,
    CarDocumentResponse,
    CarDocumentVerify,
    CarResponse,
    ExpirySweepResponse,
    ExpiryStatsResponse,
)
from ...schemas.reservation import (
    BookedWindowResponse,
    CalendarResponse,
    GapResponse,
    SlotListResponse,
    SlotResponse,
)
from ...services.availability import AvailabilityService
from ...services.car_service import CarService
from .common import handle_domain_exception, ulid_path

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cars-v1"])


# =============================================================================
# Static routes first (before dynamic routes with path parameters)
# =============================================================================


@router.get("/documents/expiry-stats", response_model=ExpiryStatsResponse)
def get_document_expiry_stats(
    _: Actor = Depends(require_admin),
    service: CarService = Depends(get_car_service),
) -> ExpiryStatsResponse:
    stats = service.expiry_stats()
    return ExpiryStatsResponse(
        expired=stats.expired,
        expiring_in_7_days=stats.expiring_in_7_days,
        expiring_in_30_days=stats.expiring_in_30_days,
        valid=stats.valid,
        total=stats.total,
    )


@router.post("/documents/check-expiry", response_model=ExpirySweepResponse)
def run_document_expiry_check(
    _: Actor = Depends(require_admin),
    service: CarService = Depends(get_car_service),
) -> ExpirySweepResponse:
    """Run the daily sweep on demand. Reminders already sent are not repeated."""
    result = service.check_expiring_documents()
    return ExpirySweepResponse(
        reminders_sent=result.reminders_sent, documents_expired=result.documents_expired
    )


# =============================================================================
# Dynamic routes
# =============================================================================


@router.get("/{car_id}", response_model=CarResponse)
def get_car(
    car_id: str = ulid_path("Car ULID"),
    service: CarService = Depends(get_car_service),
) -> CarResponse:
    try:
        return CarResponse.model_validate(service.get_car(car_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{car_id}/slots", response_model=SlotListResponse)
def get_available_slots(
    car_id: str = ulid_path("Car ULID"),
    day: date = Query(..., description="Local calendar day in the car's timezone"),
    service: AvailabilityService = Depends(get_availability_service),
) -> SlotListResponse:
    try:
        slots = service.available_slots(car_id, day)
        return SlotListResponse(
            car_id=car_id,
            day=day,
            slots=[SlotResponse(**slot.to_dict()) for slot in slots],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{car_id}/calendar", response_model=CalendarResponse)
def get_car_calendar(
    car_id: str = ulid_path("Car ULID"),
    start: datetime = Query(..., description="Range start (ISO-8601)"),
    end: datetime = Query(..., description="Range end (ISO-8601)"),
    service: AvailabilityService = Depends(get_availability_service),
) -> CalendarResponse:
    try:
        view = service.get_availability(car_id, start, end)
        return CalendarResponse(
            car_id=view.car_id,
            range_start=view.range_start,
            range_end=view.range_end,
            booked=[
                BookedWindowResponse(
                    reservation_id=r.id,
                    kind=r.kind,
                    status=r.status,
                    start=r.start_at,
                    end=r.end_at,
                )
                for r in view.booked
            ],
            free=[GapResponse(start=gap.start, end=gap.end) for gap in view.free],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{car_id}/availability", response_model=CarResponse)
def update_car_availability(
    car_id: str = ulid_path("Car ULID"),
    payload: AvailabilityUpdate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: CarService = Depends(get_car_service),
) -> CarResponse:
    try:
        return CarResponse.model_validate(service.set_availability(actor, car_id, payload.status))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{car_id}/documents", response_model=List[CarDocumentResponse])
def list_car_documents(
    car_id: str = ulid_path("Car ULID"),
    actor: Actor = Depends(get_current_actor),
    service: CarService = Depends(get_car_service),
) -> List[CarDocumentResponse]:
    try:
        car = service.get_car(car_id)
        if not actor.is_admin and car.owner_id != actor.id:
            raise ForbiddenException("Only the car owner can view its documents")
        return [CarDocumentResponse.model_validate(doc) for doc in car.documents.values()]
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{car_id}/documents",
    response_model=CarDocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
def upload_car_document(
    car_id: str = ulid_path("Car ULID"),
    payload: CarDocumentCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: CarService = Depends(get_car_service),
) -> CarDocumentResponse:
    try:
        return CarDocumentResponse.model_validate(service.add_document(actor, car_id, payload))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{car_id}/documents/{document_id}/verify", response_model=CarDocumentResponse)
def verify_car_document(
    car_id: str = ulid_path("Car ULID"),
    document_id: str = ulid_path("Document ULID"),
    payload: CarDocumentVerify = Body(...),
    actor: Actor = Depends(require_admin),
    service: CarService = Depends(get_car_service),
) -> CarDocumentResponse:
    try:
        document = service.verify_document(
            actor, car_id, document_id, payload.approve, payload.rejection_reason
        )
        return CarDocumentResponse.model_validate(document)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{car_id}/documents/{document_id}/remind", response_model=CarDocumentResponse)
def remind_car_document(
    car_id: str = ulid_path("Car ULID"),
    document_id: str = ulid_path("Document ULID"),
    actor: Actor = Depends(require_admin),
    service: CarService = Depends(get_car_service),
) -> CarDocumentResponse:
    try:
        document = service.send_document_reminder(actor, car_id, document_id)
        return CarDocumentResponse.model_validate(document)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete(
    "/{car_id}/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_car_document(
    car_id: str = ulid_path("Car ULID"),
    document_id: str = ulid_path("Document ULID"),
    actor: Actor = Depends(get_current_actor),
    service: CarService = Depends(get_car_service),
) -> Response:
    try:
        service.remove_document(actor, car_id, document_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)
