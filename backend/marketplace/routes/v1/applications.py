# backend/marketplace/routes/v1/applications.py
"""
Job application routes - API v1

Everything that happens to an application after it is filed: screening,
the interview and the two-party contract.

Endpoints:
    GET /{application_id}                       → Application details (driver, owner)
    PATCH /{application_id}/status              → Shortlist or reject (owner)
    POST /{application_id}/withdraw             → Withdraw (driver)
    POST /{application_id}/interview            → Schedule the interview (owner)
    POST /{application_id}/interview/complete   → Record the interview outcome (owner)
    POST /{application_id}/contract             → Send contract terms (owner)
    POST /{application_id}/contract/sign        → Sign: driver first, then owner
    POST /{application_id}/messages             → Message the other party
"""

import logging

from fastapi import APIRouter, Body, Depends, Request

from ...api.dependencies import get_current_actor, get_hiring_service
from ...core.actor import Actor
from ...core.exceptions import DomainException
from ...schemas.job import (
    ApplicationMessageCreate,
    ApplicationResponse,
    ApplicationStatusUpdate,
    ContractCreate,
    ContractSign,
    InterviewComplete,
    InterviewSchedule,
)
from ...services.hiring_service import HiringService
from .common import client_ip, handle_domain_exception, ulid_path

logger = logging.getLogger(__name__)

router = APIRouter(tags=["applications-v1"])


@router.get("/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: str = ulid_path("Application ULID"),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    try:
        return ApplicationResponse.from_application(service.get_application(actor, application_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{application_id}/status", response_model=ApplicationResponse)
def update_application_status(
    application_id: str = ulid_path("Application ULID"),
    payload: ApplicationStatusUpdate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    try:
        application = service.update_application_status(
            actor, application_id, payload.status, reason=payload.reason
        )
        return ApplicationResponse.from_application(application)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{application_id}/withdraw", response_model=ApplicationResponse)
def withdraw_application(
    application_id: str = ulid_path("Application ULID"),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    try:
        return ApplicationResponse.from_application(service.withdraw(actor, application_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{application_id}/interview", response_model=ApplicationResponse)
def schedule_interview(
    application_id: str = ulid_path("Application ULID"),
    payload: InterviewSchedule = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    try:
        application = service.schedule_interview(actor, application_id, payload)
        return ApplicationResponse.from_application(application)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{application_id}/interview/complete", response_model=ApplicationResponse)
def complete_interview(
    application_id: str = ulid_path("Application ULID"),
    payload: InterviewComplete = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    try:
        application = service.complete_interview(actor, application_id, payload)
        return ApplicationResponse.from_application(application)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{application_id}/contract", response_model=ApplicationResponse)
def send_contract(
    application_id: str = ulid_path("Application ULID"),
    payload: ContractCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    try:
        application = service.create_contract(actor, application_id, payload.terms)
        return ApplicationResponse.from_application(application)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{application_id}/contract/sign", response_model=ApplicationResponse)
def sign_contract(
    request: Request,
    application_id: str = ulid_path("Application ULID"),
    payload: ContractSign = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    """The driver signs first; the owner's signature completes the hire."""
    try:
        application = service.sign_contract(
            actor,
            application_id,
            signature_url=payload.signature_url,
            ip_address=client_ip(request),
        )
        return ApplicationResponse.from_application(application)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{application_id}/messages", response_model=ApplicationResponse)
def post_application_message(
    application_id: str = ulid_path("Application ULID"),
    payload: ApplicationMessageCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    try:
        application = service.add_message(actor, application_id, payload.content)
        return ApplicationResponse.from_application(application)
    except DomainException as e:
        handle_domain_exception(e)
