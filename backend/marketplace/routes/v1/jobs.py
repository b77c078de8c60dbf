# backend/marketplace/routes/v1/jobs.py
"""
Driver job routes - API v1

Endpoints:
    POST /                          → Post a driver job (owner)
    GET /                           → Open jobs, optionally by city
    GET /{job_id}                   → Job details
    POST /{job_id}/applications     → Apply (driver)
    GET /{job_id}/applications      → Applications for my job (owner)
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_current_actor, get_hiring_service
from ...core.actor import Actor
from ...core.exceptions import DomainException
from ...schemas.job import ApplicationCreate, ApplicationResponse, JobCreate, JobResponse
from ...services.hiring_service import HiringService
from .common import handle_domain_exception, ulid_path

router = APIRouter(tags=["jobs-v1"])


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
def post_job(
    data: JobCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> JobResponse:
    try:
        return JobResponse.model_validate(service.post_job(actor, data))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[JobResponse])
def list_open_jobs(
    city: Optional[str] = Query(None, max_length=80),
    service: HiringService = Depends(get_hiring_service),
) -> List[JobResponse]:
    return [JobResponse.model_validate(job) for job in service.list_open_jobs(city)]


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    job_id: str = ulid_path("Job ULID"),
    service: HiringService = Depends(get_hiring_service),
) -> JobResponse:
    try:
        return JobResponse.model_validate(service.get_job(job_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{job_id}/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
def apply_to_job(
    job_id: str = ulid_path("Job ULID"),
    payload: Optional[ApplicationCreate] = Body(None),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> ApplicationResponse:
    try:
        application = service.apply(actor, job_id, payload.cover_letter if payload else None)
        return ApplicationResponse.from_application(application)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{job_id}/applications", response_model=List[ApplicationResponse])
def list_job_applications(
    job_id: str = ulid_path("Job ULID"),
    actor: Actor = Depends(get_current_actor),
    service: HiringService = Depends(get_hiring_service),
) -> List[ApplicationResponse]:
    try:
        return [
            ApplicationResponse.from_application(a)
            for a in service.list_applications(actor, job_id)
        ]
    except DomainException as e:
        handle_domain_exception(e)
