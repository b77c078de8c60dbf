# backend/marketplace/schemas/job.py
"""Driver hiring schemas: jobs, applications, interviews and contracts."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import ApplicationStatus, InterviewLocationType, InterviewStatus
from .base import Money, ResponseModel, StrictRequestModel, UtcDatetime


class JobCreate(StrictRequestModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    city: Optional[str] = Field(None, max_length=80)
    salary_amount: Optional[Money] = None
    salary_period: Optional[str] = Field(None, pattern=r"^(hourly|daily|weekly|monthly)$")
    car_model: Optional[str] = Field(None, max_length=120)
    start_date: Optional[date] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()


class JobResponse(ResponseModel):
    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    city: Optional[str] = None
    salary_amount: Optional[Money] = None
    salary_period: Optional[str] = None
    car_model: Optional[str] = None
    start_date: Optional[date] = None
    status: str
    hired_driver_id: Optional[str] = None
    created_at: UtcDatetime


class ApplicationCreate(StrictRequestModel):
    cover_letter: Optional[str] = Field(None, max_length=5000)


class ApplicationStatusUpdate(StrictRequestModel):
    status: ApplicationStatus
    reason: Optional[str] = Field(None, max_length=1000)


class InterviewSchedule(StrictRequestModel):
    scheduled_at: datetime
    duration_minutes: int = Field(30, ge=10, le=240)
    location_type: InterviewLocationType = InterviewLocationType.IN_PERSON
    location: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)


class InterviewComplete(StrictRequestModel):
    outcome: InterviewStatus = InterviewStatus.COMPLETED
    rating: Optional[int] = Field(None, ge=1, le=5)
    comments: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def outcome_is_final(self) -> "InterviewComplete":
        if self.outcome == InterviewStatus.SCHEDULED:
            raise ValueError("outcome must be completed, cancelled or no_show")
        return self


class ContractTerms(StrictRequestModel):
    salary: Money
    salary_period: str = Field("monthly", pattern=r"^(hourly|daily|weekly|monthly)$")
    start_date: date
    end_date: Optional[date] = None
    working_hours: Optional[str] = Field(None, max_length=200)
    benefits: List[str] = Field(default_factory=list)
    responsibilities: List[str] = Field(default_factory=list)
    termination_clause: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_dates(self) -> "ContractTerms":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class ContractCreate(StrictRequestModel):
    terms: ContractTerms


class ContractSign(StrictRequestModel):
    signature_url: Optional[str] = Field(None, max_length=500)


class ApplicationMessageCreate(StrictRequestModel):
    content: str = Field(..., min_length=1, max_length=2000)


class ContractSignatureResponse(ResponseModel):
    party: str
    signer_id: str
    signed: bool
    signed_at: UtcDatetime
    signature_url: Optional[str] = None


class ApplicationMessageResponse(ResponseModel):
    sender_id: str
    content: str
    created_at: UtcDatetime


class ApplicationResponse(ResponseModel):
    id: str
    job_id: str
    driver_id: str
    cover_letter: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    interview: Optional[Dict[str, Any]] = None
    contract_status: str
    contract_terms: Optional[Dict[str, Any]] = None
    contract_sent_at: Optional[UtcDatetime] = None
    contract_expires_at: Optional[UtcDatetime] = None
    signatures: List[ContractSignatureResponse] = Field(default_factory=list)
    messages: List[ApplicationMessageResponse] = Field(default_factory=list)
    created_at: UtcDatetime

    @classmethod
    def from_application(cls, application: Any) -> "ApplicationResponse":
        return cls(
            id=application.id,
            job_id=application.job_id,
            driver_id=application.driver_id,
            cover_letter=application.cover_letter,
            status=application.status,
            rejection_reason=application.rejection_reason,
            interview=application.interview_dict(),
            contract_status=application.contract_status,
            contract_terms=application.contract_terms,
            contract_sent_at=application.contract_sent_at,
            contract_expires_at=application.contract_expires_at,
            signatures=[
                ContractSignatureResponse.model_validate(sig)
                for sig in application.signatures.values()
            ],
            messages=[
                ApplicationMessageResponse.model_validate(msg) for msg in application.messages
            ],
            created_at=application.created_at,
        )
