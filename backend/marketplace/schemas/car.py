"""Car, car document and document expiry schemas."""

from datetime import date
from typing import List, Optional

from pydantic import Field, model_validator

from ..core.enums import AvailabilityStatus, DocumentType
from .base import Money, ResponseModel, StrictRequestModel, UtcDatetime


class CarDocumentCreate(StrictRequestModel):
    doc_type: DocumentType
    document_number: Optional[str] = Field(None, max_length=64)
    document_url: Optional[str] = Field(None, max_length=500)
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self) -> "CarDocumentCreate":
        if self.issue_date and self.expiry_date and self.expiry_date < self.issue_date:
            raise ValueError("expiry_date cannot be before issue_date")
        return self


class CarDocumentVerify(StrictRequestModel):
    approve: bool
    rejection_reason: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def reason_on_reject(self) -> "CarDocumentVerify":
        if not self.approve and not (self.rejection_reason or "").strip():
            raise ValueError("rejection_reason is required when rejecting a document")
        return self


class AvailabilityUpdate(StrictRequestModel):
    status: AvailabilityStatus


class CarDocumentResponse(ResponseModel):
    id: str
    car_id: str
    doc_type: str
    document_number: Optional[str] = None
    document_url: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    verification_status: str
    verified_at: Optional[UtcDatetime] = None
    rejection_reason: Optional[str] = None
    reminders_sent: List[int] = Field(default_factory=list)


class CarResponse(ResponseModel):
    id: str
    owner_id: str
    make: str
    model: str
    year: Optional[int] = None
    city: Optional[str] = None
    timezone: str
    for_rent: bool
    for_sale: bool
    hourly_rate: Optional[Money] = None
    daily_rate: Optional[Money] = None
    availability_status: str
    rating_average: Money
    rating_count: int


class ExpiryStatsResponse(ResponseModel):
    expired: int
    expiring_in_7_days: int
    expiring_in_30_days: int
    valid: int
    total: int


class ExpirySweepResponse(ResponseModel):
    reminders_sent: int
    documents_expired: int
