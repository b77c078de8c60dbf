# backend/marketplace/schemas/reservation.py
"""
Reservation schemas.

One create model covers rentals (``kind=booking``) and test drives
(``kind=test_drive``). Window ordering is checked by the service so the
same rule applies to create and reschedule.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import RateType, ReservationKind, ReservationStatus
from .base import Money, ResponseModel, StrictRequestModel, UtcDatetime

TEST_DRIVE_DEFAULT_MINUTES = 60


class TimeSlotIn(StrictRequestModel):
    start: datetime
    end: datetime
    hours: Decimal = Field(..., gt=0, le=24)


class AdditionalServiceIn(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=120)
    price: Money = Field(..., description="Flat price added to the rental total")

    @field_validator("price")
    @classmethod
    def non_negative_price(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Service price cannot be negative")
        return v


class ReservationCreate(StrictRequestModel):
    kind: ReservationKind = ReservationKind.BOOKING
    car_id: str = Field(..., description="Car to reserve")
    start_at: datetime = Field(..., description="Start of the window (ISO-8601, with offset)")
    end_at: Optional[datetime] = Field(
        None, description="End of the window; test drives may give duration_minutes instead"
    )
    duration_minutes: Optional[int] = Field(None, ge=15, le=480)
    rate_type: Optional[RateType] = None
    time_slots: List[TimeSlotIn] = Field(default_factory=list)
    additional_services: List[AdditionalServiceIn] = Field(default_factory=list)
    negotiation_id: Optional[str] = None
    customer_note: Optional[str] = Field(None, max_length=1000)

    @field_validator("customer_note")
    @classmethod
    def clean_note(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @model_validator(mode="after")
    def fill_window(self) -> "ReservationCreate":
        if self.kind == ReservationKind.BOOKING:
            if self.rate_type is None:
                raise ValueError("rate_type is required for a booking")
            if self.end_at is None:
                raise ValueError("end_at is required for a booking")
        elif self.end_at is None:
            minutes = self.duration_minutes or TEST_DRIVE_DEFAULT_MINUTES
            self.end_at = self.start_at + timedelta(minutes=minutes)
        return self


class ReservationTransitionRequest(StrictRequestModel):
    status: ReservationStatus
    note: Optional[str] = Field(None, max_length=1000)


class ReservationCancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


class ReservationRescheduleRequest(StrictRequestModel):
    start_at: datetime
    end_at: Optional[datetime] = None
    reason: Optional[str] = Field(None, max_length=1000)


class TestDriveFeedbackRequest(StrictRequestModel):
    rating: int = Field(..., ge=1, le=5)
    comments: Optional[str] = Field(None, max_length=2000)
    interested_in_purchase: Optional[bool] = None


class StatusEventResponse(ResponseModel):
    sequence: int
    status: str
    actor_id: Optional[str] = None
    note: Optional[str] = None
    created_at: UtcDatetime


class ReservationResponse(ResponseModel):
    id: str
    kind: str
    car_id: str
    customer_id: str
    owner_id: str
    start_at: UtcDatetime
    end_at: UtcDatetime
    status: str
    rate_type: Optional[str] = None
    rate: Optional[Money] = None
    total_hours: Optional[Money] = None
    total_days: Optional[int] = None
    total_amount: Money
    original_amount: Optional[Money] = None
    is_negotiated: bool
    negotiation_id: Optional[str] = None
    deposit_amount: Money
    deposit_paid: bool
    time_slots: List[Dict[str, Any]] = Field(default_factory=list)
    additional_services: List[Dict[str, Any]] = Field(default_factory=list)
    customer_note: Optional[str] = None
    cancelled_at: Optional[UtcDatetime] = None
    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    refund_amount: Optional[Money] = None
    rescheduled_from_start: Optional[UtcDatetime] = None
    rescheduled_from_end: Optional[UtcDatetime] = None
    feedback: Optional[Dict[str, Any]] = None
    created_at: UtcDatetime
    status_history: List[StatusEventResponse] = Field(default_factory=list)


class SlotResponse(ResponseModel):
    start: UtcDatetime
    end: UtcDatetime
    local_time: str


class SlotListResponse(ResponseModel):
    car_id: str
    day: date
    slots: List[SlotResponse]


class GapResponse(ResponseModel):
    start: UtcDatetime
    end: UtcDatetime


class BookedWindowResponse(ResponseModel):
    reservation_id: str
    kind: str
    status: str
    start: UtcDatetime
    end: UtcDatetime


class CalendarResponse(ResponseModel):
    car_id: str
    range_start: UtcDatetime
    range_end: UtcDatetime
    booked: List[BookedWindowResponse]
    free: List[GapResponse]
