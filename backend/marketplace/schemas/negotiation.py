"""Rate negotiation schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import NegotiationAction, RateType
from .base import Money, ResponseModel, StrictRequestModel, UtcDatetime


def _positive_rate(v: Optional[Decimal]) -> Optional[Decimal]:
    if v is not None and v <= 0:
        raise ValueError("Rate must be greater than zero")
    return v


class NegotiationCreate(StrictRequestModel):
    car_id: str
    rate_type: RateType
    proposed_rate: Money
    start_at: datetime
    end_at: datetime
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator("proposed_rate")
    @classmethod
    def check_rate(cls, v: Decimal) -> Decimal:
        return _positive_rate(v)  # type: ignore[return-value]


class NegotiationRespond(StrictRequestModel):
    action: NegotiationAction
    counter_rate: Optional[Money] = None
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator("counter_rate")
    @classmethod
    def check_counter_rate(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return _positive_rate(v)

    @model_validator(mode="after")
    def counter_needs_rate(self) -> "NegotiationRespond":
        if self.action == NegotiationAction.COUNTER and self.counter_rate is None:
            raise ValueError("counter_rate is required to counter an offer")
        return self


class NegotiationMessageCreate(StrictRequestModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CounterOfferResponse(ResponseModel):
    round: int
    proposed_by_id: str
    rate: Money
    message: Optional[str] = None
    created_at: UtcDatetime


class NegotiationMessageResponse(ResponseModel):
    sender_id: str
    content: str
    created_at: UtcDatetime


class NegotiationResponse(ResponseModel):
    id: str
    car_id: str
    customer_id: str
    owner_id: str
    rate_type: str
    original_rate: Money
    proposed_rate: Money
    start_at: UtcDatetime
    end_at: UtcDatetime
    status: str
    last_offer_by_id: str
    expires_at: UtcDatetime
    reservation_id: Optional[str] = None
    resolved_at: Optional[UtcDatetime] = None
    created_at: UtcDatetime
    counter_offers: List[CounterOfferResponse] = Field(default_factory=list)
    messages: List[NegotiationMessageResponse] = Field(default_factory=list)
