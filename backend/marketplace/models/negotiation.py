# backend/marketplace/models/negotiation.py
"""Rate negotiation between a customer and a car owner."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..core.enums import NegotiationStatus
from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base

OPEN_NEGOTIATION_STATUSES = (NegotiationStatus.PENDING.value, NegotiationStatus.COUNTERED.value)


class RateNegotiation(Base):
    __tablename__ = "rate_negotiations"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    car_id = Column(String(26), ForeignKey("cars.id"), nullable=False, index=True)
    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    owner_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    rate_type = Column(String(10), nullable=False)
    original_rate = Column(Numeric(10, 2), nullable=False)
    proposed_rate = Column(Numeric(10, 2), nullable=False)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)

    status = Column(
        String(20), nullable=False, default=NegotiationStatus.PENDING.value, index=True
    )
    # Whoever made the offer currently on the table; the other party responds
    last_offer_by_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    # Set once a reservation locks in the agreed rate
    reservation_id = Column(String(26), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    car = relationship("Car", foreign_keys=[car_id])
    counter_offers = relationship(
        "NegotiationCounterOffer",
        back_populates="negotiation",
        cascade="all, delete-orphan",
        order_by="NegotiationCounterOffer.round",
    )
    messages = relationship(
        "NegotiationMessage",
        back_populates="negotiation",
        cascade="all, delete-orphan",
        order_by="NegotiationMessage.created_at",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'countered', 'accepted', 'rejected', 'expired')",
            name="ck_rate_negotiations_status",
        ),
        CheckConstraint("rate_type IN ('hourly', 'daily')", name="ck_rate_negotiations_rate_type"),
        CheckConstraint("proposed_rate > 0", name="check_proposed_rate_positive"),
    )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_NEGOTIATION_STATUSES

    @property
    def agreed_rate(self) -> Optional[Decimal]:
        if self.status != NegotiationStatus.ACCEPTED.value:
            return None
        return Decimal(self.proposed_rate)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.customer_id, self.owner_id)

    def counterparty_of(self, user_id: str) -> str:
        return self.owner_id if user_id == self.customer_id else self.customer_id


class NegotiationCounterOffer(Base):
    __tablename__ = "negotiation_counter_offers"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    negotiation_id = Column(
        String(26),
        ForeignKey("rate_negotiations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    round = Column(Integer, nullable=False)
    proposed_by_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    rate = Column(Numeric(10, 2), nullable=False)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    negotiation = relationship("RateNegotiation", back_populates="counter_offers")


class NegotiationMessage(Base):
    __tablename__ = "negotiation_messages"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    negotiation_id = Column(
        String(26),
        ForeignKey("rate_negotiations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    negotiation = relationship("RateNegotiation", back_populates="messages")
