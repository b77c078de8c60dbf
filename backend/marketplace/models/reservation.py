# backend/marketplace/models/reservation.py
"""
Reservation model: rentals and test drives against a car.

Both kinds share one table and one lifecycle; they differ in what they carry
(a rental has a rate and a price, a test drive has neither). Windows are
stored as UTC instants and are treated as closed intervals, so two windows
that only touch at a boundary still overlap.

On PostgreSQL the table also carries an exclusion constraint rejecting
overlapping live windows on the same car; see the initial migration.
"""

from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from ..core.enums import ReservationKind, ReservationStatus
from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)

TERMINAL_RESERVATION_STATUSES = (
    ReservationStatus.COMPLETED.value,
    ReservationStatus.CANCELLED.value,
    ReservationStatus.REJECTED.value,
)


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    kind = Column(String(20), nullable=False, default=ReservationKind.BOOKING.value)

    car_id = Column(String(26), ForeignKey("cars.id"), nullable=False, index=True)
    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    owner_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    start_at = Column(DateTime(timezone=True), nullable=False, index=True)
    end_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Pricing snapshot; test drives leave these empty/zero
    rate_type = Column(String(10), nullable=True)
    rate = Column(Numeric(10, 2), nullable=True)
    total_hours = Column(Numeric(10, 2), nullable=True)
    total_days = Column(Integer, nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    original_amount = Column(Numeric(12, 2), nullable=True)
    is_negotiated = Column(Boolean, nullable=False, default=False)
    negotiation_id = Column(String(26), ForeignKey("rate_negotiations.id"), nullable=True)
    time_slots = Column(JSON, nullable=False, default=list)
    additional_services = Column(JSON, nullable=False, default=list)
    deposit_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    deposit_paid = Column(Boolean, nullable=False, default=False)

    status = Column(
        String(20), nullable=False, default=ReservationStatus.PENDING.value, index=True
    )
    customer_note = Column(Text, nullable=True)
    owner_note = Column(Text, nullable=True)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=True)

    rescheduled_from_start = Column(DateTime(timezone=True), nullable=True)
    rescheduled_from_end = Column(DateTime(timezone=True), nullable=True)
    reschedule_reason = Column(Text, nullable=True)

    # Test-drive feedback: {"rating": 4, "comments": "...", "interested_in_purchase": true}
    feedback = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    car = relationship("Car", foreign_keys=[car_id])
    customer = relationship("User", foreign_keys=[customer_id])
    owner = relationship("User", foreign_keys=[owner_id])
    negotiation = relationship("RateNegotiation", foreign_keys=[negotiation_id])
    status_history = relationship(
        "ReservationStatusEvent",
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="ReservationStatusEvent.sequence",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'active', 'completed', 'cancelled', 'rejected')",
            name="ck_reservations_status",
        ),
        CheckConstraint("kind IN ('booking', 'test_drive')", name="ck_reservations_kind"),
        CheckConstraint("start_at <= end_at", name="check_window_order"),
        CheckConstraint("total_amount >= 0", name="check_amount_non_negative"),
        Index("ix_reservations_car_window", "car_id", "start_at", "end_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RESERVATION_STATUSES

    def involves(self, user_id: str) -> bool:
        return user_id in (self.customer_id, self.owner_id)

    def record_status(
        self, status: str, actor_id: Optional[str], note: Optional[str] = None
    ) -> "ReservationStatusEvent":
        """Append to the status history. Does not change ``status`` itself."""
        event = ReservationStatusEvent(
            status=status,
            actor_id=actor_id,
            note=note,
            sequence=len(self.status_history) + 1,
        )
        self.status_history.append(event)
        return event

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.id}: kind={self.kind} car={self.car_id} "
            f"{self.start_at}-{self.end_at} status={self.status}>"
        )


class ReservationStatusEvent(Base):
    """Ordered status history of a reservation."""

    __tablename__ = "reservation_status_events"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    reservation_id = Column(
        String(26), ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    actor_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    reservation = relationship("Reservation", back_populates="status_history")
