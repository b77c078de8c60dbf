# backend/marketplace/models/car.py
"""
Car model and its document registry.

A car is the resource reservations are made against. Its documents are held
as a mapping keyed by document id, so add/verify/remove address a document
directly instead of scanning a list.
"""

from decimal import Decimal
import logging
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.orm.collections import attribute_keyed_dict
from sqlalchemy.types import JSON

from ..core.enums import AvailabilityStatus, DocumentVerificationStatus, RateType
from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .rating import RateableMixin

logger = logging.getLogger(__name__)


class Car(RateableMixin, Base):
    __tablename__ = "cars"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    owner_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    make = Column(String(60), nullable=False)
    model = Column(String(60), nullable=False)
    year = Column(Integer, nullable=True)
    license_plate = Column(String(20), nullable=False, unique=True)
    city = Column(String(80), nullable=True)
    # IANA zone the car is rented out in; drives the local slot grid
    timezone = Column(String(64), nullable=False, default="UTC")

    for_rent = Column(Boolean, nullable=False, default=False)
    for_sale = Column(Boolean, nullable=False, default=False)
    sale_price = Column(Numeric(12, 2), nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    daily_rate = Column(Numeric(10, 2), nullable=True)

    availability_status = Column(
        String(20), nullable=False, default=AvailabilityStatus.AVAILABLE.value, index=True
    )
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)

    owner = relationship("User", foreign_keys=[owner_id])
    documents = relationship(
        "CarDocument",
        collection_class=attribute_keyed_dict("id"),
        cascade="all, delete-orphan",
        back_populates="car",
    )

    __table_args__ = (
        CheckConstraint(
            "availability_status IN ('available', 'rented', 'maintenance', 'sold')",
            name="ck_cars_availability_status",
        ),
        CheckConstraint("hourly_rate IS NULL OR hourly_rate > 0", name="check_hourly_rate_positive"),
        CheckConstraint("daily_rate IS NULL OR daily_rate > 0", name="check_daily_rate_positive"),
    )

    def rate_for(self, rate_type: RateType) -> Optional[Decimal]:
        """Configured rate for ``rate_type``, or None if the owner set none."""
        value = self.hourly_rate if rate_type == RateType.HOURLY else self.daily_rate
        return Decimal(value) if value is not None else None

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}"

    def __repr__(self) -> str:
        return f"<Car {self.id}: {self.display_name} status={self.availability_status}>"


class CarDocument(Base):
    __tablename__ = "car_documents"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    car_id = Column(
        String(26), ForeignKey("cars.id", ondelete="CASCADE"), nullable=False, index=True
    )
    doc_type = Column(String(20), nullable=False)
    document_number = Column(String(64), nullable=True)
    document_url = Column(Text, nullable=True)
    issue_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True, index=True)

    verification_status = Column(
        String(20), nullable=False, default=DocumentVerificationStatus.PENDING.value
    )
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verified_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    # Day offsets (30, 14, ...) an expiry reminder already went out for
    reminders_sent = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    car = relationship("Car", back_populates="documents")

    __table_args__ = (
        CheckConstraint(
            "doc_type IN ('rc', 'insurance', 'pollution', 'permit')",
            name="ck_car_documents_doc_type",
        ),
        CheckConstraint(
            "verification_status IN ('pending', 'verified', 'rejected', 'expired')",
            name="ck_car_documents_verification_status",
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        # The mapping key must exist before the row is flushed
        kwargs.setdefault("id", generate_ulid())
        kwargs.setdefault("verification_status", DocumentVerificationStatus.PENDING.value)
        kwargs.setdefault("reminders_sent", [])
        super().__init__(**kwargs)
