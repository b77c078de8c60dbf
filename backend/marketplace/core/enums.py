# backend/marketplace/core/enums.py
"""
Core enums for the marketplace.

String enums so values round-trip through the database and JSON unchanged.
"""

from enum import Enum


class RoleName(str, Enum):
    """User roles. ``SYSTEM`` is never stored; it identifies scheduled jobs."""

    ADMIN = "admin"
    OWNER = "owner"
    CUSTOMER = "customer"
    DRIVER = "driver"
    SYSTEM = "system"


class RateType(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"


class ReservationKind(str, Enum):
    BOOKING = "booking"
    TEST_DRIVE = "test_drive"


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


# Statuses that hold a car's calendar
BLOCKING_RESERVATION_STATUSES = (
    ReservationStatus.PENDING.value,
    ReservationStatus.CONFIRMED.value,
    ReservationStatus.ACTIVE.value,
)


class NegotiationStatus(str, Enum):
    PENDING = "pending"
    COUNTERED = "countered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class NegotiationAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    COUNTER = "counter"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    SOLD = "sold"


class JobStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    FILLED = "filled"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    SHORTLISTED = "shortlisted"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_COMPLETED = "interview_completed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class InterviewStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class InterviewLocationType(str, Enum):
    IN_PERSON = "in_person"
    VIDEO_CALL = "video_call"
    PHONE_CALL = "phone_call"


class ContractStatus(str, Enum):
    NOT_CREATED = "not_created"
    PENDING_DRIVER = "pending_driver"
    PENDING_OWNER = "pending_owner"
    SIGNED = "signed"


class ContractParty(str, Enum):
    DRIVER = "driver"
    OWNER = "owner"


class DocumentType(str, Enum):
    REGISTRATION = "rc"
    INSURANCE = "insurance"
    POLLUTION = "pollution"
    PERMIT = "permit"


class DocumentVerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ReviewTargetType(str, Enum):
    DRIVER = "driver"
    CAR = "car"
    PRODUCT = "product"
