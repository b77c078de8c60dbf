# backend/marketplace/models/job.py
"""
Driver jobs, applications, interviews and employment contracts.

An application embeds its interview and contract as column groups (there is
at most one of each per application). Contract signatures are keyed by
party so "has the driver signed" is a lookup, not a scan.
"""

from typing import Any, Dict, Optional

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
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.orm.collections import attribute_keyed_dict
from sqlalchemy.types import JSON

from ..core.enums import ApplicationStatus, ContractParty, ContractStatus, JobStatus
from ..core.timezone_utils import optional_utc, utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base

TERMINAL_APPLICATION_STATUSES = (
    ApplicationStatus.ACCEPTED.value,
    ApplicationStatus.REJECTED.value,
    ApplicationStatus.WITHDRAWN.value,
)


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    owner_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    city = Column(String(80), nullable=True)
    salary_amount = Column(Numeric(12, 2), nullable=True)
    salary_period = Column(String(20), nullable=True)
    car_model = Column(String(120), nullable=True)
    start_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=JobStatus.OPEN.value, index=True)
    hired_driver_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)

    applications = relationship("JobApplication", back_populates="job")

    __table_args__ = (
        CheckConstraint("status IN ('open', 'closed', 'filled')", name="ck_jobs_status"),
    )

    @property
    def is_open(self) -> bool:
        return self.status == JobStatus.OPEN.value


class JobApplication(Base):
    __tablename__ = "job_applications"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    job_id = Column(String(26), ForeignKey("jobs.id"), nullable=False, index=True)
    driver_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    cover_letter = Column(Text, nullable=True)
    status = Column(
        String(30), nullable=False, default=ApplicationStatus.PENDING.value, index=True
    )
    rejection_reason = Column(Text, nullable=True)

    # Interview
    interview_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    interview_duration_minutes = Column(Integer, nullable=True)
    interview_location_type = Column(String(20), nullable=True)
    interview_location = Column(Text, nullable=True)
    interview_notes = Column(Text, nullable=True)
    interview_status = Column(String(20), nullable=True)
    interview_feedback_rating = Column(Integer, nullable=True)
    interview_feedback_comments = Column(Text, nullable=True)
    interview_conducted_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    interview_conducted_at = Column(DateTime(timezone=True), nullable=True)

    # Contract
    contract_status = Column(
        String(20), nullable=False, default=ContractStatus.NOT_CREATED.value
    )
    contract_terms = Column(JSON, nullable=True)
    contract_sent_at = Column(DateTime(timezone=True), nullable=True)
    contract_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)

    job = relationship("Job", back_populates="applications")
    driver = relationship("User", foreign_keys=[driver_id])
    signatures = relationship(
        "ContractSignature",
        collection_class=attribute_keyed_dict("party"),
        cascade="all, delete-orphan",
        back_populates="application",
    )
    messages = relationship(
        "ApplicationMessage",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationMessage.created_at",
    )

    __table_args__ = (
        UniqueConstraint("job_id", "driver_id", name="uq_job_applications_job_driver"),
        CheckConstraint(
            "status IN ('pending', 'shortlisted', 'interview_scheduled', 'interview_completed', "
            "'accepted', 'rejected', 'withdrawn')",
            name="ck_job_applications_status",
        ),
        CheckConstraint(
            "contract_status IN ('not_created', 'pending_driver', 'pending_owner', 'signed')",
            name="ck_job_applications_contract_status",
        ),
        CheckConstraint(
            "interview_feedback_rating IS NULL OR "
            "(interview_feedback_rating >= 1 AND interview_feedback_rating <= 5)",
            name="check_interview_rating_range",
        ),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPLICATION_STATUSES

    def signature_for(self, party: ContractParty) -> Optional["ContractSignature"]:
        return self.signatures.get(party.value)

    def has_signed(self, party: ContractParty) -> bool:
        signature = self.signature_for(party)
        return bool(signature and signature.signed)

    def interview_dict(self) -> Optional[Dict[str, Any]]:
        if self.interview_status is None:
            return None
        return {
            "scheduled_at": optional_utc(self.interview_scheduled_at),
            "duration_minutes": self.interview_duration_minutes,
            "location_type": self.interview_location_type,
            "location": self.interview_location,
            "notes": self.interview_notes,
            "status": self.interview_status,
            "feedback_rating": self.interview_feedback_rating,
            "feedback_comments": self.interview_feedback_comments,
            "conducted_at": optional_utc(self.interview_conducted_at),
        }


class ContractSignature(Base):
    __tablename__ = "contract_signatures"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    application_id = Column(
        String(26),
        ForeignKey("job_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    party = Column(String(10), nullable=False)
    signer_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    signed = Column(Boolean, nullable=False, default=True)
    signed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    signature_url = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)

    application = relationship("JobApplication", back_populates="signatures")

    __table_args__ = (
        UniqueConstraint("application_id", "party", name="uq_contract_signatures_party"),
        CheckConstraint("party IN ('driver', 'owner')", name="ck_contract_signatures_party"),
    )


class ApplicationMessage(Base):
    __tablename__ = "application_messages"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    application_id = Column(
        String(26),
        ForeignKey("job_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    application = relationship("JobApplication", back_populates="messages")
