# backend/marketplace/services/hiring_service.py
"""
Driver hiring: jobs, applications, interviews and the contract handshake.

Owners post jobs and move applications forward; drivers apply, withdraw and
sign first. The owner's signature closes the deal: the application becomes
accepted, the job filled and the driver recorded as hired. Other live
applications on the job are rejected.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.config import settings
from ..core.enums import (
    ApplicationStatus,
    ContractParty,
    ContractStatus,
    InterviewStatus,
    JobStatus,
    RoleName,
)
from ..core.exceptions import (
    ForbiddenException,
    InvalidStateTransitionException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, utc_now
from ..domain import contract_flow
from ..models.job import ApplicationMessage, ContractSignature, Job, JobApplication
from ..repositories import RepositoryFactory
from ..schemas.job import ContractTerms, InterviewComplete, InterviewSchedule, JobCreate
from .base import BaseService
from .notification_service import NotificationService, SingleUser

logger = logging.getLogger(__name__)

# Moves that have their own endpoint and side data
_DEDICATED_STATUSES = {
    ApplicationStatus.INTERVIEW_SCHEDULED: "schedule an interview",
    ApplicationStatus.INTERVIEW_COMPLETED: "complete the interview",
    ApplicationStatus.ACCEPTED: "sign the contract",
    ApplicationStatus.WITHDRAWN: "withdraw",
}

_RESCHEDULABLE_INTERVIEWS = {InterviewStatus.CANCELLED.value, InterviewStatus.NO_SHOW.value}


class HiringService(BaseService):
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.job_repository = RepositoryFactory.create_job_repository(db)
        self.application_repository = RepositoryFactory.create_job_application_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_job(self, job_id: str) -> Job:
        job = self.job_repository.get_by_id(job_id)
        if job is None:
            raise NotFoundException("Job not found", details={"job_id": job_id})
        return job

    def _get_application(self, application_id: str) -> JobApplication:
        application = self.application_repository.get_full(application_id)
        if application is None:
            raise NotFoundException(
                "Application not found", details={"application_id": application_id}
            )
        return application

    @staticmethod
    def _require_job_owner(actor: Actor, job: Job) -> None:
        if not actor.is_admin and job.owner_id != actor.id:
            raise ForbiddenException("Only the job owner can do this")

    @staticmethod
    def _require_open_job(job: Job) -> None:
        if not job.is_open:
            raise InvalidStateTransitionException(
                f"Job is {job.status}",
                current=job.status,
                details={"job_id": job.id},
            )

    @staticmethod
    def _party_of(actor: Actor, application: JobApplication) -> ContractParty:
        if actor.id == application.driver_id:
            return ContractParty.DRIVER
        if actor.id == application.job.owner_id:
            return ContractParty.OWNER
        raise ForbiddenException("You are not a party to this application")

    def _notify(self, user_id: str, type: str, title: str, message: str, application_id: str) -> None:
        self.notification_service.notify(
            SingleUser(user_id),
            type,
            title,
            message,
            link=f"/jobs/applications/{application_id}",
            after_commit=self.after_commit,
        )

    # ------------------------------------------------------------------
    # Jobs and applications
    # ------------------------------------------------------------------

    @BaseService.measure_operation("post_job")
    def post_job(self, actor: Actor, data: JobCreate) -> Job:
        actor.require_role(RoleName.OWNER, RoleName.ADMIN)
        with self.transaction():
            job = self.job_repository.create(
                owner_id=actor.id, status=JobStatus.OPEN.value, **data.model_dump()
            )
        self.log_operation("post_job", job_id=job.id)
        return job

    def get_job(self, job_id: str) -> Job:
        return self._get_job(job_id)

    def list_open_jobs(self, city: Optional[str] = None) -> List[Job]:
        filters: Dict[str, Any] = {"status": JobStatus.OPEN.value}
        if city:
            filters["city"] = city
        return self.job_repository.find_by(**filters)

    @BaseService.measure_operation("apply_for_job")
    def apply(self, actor: Actor, job_id: str, cover_letter: Optional[str] = None) -> JobApplication:
        actor.require_role(RoleName.DRIVER)
        job = self._get_job(job_id)
        if not job.is_open:
            raise ValidationException("Job is not open for applications", details={"job_id": job_id})
        if self.application_repository.find_for_driver(job_id, actor.id) is not None:
            raise ValidationException("Already applied for this job", details={"job_id": job_id})

        with self.transaction():
            application = self.application_repository.create(
                job_id=job.id,
                driver_id=actor.id,
                cover_letter=cover_letter,
                status=ApplicationStatus.PENDING.value,
                contract_status=ContractStatus.NOT_CREATED.value,
            )
            self._notify(
                job.owner_id, "job_application", "New application", job.title, application.id
            )
        return application

    def get_application(self, actor: Actor, application_id: str) -> JobApplication:
        application = self._get_application(application_id)
        if not actor.is_admin:
            self._party_of(actor, application)
        return application

    def list_applications(self, actor: Actor, job_id: str) -> List[JobApplication]:
        job = self._get_job(job_id)
        self._require_job_owner(actor, job)
        return self.application_repository.list_for_job(job_id)

    @BaseService.measure_operation("update_application_status")
    def update_application_status(
        self,
        actor: Actor,
        application_id: str,
        target: ApplicationStatus,
        reason: Optional[str] = None,
    ) -> JobApplication:
        """Owner moves: shortlist or reject. The other moves have their own operations."""
        if target in _DEDICATED_STATUSES:
            raise ValidationException(
                f"Use the dedicated operation to {_DEDICATED_STATUSES[target]}",
                details={"requested_status": target.value},
            )
        with self.transaction():
            application = self._get_application(application_id)
            self._require_job_owner(actor, application.job)
            contract_flow.validate_application_transition(
                ApplicationStatus(application.status), target
            )
            application.status = target.value
            if target == ApplicationStatus.REJECTED:
                application.rejection_reason = reason
            self._notify(
                application.driver_id,
                f"application_{target.value}",
                f"Application {target.value}",
                application.job.title,
                application.id,
            )
        return application

    @BaseService.measure_operation("withdraw_application")
    def withdraw(self, actor: Actor, application_id: str) -> JobApplication:
        with self.transaction():
            application = self._get_application(application_id)
            if application.driver_id != actor.id:
                raise ForbiddenException("Only the applicant can withdraw")
            contract_flow.validate_withdrawal(ApplicationStatus(application.status))
            application.status = ApplicationStatus.WITHDRAWN.value
            self._notify(
                application.job.owner_id,
                "application_withdrawn",
                "Application withdrawn",
                application.job.title,
                application.id,
            )
        return application

    # ------------------------------------------------------------------
    # Interviews
    # ------------------------------------------------------------------

    @BaseService.measure_operation("schedule_interview")
    def schedule_interview(
        self,
        actor: Actor,
        application_id: str,
        data: InterviewSchedule,
        now: Optional[datetime] = None,
    ) -> JobApplication:
        """
        Schedule (or re-schedule after a cancellation or no-show) the interview.
        """
        current = ensure_utc(now) if now is not None else utc_now()
        scheduled_at = ensure_utc(data.scheduled_at)
        if scheduled_at <= current:
            raise ValidationException("Interview must be scheduled in the future")

        with self.transaction():
            application = self._get_application(application_id)
            self._require_job_owner(actor, application.job)
            status = ApplicationStatus(application.status)
            rescheduling = (
                status == ApplicationStatus.INTERVIEW_SCHEDULED
                and application.interview_status in _RESCHEDULABLE_INTERVIEWS
            )
            if not rescheduling:
                contract_flow.validate_application_transition(
                    status, ApplicationStatus.INTERVIEW_SCHEDULED
                )

            application.status = ApplicationStatus.INTERVIEW_SCHEDULED.value
            application.interview_status = InterviewStatus.SCHEDULED.value
            application.interview_scheduled_at = scheduled_at
            application.interview_duration_minutes = data.duration_minutes
            application.interview_location_type = data.location_type.value
            application.interview_location = data.location
            application.interview_notes = data.notes
            application.interview_feedback_rating = None
            application.interview_feedback_comments = None
            application.interview_conducted_at = None
            application.interview_conducted_by_id = None
            self._notify(
                application.driver_id,
                "interview_scheduled",
                "Interview scheduled",
                f"{application.job.title} on {scheduled_at:%Y-%m-%d %H:%M} UTC",
                application.id,
            )
        return application

    @BaseService.measure_operation("complete_interview")
    def complete_interview(
        self,
        actor: Actor,
        application_id: str,
        data: InterviewComplete,
        now: Optional[datetime] = None,
    ) -> JobApplication:
        """Record the interview outcome; a completed interview advances the application."""
        current = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            application = self._get_application(application_id)
            self._require_job_owner(actor, application.job)
            if application.interview_status is None:
                raise InvalidStateTransitionException(
                    "No interview has been scheduled",
                    current=application.status,
                    requested=data.outcome.value,
                )
            contract_flow.validate_interview_transition(
                InterviewStatus(application.interview_status), data.outcome
            )
            if data.outcome == InterviewStatus.COMPLETED:
                contract_flow.validate_application_transition(
                    ApplicationStatus(application.status), ApplicationStatus.INTERVIEW_COMPLETED
                )
                application.status = ApplicationStatus.INTERVIEW_COMPLETED.value
                application.interview_feedback_rating = data.rating
                application.interview_feedback_comments = data.comments
                application.interview_conducted_at = current
                application.interview_conducted_by_id = actor.id
            application.interview_status = data.outcome.value
        return application

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_contract")
    def create_contract(
        self,
        actor: Actor,
        application_id: str,
        terms: ContractTerms,
        now: Optional[datetime] = None,
    ) -> JobApplication:
        current = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            application = self._get_application(application_id)
            if application.job.owner_id != actor.id:
                raise ForbiddenException("Only the job owner can send a contract")
            self._require_open_job(application.job)
            contract_flow.validate_contract_creation(
                ApplicationStatus(application.status), ContractStatus(application.contract_status)
            )
            application.contract_terms = terms.model_dump(mode="json")
            application.contract_status = ContractStatus.PENDING_DRIVER.value
            application.contract_sent_at = current
            application.contract_expires_at = current + timedelta(days=settings.contract_expiry_days)
            self._notify(
                application.driver_id,
                "contract_sent",
                "Contract ready to sign",
                application.job.title,
                application.id,
            )
        self.log_operation("create_contract", application_id=application_id)
        return application

    def _close_other_applications(self, job: Job, hired: JobApplication) -> None:
        """The job is filled; every other live application is rejected."""
        for other in self.application_repository.list_for_job(job.id):
            if other.id == hired.id or other.is_terminal:
                continue
            other.status = ApplicationStatus.REJECTED.value
            other.rejection_reason = "Position filled"
            self._notify(
                other.driver_id,
                "application_rejected",
                "Position filled",
                job.title,
                other.id,
            )

    @BaseService.measure_operation("sign_contract")
    def sign_contract(
        self,
        actor: Actor,
        application_id: str,
        signature_url: Optional[str] = None,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> JobApplication:
        """
        Sign as driver (first) or owner (second).

        Raises:
            InvalidStateTransitionException: out of turn, signed twice, application
                closed, job no longer open, or contract expired while expiry is enforced
            ForbiddenException: actor is neither the driver nor the job owner
        """
        current = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            application = self._get_application(application_id)
            party = self._party_of(actor, application)
            contract_status = ContractStatus(application.contract_status)

            if application.is_terminal and contract_status != ContractStatus.SIGNED:
                raise InvalidStateTransitionException(
                    f"Application is {application.status}",
                    current=contract_status.value,
                )
            if contract_status != ContractStatus.SIGNED:
                self._require_open_job(application.job)
            if (
                settings.contract_expiry_enforced
                and application.contract_expires_at is not None
                and current > ensure_utc(application.contract_expires_at)
            ):
                raise InvalidStateTransitionException(
                    "Contract has expired",
                    current=contract_status.value,
                    details={"expired_at": ensure_utc(application.contract_expires_at).isoformat()},
                )

            new_status = contract_flow.status_after_signature(
                contract_status, party, application.has_signed(party)
            )
            application.signatures[party.value] = ContractSignature(
                party=party.value,
                signer_id=actor.id,
                signed=True,
                signed_at=current,
                signature_url=signature_url,
                ip_address=ip_address,
            )
            application.contract_status = new_status.value

            job = application.job
            if new_status == ContractStatus.SIGNED:
                application.status = ApplicationStatus.ACCEPTED.value
                job.status = JobStatus.FILLED.value
                job.hired_driver_id = application.driver_id
                self._notify(
                    application.driver_id,
                    "contract_signed",
                    "You're hired",
                    job.title,
                    application.id,
                )
                self._close_other_applications(job, application)
            else:
                self._notify(
                    job.owner_id,
                    "contract_driver_signed",
                    "Driver signed the contract",
                    job.title,
                    application.id,
                )

        self.log_operation(
            "sign_contract",
            application_id=application_id,
            party=party.value,
            contract_status=new_status.value,
        )
        return application

    @BaseService.measure_operation("application_message")
    def add_message(
        self, actor: Actor, application_id: str, content: str, now: Optional[datetime] = None
    ) -> JobApplication:
        if not content.strip():
            raise ValidationException("Message cannot be empty")
        with self.transaction():
            application = self._get_application(application_id)
            party = self._party_of(actor, application)
            application.messages.append(
                ApplicationMessage(
                    sender_id=actor.id,
                    content=content.strip(),
                    created_at=ensure_utc(now) if now else utc_now(),
                )
            )
            recipient = (
                application.job.owner_id if party == ContractParty.DRIVER else application.driver_id
            )
            self._notify(
                recipient, "application_message", "New message", content.strip()[:200], application.id
            )
        return application
