# backend/marketplace/services/car_service.py
"""
Car administration: documents, manual availability and document expiry.

The expiry sweep runs daily. For every dated document it works out the
days left until expiry:

- below zero: the document is marked expired once, and the owner and all
  admins are told;
- on one of the reminder offsets (30, 14, 7, 3, 1 by default): the owner
  gets one reminder per offset.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.config import settings
from ..core.enums import AvailabilityStatus, DocumentVerificationStatus, RoleName
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..core.timezone_utils import days_until, utc_now
from ..models.car import Car, CarDocument
from ..repositories import RepositoryFactory
from ..schemas.car import CarDocumentCreate
from .base import BaseService
from .notification_service import AllAdmins, NotificationService, SingleUser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpirySweepResult:
    reminders_sent: int
    documents_expired: int


@dataclass(frozen=True)
class ExpiryStats:
    expired: int
    expiring_in_7_days: int
    expiring_in_30_days: int
    valid: int

    @property
    def total(self) -> int:
        return self.expired + self.expiring_in_7_days + self.expiring_in_30_days + self.valid


class CarService(BaseService):
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_car_repository(db)
        self.document_repository = RepositoryFactory.create_car_document_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    def _get_car(self, car_id: str) -> Car:
        car = self.repository.get_with_documents(car_id)
        if car is None:
            raise NotFoundException("Car not found", details={"car_id": car_id})
        return car

    @staticmethod
    def _require_owner_or_admin(actor: Actor, car: Car) -> None:
        if not actor.is_admin and car.owner_id != actor.id:
            raise ForbiddenException("Only the car owner can do this")

    @staticmethod
    def _get_document(car: Car, document_id: str) -> CarDocument:
        document = car.documents.get(document_id)
        if document is None:
            raise NotFoundException("Document not found", details={"document_id": document_id})
        return document

    def _notify(self, audience, type: str, title: str, message: str, link: str) -> None:
        self.notification_service.notify(
            audience, type, title, message, link=link, after_commit=self.after_commit
        )

    def get_car(self, car_id: str) -> Car:
        return self._get_car(car_id)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @BaseService.measure_operation("add_car_document")
    def add_document(self, actor: Actor, car_id: str, data: CarDocumentCreate) -> CarDocument:
        with self.transaction():
            car = self._get_car(car_id)
            self._require_owner_or_admin(actor, car)
            document = CarDocument(
                doc_type=data.doc_type.value,
                document_number=data.document_number,
                document_url=data.document_url,
                issue_date=data.issue_date,
                expiry_date=data.expiry_date,
            )
            car.documents[document.id] = document
            self._notify(
                AllAdmins(),
                "document_uploaded",
                "Document awaiting verification",
                f"{data.doc_type.value.upper()} for {car.display_name}",
                f"/admin/cars/{car.id}/documents",
            )
        return document

    @BaseService.measure_operation("verify_car_document")
    def verify_document(
        self,
        actor: Actor,
        car_id: str,
        document_id: str,
        approve: bool,
        rejection_reason: Optional[str] = None,
    ) -> CarDocument:
        actor.require_role(RoleName.ADMIN)
        with self.transaction():
            car = self._get_car(car_id)
            document = self._get_document(car, document_id)
            if document.verification_status == DocumentVerificationStatus.EXPIRED.value:
                raise ValidationException("An expired document cannot be verified")
            if approve:
                document.verification_status = DocumentVerificationStatus.VERIFIED.value
                document.rejection_reason = None
            else:
                document.verification_status = DocumentVerificationStatus.REJECTED.value
                document.rejection_reason = rejection_reason
            document.verified_at = utc_now()
            document.verified_by_id = actor.id
            self._notify(
                SingleUser(car.owner_id),
                f"document_{document.verification_status}",
                f"Document {document.verification_status}",
                f"Your {document.doc_type.upper()} for {car.display_name} was "
                f"{document.verification_status}",
                f"/dashboard/cars/{car.id}/documents",
            )
        return document

    @BaseService.measure_operation("remove_car_document")
    def remove_document(self, actor: Actor, car_id: str, document_id: str) -> None:
        with self.transaction():
            car = self._get_car(car_id)
            self._require_owner_or_admin(actor, car)
            self._get_document(car, document_id)
            del car.documents[document_id]

    def send_document_reminder(self, actor: Actor, car_id: str, document_id: str) -> CarDocument:
        """Admin-triggered reminder for one document, outside the reminder schedule."""
        actor.require_role(RoleName.ADMIN)
        with self.transaction():
            car = self._get_car(car_id)
            document = self._get_document(car, document_id)
            expires = (
                f"It expires on {document.expiry_date:%Y-%m-%d}."
                if document.expiry_date
                else "It has no expiry date on file."
            )
            self._notify(
                SingleUser(car.owner_id),
                "document_reminder_manual",
                "Document reminder",
                f"Please update your {document.doc_type.upper()} for {car.display_name}. {expires}",
                f"/dashboard/cars/{car.id}/documents",
            )
        return document

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    @BaseService.measure_operation("set_car_availability")
    def set_availability(self, actor: Actor, car_id: str, status: AvailabilityStatus) -> Car:
        """Manual override; reservation transitions may overwrite it later."""
        with self.transaction():
            car = self._get_car(car_id)
            self._require_owner_or_admin(actor, car)
            car.availability_status = status.value
        self.log_operation("set_car_availability", car_id=car_id, status=status.value)
        return car

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    @BaseService.measure_operation("check_expiring_documents")
    def check_expiring_documents(self, today: Optional[date] = None) -> ExpirySweepResult:
        current_day = today or utc_now().date()
        offsets = set(settings.document_reminder_days)
        reminders = 0
        expired = 0

        with self.transaction():
            for document in self.document_repository.list_dated():
                car = document.car
                label = f"{document.doc_type.upper()} for {car.display_name}"
                days_left = days_until(document.expiry_date, current_day)

                if (
                    days_left < 0
                    and document.verification_status != DocumentVerificationStatus.EXPIRED.value
                ):
                    document.verification_status = DocumentVerificationStatus.EXPIRED.value
                    expired += 1
                    self._notify(
                        SingleUser(car.owner_id),
                        "document_expired",
                        "Document expired",
                        f"Your {label} has expired. Please upload a new document.",
                        f"/dashboard/cars/{car.id}/documents",
                    )
                    self._notify(
                        AllAdmins(),
                        "document_expired",
                        "Document expired - admin alert",
                        f"{label} has expired.",
                        f"/admin/cars/{car.id}/documents",
                    )

                sent: List[int] = list(document.reminders_sent or [])
                if days_left > 0 and days_left in offsets and days_left not in sent:
                    self._notify(
                        SingleUser(car.owner_id),
                        "document_expiry_reminder",
                        "Document expiring soon",
                        f"Your {label} will expire in {days_left} day(s). Please renew it.",
                        f"/dashboard/cars/{car.id}/documents",
                    )
                    document.reminders_sent = sent + [days_left]
                    reminders += 1

        logger.info(
            "Document expiry check complete: %s reminders sent, %s documents expired",
            reminders,
            expired,
        )
        return ExpirySweepResult(reminders_sent=reminders, documents_expired=expired)

    def expiry_stats(self, today: Optional[date] = None) -> ExpiryStats:
        current_day = today or utc_now().date()
        week = current_day + timedelta(days=7)
        month = current_day + timedelta(days=30)
        counts: Dict[str, int] = {"expired": 0, "week": 0, "month": 0, "valid": 0}
        for document in self.document_repository.list_dated():
            if document.expiry_date < current_day:
                counts["expired"] += 1
            elif document.expiry_date <= week:
                counts["week"] += 1
            elif document.expiry_date <= month:
                counts["month"] += 1
            else:
                counts["valid"] += 1
        return ExpiryStats(
            expired=counts["expired"],
            expiring_in_7_days=counts["week"],
            expiring_in_30_days=counts["month"],
            valid=counts["valid"],
        )
