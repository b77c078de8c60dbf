# backend/marketplace/services/reservation_service.py
"""
Reservation Service for the car marketplace.

Handles all reservation-related business logic including:
- Creating rentals and test drives on a car
- Moving reservations through their lifecycle
- Cancellations with the notice-based refund
- Rescheduling and test-drive feedback

The check-then-insert for a car runs under ``resource_lock(car_id)`` so two
requests for overlapping windows cannot both pass the conflict check. On
PostgreSQL the exclusion constraint on ``reservations`` backs this up.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.enums import (
    AvailabilityStatus,
    NegotiationStatus,
    RateType,
    ReservationKind,
    ReservationStatus,
    RoleName,
)
from ..core.exceptions import (
    BookingConflictException,
    ConflictException,
    ForbiddenException,
    InvalidStateTransitionException,
    NotFoundException,
    ValidationException,
)
from ..core.resource_lock import resource_lock
from ..core.timezone_utils import ensure_utc, utc_now
from ..domain.reservation_lifecycle import RESCHEDULABLE_STATUSES, validate_transition
from ..models.car import Car
from ..models.negotiation import RateNegotiation
from ..models.reservation import Reservation
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..schemas.reservation import ReservationCreate
from . import cancellation_policy, pricing_service
from .availability import AvailabilityService
from .base import BaseService
from .notification_service import NotificationService, SingleUser

logger = logging.getLogger(__name__)

# Car availability to apply once a reservation reaches these statuses
_AVAILABILITY_AFTER = {
    ReservationStatus.CONFIRMED: AvailabilityStatus.RENTED,
    ReservationStatus.ACTIVE: AvailabilityStatus.RENTED,
    ReservationStatus.COMPLETED: AvailabilityStatus.AVAILABLE,
    ReservationStatus.CANCELLED: AvailabilityStatus.AVAILABLE,
}

_UNBOOKABLE = {AvailabilityStatus.MAINTENANCE.value, AvailabilityStatus.SOLD.value}


class ReservationService(BaseService):
    """
    Service layer for reservation operations.

    Centralizes reservation business logic and coordinates with the
    availability, pricing and notification services.
    """

    def __init__(
        self,
        db: Session,
        availability_service: Optional[AvailabilityService] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.repository = RepositoryFactory.create_reservation_repository(db)
        self.car_repository = RepositoryFactory.create_car_repository(db)
        self.negotiation_repository = RepositoryFactory.create_negotiation_repository(db)
        self.availability_service = availability_service or AvailabilityService(db)
        self.notification_service = notification_service or NotificationService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_reservation(self, reservation_id: str) -> Reservation:
        reservation = self.repository.get_with_history(reservation_id)
        if reservation is None:
            raise NotFoundException(
                "Reservation not found", details={"reservation_id": reservation_id}
            )
        return reservation

    @staticmethod
    def _role_on(actor: Actor, reservation: Reservation) -> RoleName:
        """The role ``actor`` plays on this particular reservation."""
        if actor.is_admin or actor.is_system:
            return actor.role
        if actor.id == reservation.owner_id:
            return RoleName.OWNER
        if actor.id == reservation.customer_id:
            return RoleName.CUSTOMER
        raise ForbiddenException("You are not a party to this reservation")

    @BaseService.measure_operation("get_reservation")
    def get_reservation(self, actor: Actor, reservation_id: str) -> Reservation:
        reservation = self._get_reservation(reservation_id)
        self._role_on(actor, reservation)
        return reservation

    @BaseService.measure_operation("list_reservations")
    def list_reservations(self, actor: Actor, *, as_owner: bool = False) -> List[Reservation]:
        if as_owner:
            return self.repository.list_for_owner(actor.id)
        return self.repository.list_for_customer(actor.id)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _load_car(self, car_id: str, kind: ReservationKind) -> Car:
        car = self.car_repository.get_by_id(car_id)
        if car is None or not car.is_active:
            raise NotFoundException("Car not found", details={"car_id": car_id})
        if car.availability_status in _UNBOOKABLE:
            raise ValidationException(
                f"Car is not available ({car.availability_status})",
                details={"car_id": car_id, "availability_status": car.availability_status},
            )
        if kind == ReservationKind.BOOKING and not car.for_rent:
            raise ValidationException("Car is not offered for rent", details={"car_id": car_id})
        return car

    def _load_negotiation(
        self, negotiation_id: str, customer_id: str, car: Car, rate_type: RateType
    ) -> RateNegotiation:
        negotiation = self.negotiation_repository.get_by_id(negotiation_id)
        if negotiation is None or negotiation.customer_id != customer_id:
            raise NotFoundException(
                "Negotiation not found", details={"negotiation_id": negotiation_id}
            )
        if negotiation.status != NegotiationStatus.ACCEPTED.value:
            raise ValidationException(
                "Only an accepted negotiation can be applied to a reservation",
                details={"negotiation_status": negotiation.status},
            )
        if negotiation.car_id != car.id or negotiation.rate_type != rate_type.value:
            raise ValidationException(
                "Negotiation was agreed for a different car or rate type",
                details={"negotiation_id": negotiation_id},
            )
        if negotiation.reservation_id:
            raise ConflictException(
                "Negotiation has already been used for a reservation",
                code="NEGOTIATION_ALREADY_USED",
                details={"reservation_id": negotiation.reservation_id},
            )
        return negotiation

    def _check_window(self, start: datetime, end: datetime, now: datetime) -> None:
        if end < start:
            raise ValidationException("End time must not be before start time")
        if start <= now:
            raise ValidationException("Reservation must start in the future")

    def _raise_if_conflict(
        self, car_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None
    ) -> None:
        conflict = self.availability_service.find_conflict(car_id, start, end, exclude_id)
        if conflict is not None:
            raise BookingConflictException(
                details={
                    "conflicting_reservation_id": conflict.id,
                    "next_available": ensure_utc(conflict.end_at).isoformat(),
                }
            )

    @BaseService.measure_operation("create_reservation")
    def create_reservation(
        self, actor: Actor, data: ReservationCreate, now: Optional[datetime] = None
    ) -> Reservation:
        """
        Create a pending rental or test drive.

        Raises:
            NotFoundException: car or negotiation missing
            ValidationException: bad window, car not bookable, negotiation unusable
            ForbiddenException: owner booking their own car
            BookingConflictException: window overlaps a live reservation
            ConfigurationException: car has no rate for the requested rate type
        """
        if actor.is_system:
            raise ForbiddenException("Reservations are made by customers")
        current = ensure_utc(now) if now is not None else utc_now()
        start = ensure_utc(data.start_at)
        end = ensure_utc(data.end_at)  # type: ignore[arg-type]
        self._check_window(start, end, current)

        car = self._load_car(data.car_id, data.kind)
        if car.owner_id == actor.id:
            raise ForbiddenException("Owners cannot reserve their own car")

        negotiation: Optional[RateNegotiation] = None
        if data.negotiation_id:
            if data.kind != ReservationKind.BOOKING or data.rate_type is None:
                raise ValidationException("Negotiated rates apply to rentals only")
            negotiation = self._load_negotiation(data.negotiation_id, actor.id, car, data.rate_type)

        time_slots = [slot.model_dump(mode="json") for slot in data.time_slots]
        services = [service.model_dump(mode="json") for service in data.additional_services]

        with resource_lock(car.id):
            with self.transaction():
                self._raise_if_conflict(car.id, start, end)

                values: Dict[str, Any] = dict(
                    kind=data.kind.value,
                    car_id=car.id,
                    customer_id=actor.id,
                    owner_id=car.owner_id,
                    start_at=start,
                    end_at=end,
                    status=ReservationStatus.PENDING.value,
                    customer_note=data.customer_note,
                )
                if data.kind == ReservationKind.BOOKING:
                    rate_type = pricing_service.parse_rate_type(data.rate_type)
                    price = pricing_service.compute_total(
                        rate_type,
                        start,
                        end,
                        car.rate_for(rate_type),
                        time_slots=time_slots,
                        additional_services=services,
                        negotiated_rate=negotiation.agreed_rate if negotiation else None,
                    )
                    values.update(
                        rate_type=price.rate_type.value,
                        rate=price.rate,
                        total_hours=price.total_hours,
                        total_days=price.total_days,
                        total_amount=price.total_amount,
                        original_amount=price.original_amount,
                        is_negotiated=price.is_negotiated,
                        negotiation_id=negotiation.id if negotiation else None,
                        time_slots=time_slots,
                        additional_services=services,
                        deposit_amount=price.deposit_amount,
                    )

                try:
                    reservation = self.repository.create(**values)
                    reservation.record_status(ReservationStatus.PENDING.value, actor.id, "created")
                    if negotiation is not None:
                        negotiation.reservation_id = reservation.id
                    self.db.flush()
                except IntegrityError as exc:
                    # Exclusion constraint on PostgreSQL
                    raise BookingConflictException(details={"reason": str(exc.orig)})

                self._notify(
                    reservation.owner_id,
                    "reservation_requested",
                    "New reservation request",
                    f"{car.display_name}: {start:%Y-%m-%d %H:%M} to {end:%Y-%m-%d %H:%M} UTC",
                    reservation,
                )

        prometheus_metrics.record_reservation_transition(
            reservation.kind, "none", ReservationStatus.PENDING.value
        )
        self.log_operation(
            "create_reservation",
            reservation_id=reservation.id,
            car_id=car.id,
            kind=reservation.kind,
        )
        return reservation

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _notify(
        self, user_id: str, type: str, title: str, message: str, reservation: Reservation
    ) -> None:
        self.notification_service.notify(
            SingleUser(user_id),
            type,
            title,
            message,
            link=f"/reservations/{reservation.id}",
            after_commit=self.after_commit,
        )

    def _sync_car_availability(self, car_id: str, availability: AvailabilityStatus) -> None:
        try:
            self.car_repository.set_availability_status(car_id, availability.value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _queue_availability_sync(self, reservation: Reservation, status: ReservationStatus) -> None:
        availability = _AVAILABILITY_AFTER.get(status)
        if availability is None:
            return
        car_id = reservation.car_id
        self.after_commit(
            "car_availability_sync",
            lambda: self._sync_car_availability(car_id, availability),
        )

    def _counterparty(self, actor: Actor, reservation: Reservation) -> str:
        return reservation.owner_id if actor.id == reservation.customer_id else reservation.customer_id

    @BaseService.measure_operation("transition_reservation")
    def transition_reservation(
        self,
        actor: Actor,
        reservation_id: str,
        target: ReservationStatus,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Apply one lifecycle move.

        Cancellation is routed through ``cancel_reservation`` so the refund
        is always computed.

        Raises:
            InvalidStateTransitionException: move not in the lifecycle table
            ForbiddenException: actor may not make this move
        """
        if target == ReservationStatus.CANCELLED:
            return self.cancel_reservation(actor, reservation_id, reason=note, now=now)

        current_time = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            reservation = self._get_reservation(reservation_id)
            role = self._role_on(actor, reservation)
            previous = ReservationStatus(reservation.status)
            validate_transition(previous, target, role)

            reservation.status = target.value
            if target == ReservationStatus.CONFIRMED:
                reservation.confirmed_at = current_time
            elif target == ReservationStatus.COMPLETED:
                reservation.completed_at = current_time
            if note and role in (RoleName.OWNER, RoleName.ADMIN):
                reservation.owner_note = note
            reservation.record_status(target.value, actor.user_id, note)

            self._queue_availability_sync(reservation, target)
            self._notify(
                reservation.customer_id,
                f"reservation_{target.value}",
                f"Reservation {target.value}",
                f"Your reservation is now {target.value}",
                reservation,
            )

        prometheus_metrics.record_reservation_transition(
            reservation.kind, previous.value, target.value
        )
        self.log_operation(
            "transition_reservation",
            reservation_id=reservation_id,
            from_status=previous.value,
            to_status=target.value,
        )
        return reservation

    @BaseService.measure_operation("cancel_reservation")
    def cancel_reservation(
        self,
        actor: Actor,
        reservation_id: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """Cancel and record the refund owed under the notice policy."""
        current_time = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            reservation = self._get_reservation(reservation_id)
            role = self._role_on(actor, reservation)
            previous = ReservationStatus(reservation.status)
            validate_transition(previous, ReservationStatus.CANCELLED, role)

            decision = cancellation_policy.evaluate(
                reservation.total_amount, reservation.start_at, current_time
            )
            reservation.status = ReservationStatus.CANCELLED.value
            reservation.cancelled_at = current_time
            reservation.cancelled_by_id = actor.user_id
            reservation.cancellation_reason = reason
            reservation.refund_amount = decision.refund_amount
            reservation.record_status(ReservationStatus.CANCELLED.value, actor.user_id, reason)

            self._queue_availability_sync(reservation, ReservationStatus.CANCELLED)
            self._notify(
                self._counterparty(actor, reservation),
                "reservation_cancelled",
                "Reservation cancelled",
                f"Reservation cancelled; refund {decision.refund_amount} "
                f"({decision.refund_percent}%)",
                reservation,
            )

        prometheus_metrics.record_reservation_transition(
            reservation.kind, previous.value, ReservationStatus.CANCELLED.value
        )
        self.log_operation(
            "cancel_reservation",
            reservation_id=reservation_id,
            refund_percent=decision.refund_percent,
        )
        return reservation

    def _check_reschedulable(self, actor: Actor, reservation: Reservation) -> ReservationStatus:
        if self._role_on(actor, reservation) == RoleName.SYSTEM:
            raise ForbiddenException("Reservations are rescheduled by their parties")
        current = ReservationStatus(reservation.status)
        if current not in RESCHEDULABLE_STATUSES:
            raise InvalidStateTransitionException(
                f"Cannot reschedule a reservation that is {current.value}",
                current=current.value,
                requested=ReservationStatus.PENDING.value,
            )
        return current

    @staticmethod
    def _rescheduled_window(
        reservation: Reservation, start_at: datetime, end_at: Optional[datetime]
    ) -> Tuple[datetime, datetime]:
        """New window; without ``end_at`` the current duration is kept."""
        start = ensure_utc(start_at)
        if end_at is not None:
            return start, ensure_utc(end_at)
        return start, start + (ensure_utc(reservation.end_at) - ensure_utc(reservation.start_at))

    @BaseService.measure_operation("reschedule_reservation")
    def reschedule_reservation(
        self,
        actor: Actor,
        reservation_id: str,
        start_at: datetime,
        end_at: Optional[datetime] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Move a pending or confirmed reservation to a new window.

        The reservation goes back to pending for the owner to confirm
        again; rentals are repriced for the new window. Without ``end_at``
        the original duration is kept.
        """
        current_time = ensure_utc(now) if now is not None else utc_now()
        reservation = self._get_reservation(reservation_id)
        self._check_reschedulable(actor, reservation)
        start, end = self._rescheduled_window(reservation, start_at, end_at)
        self._check_window(start, end, current_time)

        with resource_lock(reservation.car_id):
            with self.transaction():
                # Another request may have moved it while we waited for the lock
                self.db.refresh(reservation)
                previous = self._check_reschedulable(actor, reservation)
                old_start = ensure_utc(reservation.start_at)
                old_end = ensure_utc(reservation.end_at)
                start, end = self._rescheduled_window(reservation, start_at, end_at)
                self._check_window(start, end, current_time)
                self._raise_if_conflict(reservation.car_id, start, end, exclude_id=reservation.id)

                if reservation.kind == ReservationKind.BOOKING.value:
                    car = self.car_repository.get_by_id(reservation.car_id)
                    rate_type = pricing_service.parse_rate_type(reservation.rate_type)
                    price = pricing_service.compute_total(
                        rate_type,
                        start,
                        end,
                        car.rate_for(rate_type) if car else None,
                        additional_services=reservation.additional_services,
                        negotiated_rate=(
                            reservation.negotiation.agreed_rate if reservation.negotiation else None
                        ),
                    )
                    reservation.rate = price.rate
                    reservation.total_hours = price.total_hours
                    reservation.total_days = price.total_days
                    reservation.total_amount = price.total_amount
                    reservation.original_amount = price.original_amount
                    reservation.deposit_amount = price.deposit_amount
                    # Slot breakdown belonged to the old window
                    reservation.time_slots = []

                reservation.rescheduled_from_start = old_start
                reservation.rescheduled_from_end = old_end
                reservation.reschedule_reason = reason
                reservation.start_at = start
                reservation.end_at = end
                reservation.status = ReservationStatus.PENDING.value
                reservation.confirmed_at = None
                reservation.record_status(
                    ReservationStatus.PENDING.value,
                    actor.user_id,
                    f"rescheduled: {reason}" if reason else "rescheduled",
                )
                self._notify(
                    self._counterparty(actor, reservation),
                    "reservation_rescheduled",
                    "Reservation rescheduled",
                    f"Moved to {start:%Y-%m-%d %H:%M} - {end:%Y-%m-%d %H:%M} UTC",
                    reservation,
                )

        if previous != ReservationStatus.PENDING:
            prometheus_metrics.record_reservation_transition(
                reservation.kind, previous.value, ReservationStatus.PENDING.value
            )
        self.log_operation("reschedule_reservation", reservation_id=reservation_id)
        return reservation

    @BaseService.measure_operation("submit_test_drive_feedback")
    def submit_feedback(
        self,
        actor: Actor,
        reservation_id: str,
        rating: int,
        comments: Optional[str] = None,
        interested_in_purchase: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        with self.transaction():
            reservation = self._get_reservation(reservation_id)
            if reservation.customer_id != actor.id:
                raise ForbiddenException("Only the customer can leave test drive feedback")
            if reservation.kind != ReservationKind.TEST_DRIVE.value:
                raise ValidationException("Feedback is only collected for test drives")
            if reservation.status != ReservationStatus.COMPLETED.value:
                raise InvalidStateTransitionException(
                    "Feedback can be given once the test drive is completed",
                    current=reservation.status,
                )
            if reservation.feedback:
                raise ConflictException(
                    "Feedback already submitted", code="FEEDBACK_ALREADY_SUBMITTED"
                )
            reservation.feedback = {
                "rating": rating,
                "comments": comments,
                "interested_in_purchase": interested_in_purchase,
                "submitted_at": (ensure_utc(now) if now else utc_now()).isoformat(),
            }
            self._notify(
                reservation.owner_id,
                "test_drive_feedback",
                "Test drive feedback received",
                f"Rated {rating}/5",
                reservation,
            )
        return reservation
