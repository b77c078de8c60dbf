# backend/marketplace/services/negotiation_service.py
"""
Rate negotiation between a customer and a car owner.

The customer opens with a rate; the owner answers first. After that the
party who did not make the offer on the table may accept, reject or counter.
Negotiations lapse ``negotiation_ttl_hours`` after they are opened; expiry is
applied whenever a negotiation is read or acted on, and by the periodic
sweep.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.config import settings
from ..core.enums import NegotiationAction, NegotiationStatus
from ..core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, utc_now
from ..domain import negotiation_flow
from ..models.negotiation import NegotiationCounterOffer, NegotiationMessage, RateNegotiation
from ..repositories import RepositoryFactory
from ..schemas.negotiation import NegotiationCreate
from . import pricing_service
from .base import BaseService
from .notification_service import NotificationService, SingleUser

logger = logging.getLogger(__name__)


class NegotiationService(BaseService):
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_negotiation_repository(db)
        self.car_repository = RepositoryFactory.create_car_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    def _get(self, negotiation_id: str) -> RateNegotiation:
        negotiation = self.repository.get_full(negotiation_id)
        if negotiation is None:
            raise NotFoundException(
                "Negotiation not found", details={"negotiation_id": negotiation_id}
            )
        return negotiation

    def _get_for_party(self, actor: Actor, negotiation_id: str) -> RateNegotiation:
        negotiation = self._get(negotiation_id)
        if not actor.is_admin and not negotiation.involves(actor.id):
            raise ForbiddenException("You are not a party to this negotiation")
        return negotiation

    def _expire_if_due(self, negotiation: RateNegotiation, now: datetime) -> bool:
        """Persist ``expired`` on an open negotiation past its deadline."""
        status = NegotiationStatus(negotiation.status)
        if not negotiation_flow.is_expired(status, ensure_utc(negotiation.expires_at), now):
            return False
        with self.transaction():
            negotiation.status = NegotiationStatus.EXPIRED.value
            negotiation.resolved_at = now
        logger.info("Negotiation %s expired", negotiation.id)
        return True

    def _notify(self, user_id: str, type: str, title: str, message: str, negotiation_id: str) -> None:
        self.notification_service.notify(
            SingleUser(user_id),
            type,
            title,
            message,
            link=f"/negotiations/{negotiation_id}",
            after_commit=self.after_commit,
        )

    @BaseService.measure_operation("propose_negotiation")
    def propose(
        self, actor: Actor, data: NegotiationCreate, now: Optional[datetime] = None
    ) -> RateNegotiation:
        """
        Open a negotiation on a car's rate for a rental window.

        Raises:
            NotFoundException: car missing
            ValidationException: bad window, car not for rent
            ForbiddenException: owner negotiating on their own car
            ConflictException: customer already has an open negotiation on the car
            ConfigurationException: car has no rate of the requested type
        """
        current = ensure_utc(now) if now is not None else utc_now()
        start, end = ensure_utc(data.start_at), ensure_utc(data.end_at)
        if end < start:
            raise ValidationException("End time must not be before start time")

        car = self.car_repository.get_by_id(data.car_id)
        if car is None or not car.is_active:
            raise NotFoundException("Car not found", details={"car_id": data.car_id})
        if not car.for_rent:
            raise ValidationException("Car is not offered for rent", details={"car_id": car.id})
        if car.owner_id == actor.id:
            raise ForbiddenException("Owners cannot negotiate on their own car")

        original_rate = car.rate_for(data.rate_type)
        # Same error as pricing when the car lacks this rate type
        pricing_service.compute_total(data.rate_type, start, end, original_rate)

        for existing in self.repository.find_by(car_id=car.id, customer_id=actor.id):
            if existing.is_open:
                self._expire_if_due(existing, current)
            if existing.is_open:
                raise ConflictException(
                    "You already have an open negotiation for this car",
                    code="NEGOTIATION_EXISTS",
                    details={"negotiation_id": existing.id},
                )

        with self.transaction():
            negotiation = self.repository.create(
                car_id=car.id,
                customer_id=actor.id,
                owner_id=car.owner_id,
                rate_type=data.rate_type.value,
                original_rate=original_rate,
                proposed_rate=data.proposed_rate,
                start_at=start,
                end_at=end,
                status=NegotiationStatus.PENDING.value,
                last_offer_by_id=actor.id,
                expires_at=current + timedelta(hours=settings.negotiation_ttl_hours),
                created_at=current,
            )
            if data.message:
                negotiation.messages.append(
                    NegotiationMessage(sender_id=actor.id, content=data.message, created_at=current)
                )
            self._notify(
                car.owner_id,
                "negotiation_proposed",
                "New rate proposal",
                f"{car.display_name}: {data.proposed_rate} {data.rate_type.value} "
                f"(listed {original_rate})",
                negotiation.id,
            )

        self.log_operation("propose_negotiation", negotiation_id=negotiation.id, car_id=car.id)
        return negotiation

    @BaseService.measure_operation("respond_to_negotiation")
    def respond(
        self,
        actor: Actor,
        negotiation_id: str,
        action: NegotiationAction,
        counter_rate=None,
        message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RateNegotiation:
        """
        Accept, reject or counter the offer on the table.

        Raises:
            InvalidStateTransitionException: negotiation closed or expired, round cap hit
            ForbiddenException: not a party, or responding to one's own offer
            ValidationException: counter without a positive rate
        """
        current = ensure_utc(now) if now is not None else utc_now()
        negotiation = self._get(negotiation_id)
        if not negotiation.involves(actor.id):
            raise ForbiddenException("You are not a party to this negotiation")
        self._expire_if_due(negotiation, current)

        next_status = negotiation_flow.next_status(
            NegotiationStatus(negotiation.status),
            action,
            responder_id=actor.id,
            last_offer_by_id=negotiation.last_offer_by_id,
            counter_rounds=len(negotiation.counter_offers),
            max_counter_rounds=settings.negotiation_max_counter_rounds,
        )

        with self.transaction():
            if action == NegotiationAction.COUNTER:
                if counter_rate is None or counter_rate <= 0:
                    raise ValidationException("A counter-offer needs a rate greater than zero")
                negotiation.counter_offers.append(
                    NegotiationCounterOffer(
                        round=len(negotiation.counter_offers) + 1,
                        proposed_by_id=actor.id,
                        rate=counter_rate,
                        message=message,
                        created_at=current,
                    )
                )
                negotiation.proposed_rate = counter_rate
                negotiation.last_offer_by_id = actor.id
            else:
                negotiation.resolved_at = current
                if message:
                    negotiation.messages.append(
                        NegotiationMessage(sender_id=actor.id, content=message, created_at=current)
                    )
            negotiation.status = next_status.value

            self._notify(
                negotiation.counterparty_of(actor.id),
                f"negotiation_{next_status.value}",
                f"Negotiation {next_status.value}",
                f"Rate on the table: {negotiation.proposed_rate} {negotiation.rate_type}",
                negotiation.id,
            )

        self.log_operation(
            "respond_to_negotiation",
            negotiation_id=negotiation.id,
            action=action.value,
            status=next_status.value,
        )
        return negotiation

    @BaseService.measure_operation("negotiation_message")
    def add_message(
        self, actor: Actor, negotiation_id: str, content: str, now: Optional[datetime] = None
    ) -> RateNegotiation:
        current = ensure_utc(now) if now is not None else utc_now()
        negotiation = self._get(negotiation_id)
        if not negotiation.involves(actor.id):
            raise ForbiddenException("You are not a party to this negotiation")
        if not content.strip():
            raise ValidationException("Message cannot be empty")
        self._expire_if_due(negotiation, current)
        with self.transaction():
            negotiation.messages.append(
                NegotiationMessage(sender_id=actor.id, content=content.strip(), created_at=current)
            )
            self._notify(
                negotiation.counterparty_of(actor.id),
                "negotiation_message",
                "New negotiation message",
                content.strip()[:200],
                negotiation.id,
            )
        return negotiation

    @BaseService.measure_operation("get_negotiation")
    def get_negotiation(
        self, actor: Actor, negotiation_id: str, now: Optional[datetime] = None
    ) -> RateNegotiation:
        negotiation = self._get_for_party(actor, negotiation_id)
        self._expire_if_due(negotiation, ensure_utc(now) if now is not None else utc_now())
        return negotiation

    def list_negotiations(self, actor: Actor, now: Optional[datetime] = None) -> List[RateNegotiation]:
        current = ensure_utc(now) if now is not None else utc_now()
        negotiations = self.repository.list_for_user(actor.id)
        for negotiation in negotiations:
            self._expire_if_due(negotiation, current)
        return negotiations

    @BaseService.measure_operation("expire_stale_negotiations")
    def expire_stale(self, now: Optional[datetime] = None) -> int:
        """Mark every open negotiation past its deadline as expired."""
        current = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            stale = self.repository.list_open_past_expiry(current)
            for negotiation in stale:
                negotiation.status = NegotiationStatus.EXPIRED.value
                negotiation.resolved_at = current
        if stale:
            logger.info("Expired %s stale negotiations", len(stale))
        return len(stale)
