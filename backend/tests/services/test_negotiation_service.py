from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace.core.config import settings
from marketplace.core.enums import NegotiationAction, NegotiationStatus, RateType, ReservationKind
from marketplace.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateTransitionException,
    ValidationException,
)
from marketplace.core.timezone_utils import utc_now
from marketplace.schemas.negotiation import NegotiationCreate
from marketplace.schemas.reservation import ReservationCreate
from marketplace.services.negotiation_service import NegotiationService
from marketplace.services.reservation_service import ReservationService
from tests.factories import actor_for, in_hours, make_car


@pytest.fixture
def service(db):
    return NegotiationService(db)


def proposal(car, rate="8", start=None, hours=2, **extra) -> NegotiationCreate:
    start = start or in_hours(30)
    return NegotiationCreate(
        car_id=car.id,
        rate_type=extra.pop("rate_type", RateType.HOURLY),
        proposed_rate=rate,
        start_at=start,
        end_at=start + timedelta(hours=hours),
        **extra,
    )


class TestPropose:
    def test_opens_pending_with_deadline(self, service, car, customer, owner):
        now = utc_now()
        negotiation = service.propose(
            actor_for(customer), proposal(car, message="Long-time renter"), now=now
        )

        assert negotiation.status == NegotiationStatus.PENDING.value
        assert negotiation.original_rate == Decimal("10.00")
        assert negotiation.proposed_rate == Decimal("8")
        assert negotiation.owner_id == owner.id
        assert negotiation.last_offer_by_id == customer.id
        assert negotiation.expires_at == now + timedelta(hours=settings.negotiation_ttl_hours)
        assert [m.content for m in negotiation.messages] == ["Long-time renter"]

    def test_one_open_negotiation_per_car(self, service, car, customer):
        service.propose(actor_for(customer), proposal(car))
        with pytest.raises(ConflictException) as exc:
            service.propose(actor_for(customer), proposal(car, rate="7"))
        assert exc.value.code == "NEGOTIATION_EXISTS"

    def test_expired_negotiation_does_not_block_a_new_one(self, service, car, customer):
        first = service.propose(actor_for(customer), proposal(car))
        later = utc_now() + timedelta(hours=settings.negotiation_ttl_hours + 1)

        second = service.propose(actor_for(customer), proposal(car, start=in_hours(80)), now=later)

        assert first.status == NegotiationStatus.EXPIRED.value
        assert second.status == NegotiationStatus.PENDING.value

    def test_owner_cannot_negotiate_own_car(self, service, car, owner):
        with pytest.raises(ForbiddenException):
            service.propose(actor_for(owner), proposal(car))

    def test_not_for_rent(self, db, service, owner, customer):
        sale_only = make_car(db, owner, for_rent=False, for_sale=True)
        with pytest.raises(ValidationException):
            service.propose(actor_for(customer), proposal(sale_only))


class TestRespond:
    def test_counter_then_accept_feeds_booking_price(self, db, service, car, customer, owner):
        start = in_hours(30)
        negotiation = service.propose(actor_for(customer), proposal(car, "8", start=start))

        countered = service.respond(
            actor_for(owner), negotiation.id, NegotiationAction.COUNTER, Decimal("9"), "Meet me at 9"
        )
        assert countered.status == NegotiationStatus.COUNTERED.value
        assert countered.proposed_rate == Decimal("9")
        assert countered.last_offer_by_id == owner.id
        assert [(c.round, c.rate) for c in countered.counter_offers] == [(1, Decimal("9"))]

        accepted = service.respond(actor_for(customer), negotiation.id, NegotiationAction.ACCEPT)
        assert accepted.status == NegotiationStatus.ACCEPTED.value
        assert accepted.agreed_rate == Decimal("9")
        assert accepted.resolved_at is not None

        reservation = ReservationService(db).create_reservation(
            actor_for(customer),
            ReservationCreate(
                kind=ReservationKind.BOOKING,
                car_id=car.id,
                start_at=start,
                end_at=start + timedelta(hours=2),
                rate_type="hourly",
                negotiation_id=negotiation.id,
            ),
        )
        assert reservation.rate == Decimal("9.00")
        assert reservation.total_amount == Decimal("18.00")
        assert reservation.original_amount == Decimal("20.00")
        assert reservation.is_negotiated is True
        assert negotiation.reservation_id == reservation.id

    def test_accepted_negotiation_is_single_use(self, db, service, car, customer, owner):
        start = in_hours(30)
        negotiation = service.propose(actor_for(customer), proposal(car, start=start))
        service.respond(actor_for(owner), negotiation.id, NegotiationAction.ACCEPT)

        reservations = ReservationService(db)
        data = ReservationCreate(
            car_id=car.id,
            start_at=start,
            end_at=start + timedelta(hours=2),
            rate_type="hourly",
            negotiation_id=negotiation.id,
        )
        first = reservations.create_reservation(actor_for(customer), data)
        reservations.cancel_reservation(actor_for(customer), first.id)

        with pytest.raises(ConflictException) as exc:
            reservations.create_reservation(actor_for(customer), data)
        assert exc.value.code == "NEGOTIATION_ALREADY_USED"

    def test_open_negotiation_cannot_price_booking(self, db, service, car, customer):
        start = in_hours(30)
        negotiation = service.propose(actor_for(customer), proposal(car, start=start))
        with pytest.raises(ValidationException):
            ReservationService(db).create_reservation(
                actor_for(customer),
                ReservationCreate(
                    car_id=car.id,
                    start_at=start,
                    end_at=start + timedelta(hours=2),
                    rate_type="hourly",
                    negotiation_id=negotiation.id,
                ),
            )

    def test_proposer_cannot_answer_own_offer(self, service, car, customer):
        negotiation = service.propose(actor_for(customer), proposal(car))
        with pytest.raises(ForbiddenException):
            service.respond(actor_for(customer), negotiation.id, NegotiationAction.ACCEPT)

    def test_outsider_cannot_respond(self, service, car, customer, other_customer):
        negotiation = service.propose(actor_for(customer), proposal(car))
        with pytest.raises(ForbiddenException):
            service.respond(actor_for(other_customer), negotiation.id, NegotiationAction.REJECT)

    def test_counter_needs_positive_rate(self, service, car, customer, owner):
        negotiation = service.propose(actor_for(customer), proposal(car))
        with pytest.raises(ValidationException):
            service.respond(actor_for(owner), negotiation.id, NegotiationAction.COUNTER, None)

    def test_rejected_is_closed(self, service, car, customer, owner):
        negotiation = service.propose(actor_for(customer), proposal(car))
        service.respond(actor_for(owner), negotiation.id, NegotiationAction.REJECT, message="No")
        with pytest.raises(InvalidStateTransitionException):
            service.respond(actor_for(customer), negotiation.id, NegotiationAction.ACCEPT)

    def test_counter_round_cap(self, service, car, customer, owner, monkeypatch):
        monkeypatch.setattr(settings, "negotiation_max_counter_rounds", 1)
        negotiation = service.propose(actor_for(customer), proposal(car))
        service.respond(actor_for(owner), negotiation.id, NegotiationAction.COUNTER, Decimal("9.5"))
        with pytest.raises(InvalidStateTransitionException):
            service.respond(
                actor_for(customer), negotiation.id, NegotiationAction.COUNTER, Decimal("8.5")
            )

    def test_response_after_deadline_expires(self, service, car, customer, owner):
        negotiation = service.propose(actor_for(customer), proposal(car))
        late = utc_now() + timedelta(hours=settings.negotiation_ttl_hours, seconds=1)

        with pytest.raises(InvalidStateTransitionException):
            service.respond(actor_for(owner), negotiation.id, NegotiationAction.ACCEPT, now=late)
        assert negotiation.status == NegotiationStatus.EXPIRED.value


class TestExpirySweep:
    def test_expire_stale_only_touches_overdue_open(self, service, db, owner, customer):
        stale_car, fresh_car, closed_car = (make_car(db, owner) for _ in range(3))
        stale = service.propose(actor_for(customer), proposal(stale_car))
        closed = service.propose(actor_for(customer), proposal(closed_car))
        service.respond(actor_for(owner), closed.id, NegotiationAction.REJECT)

        later = utc_now() + timedelta(hours=settings.negotiation_ttl_hours + 1)
        fresh = service.propose(actor_for(customer), proposal(fresh_car), now=later)

        assert service.expire_stale(now=later) == 1
        assert stale.status == NegotiationStatus.EXPIRED.value
        assert closed.status == NegotiationStatus.REJECTED.value
        assert fresh.status == NegotiationStatus.PENDING.value

    def test_reading_applies_expiry(self, service, car, customer):
        negotiation = service.propose(actor_for(customer), proposal(car))
        late = utc_now() + timedelta(days=3)
        loaded = service.get_negotiation(actor_for(customer), negotiation.id, now=late)
        assert loaded.status == NegotiationStatus.EXPIRED.value


class TestMessages:
    def test_message_notifies_counterparty(self, db, service, car, customer, owner):
        from marketplace.models.notification import Notification

        negotiation = service.propose(actor_for(customer), proposal(car))
        service.add_message(actor_for(owner), negotiation.id, "  Is 9 ok?  ")

        assert negotiation.messages[-1].content == "Is 9 ok?"
        types = [n.type for n in db.query(Notification).filter_by(recipient_id=customer.id)]
        assert "negotiation_message" in types
