from datetime import date, datetime, timedelta, timezone

import pytest

from marketplace.core.enums import ReservationKind
from marketplace.core.exceptions import NotFoundException, ValidationException
from marketplace.schemas.reservation import ReservationCreate
from marketplace.services.availability import AvailabilityService
from marketplace.services.reservation_service import ReservationService
from tests.factories import actor_for, make_car

DAY = date(2030, 7, 15)
BEFORE = datetime(2030, 7, 1, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(DAY.year, DAY.month, DAY.day, hour, minute, tzinfo=timezone.utc)


def book(db, car, customer, start, end):
    return ReservationService(db).create_reservation(
        actor_for(customer),
        ReservationCreate(
            kind=ReservationKind.BOOKING,
            car_id=car.id,
            start_at=start,
            end_at=end,
            rate_type="hourly",
        ),
    )


@pytest.fixture
def service(db):
    return AvailabilityService(db)


class TestSlots:
    def test_full_day_grid(self, service, car):
        slots = service.available_slots(car.id, DAY, now=BEFORE)
        assert [s.local_start.strftime("%H:%M") for s in slots] == [
            f"{h:02d}:00" for h in range(9, 18)
        ]
        assert slots[0].end - slots[0].start == timedelta(hours=1)

    def test_booked_and_touching_slots_are_dropped(self, db, service, car, customer):
        book(db, car, customer, at(11), at(13))
        starts = [s.start.hour for s in service.available_slots(car.id, DAY, now=BEFORE)]
        # 10:00-11:00 and 13:00-14:00 share an endpoint with the booking
        assert starts == [9, 14, 15, 16, 17]

    def test_past_slots_are_dropped(self, service, car):
        starts = [s.start.hour for s in service.available_slots(car.id, DAY, now=at(12, 30))]
        assert starts == [13, 14, 15, 16, 17]

    def test_grid_follows_car_timezone(self, db, service, owner):
        kolkata = make_car(db, owner, timezone="Asia/Kolkata")
        slots = service.available_slots(kolkata.id, DAY, now=BEFORE)
        assert slots[0].local_start.strftime("%H:%M") == "09:00"
        # 09:00 IST is 03:30 UTC
        assert (slots[0].start.hour, slots[0].start.minute) == (3, 30)
        assert slots[0].to_dict()["local_time"] == "09:00"

    def test_unknown_car(self, service):
        with pytest.raises(NotFoundException):
            service.available_slots("01HZZZZZZZZZZZZZZZZZZZZZZZ", DAY)


class TestCalendar:
    def test_booked_windows_and_gaps(self, db, service, car, customer, other_customer):
        first = book(db, car, customer, at(10), at(12))
        second = book(db, car, other_customer, at(14), at(15))

        view = service.get_availability(car.id, at(8), at(18))

        assert [r.id for r in view.booked] == [first.id, second.id]
        assert [(g.start.hour, g.end.hour) for g in view.free] == [(8, 10), (12, 14), (15, 18)]

    def test_empty_range_is_one_gap(self, service, car):
        view = service.get_availability(car.id, at(8), at(18))
        assert view.booked == []
        assert [(g.start, g.end) for g in view.free] == [(at(8), at(18))]

    def test_inverted_range(self, service, car):
        with pytest.raises(ValidationException):
            service.get_availability(car.id, at(18), at(8))

    def test_has_conflict(self, db, service, car, customer):
        reservation = book(db, car, customer, at(10), at(12))
        assert service.has_conflict(car.id, at(12), at(13))
        assert not service.has_conflict(car.id, at(12, 1), at(13))
        assert not service.has_conflict(car.id, at(9), at(13), exclude_id=reservation.id)
