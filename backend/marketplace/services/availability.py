# backend/marketplace/services/availability.py
"""
Availability for cars.

Handles:
- Conflict detection between a requested window and live reservations
- The daily slot grid offered for test drives
- A calendar view of booked windows and the free gaps between them

Windows are closed intervals here: a reservation ending at 10:00 and one
starting at 10:00 conflict. Bookings and test drives on the same car block
each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import ensure_utc, get_car_timezone, utc_now
from ..models.car import Car
from ..models.reservation import Reservation
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


def windows_conflict(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Closed-interval overlap; shared endpoints count as a conflict."""
    return ensure_utc(a_start) <= ensure_utc(b_end) and ensure_utc(a_end) >= ensure_utc(b_start)


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    local_start: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "local_time": self.local_start.strftime("%H:%M"),
        }


@dataclass(frozen=True)
class Gap:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class AvailabilityView:
    car_id: str
    range_start: datetime
    range_end: datetime
    booked: List[Reservation]
    free: List[Gap]


class AvailabilityService(BaseService):
    """Read-only availability queries; nothing here writes."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.car_repository = RepositoryFactory.create_car_repository(db)

    def _get_car(self, car_id: str) -> Car:
        car = self.car_repository.get_by_id(car_id)
        if car is None:
            raise NotFoundException("Car not found", details={"car_id": car_id})
        return car

    def find_conflict(
        self,
        car_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> Optional[Reservation]:
        """First live reservation on the car that conflicts with ``[start, end]``."""
        candidates = self.reservation_repository.find_blocking_candidates(
            car_id, start, end, exclude_id=exclude_id
        )
        for reservation in candidates:
            if windows_conflict(start, end, reservation.start_at, reservation.end_at):
                return reservation
        return None

    @BaseService.measure_operation("has_conflict")
    def has_conflict(
        self,
        car_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> bool:
        conflict = self.find_conflict(car_id, start, end, exclude_id)
        if conflict is not None:
            self.logger.info(
                "Window %s-%s on car %s conflicts with reservation %s",
                start,
                end,
                car_id,
                conflict.id,
            )
        return conflict is not None

    @BaseService.measure_operation("available_slots")
    def available_slots(
        self, car_id: str, day: date, now: Optional[datetime] = None
    ) -> List[Slot]:
        """
        Free slots on ``day`` in the car's local timezone.

        The grid runs from the configured opening hour to the closing hour in
        steps of ``slot_minutes``. Slots that start at or before ``now`` and
        slots that conflict with a live reservation are dropped, using the
        same overlap rule reservation creation applies.
        """
        car = self._get_car(car_id)
        tz = get_car_timezone(car)
        current = ensure_utc(now) if now is not None else utc_now()

        step = timedelta(minutes=settings.slot_minutes)
        midnight = datetime.combine(day, time(0, 0))
        grid_start = midnight + timedelta(hours=settings.slot_day_start_hour)
        grid_end = midnight + timedelta(hours=settings.slot_day_end_hour)

        day_start_utc = ensure_utc(tz.localize(grid_start))
        day_end_utc = ensure_utc(tz.localize(grid_end))
        booked = self.reservation_repository.find_blocking_candidates(
            car_id, day_start_utc, day_end_utc
        )

        slots: List[Slot] = []
        local = grid_start
        while local + step <= grid_end:
            local_aware = tz.localize(local)
            slot_start = ensure_utc(local_aware)
            slot_end = slot_start + step
            local += step
            if slot_start <= current:
                continue
            if any(windows_conflict(slot_start, slot_end, r.start_at, r.end_at) for r in booked):
                continue
            slots.append(Slot(start=slot_start, end=slot_end, local_start=local_aware))
        return slots

    @BaseService.measure_operation("get_availability")
    def get_availability(
        self, car_id: str, range_start: datetime, range_end: datetime
    ) -> AvailabilityView:
        """Live reservations overlapping the range, and the gaps left between them."""
        start = ensure_utc(range_start)
        end = ensure_utc(range_end)
        if end < start:
            raise ValidationException("End of range must not be before its start")
        self._get_car(car_id)

        booked = [
            r
            for r in self.reservation_repository.find_blocking_candidates(car_id, start, end)
            if windows_conflict(start, end, r.start_at, r.end_at)
        ]

        free: List[Gap] = []
        cursor = start
        for reservation in booked:
            r_start = ensure_utc(reservation.start_at)
            r_end = ensure_utc(reservation.end_at)
            if r_start > cursor:
                free.append(Gap(start=cursor, end=r_start))
            if r_end > cursor:
                cursor = r_end
        if cursor < end:
            free.append(Gap(start=cursor, end=end))

        return AvailabilityView(
            car_id=car_id, range_start=start, range_end=end, booked=booked, free=free
        )
