"""
Reservation data access.

The overlap query here is a coarse SQL pre-filter; the availability service
applies the authoritative closed-interval predicate to what comes back.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from ..core.enums import BLOCKING_RESERVATION_STATUSES, ReservationStatus
from ..core.timezone_utils import ensure_utc
from ..models.reservation import Reservation
from .base_repository import BaseRepository


class ReservationRepository(BaseRepository[Reservation]):
    def __init__(self, db: Session):
        super().__init__(db, Reservation)

    def get_with_history(self, reservation_id: str) -> Optional[Reservation]:
        query = (
            self._build_query()
            .options(selectinload(Reservation.status_history))
            .filter(Reservation.id == reservation_id)
        )
        results = self._execute_query(query)
        return results[0] if results else None

    def find_blocking_candidates(
        self,
        car_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_id: Optional[str] = None,
        statuses: Iterable[str] = BLOCKING_RESERVATION_STATUSES,
    ) -> List[Reservation]:
        """Live reservations on ``car_id`` whose window may touch ``[start, end]``."""
        query = self._build_query().filter(
            Reservation.car_id == car_id,
            Reservation.status.in_(list(statuses)),
            Reservation.start_at <= ensure_utc(end),
            Reservation.end_at >= ensure_utc(start),
        )
        if exclude_id:
            query = query.filter(Reservation.id != exclude_id)
        return self._execute_query(query.order_by(Reservation.start_at.asc()))

    def list_for_customer(self, customer_id: str, limit: int = 100) -> List[Reservation]:
        query = (
            self._build_query()
            .filter(Reservation.customer_id == customer_id)
            .order_by(Reservation.start_at.desc())
            .limit(limit)
        )
        return self._execute_query(query)

    def list_for_owner(self, owner_id: str, limit: int = 100) -> List[Reservation]:
        query = (
            self._build_query()
            .filter(Reservation.owner_id == owner_id)
            .order_by(Reservation.start_at.desc())
            .limit(limit)
        )
        return self._execute_query(query)

    def has_completed_between(
        self, customer_id: str, *, car_id: Optional[str] = None, owner_id: Optional[str] = None
    ) -> bool:
        """Whether ``customer_id`` finished a reservation on the car / with the owner."""
        query = self._build_query().filter(
            Reservation.customer_id == customer_id,
            Reservation.status == ReservationStatus.COMPLETED.value,
        )
        if car_id:
            query = query.filter(Reservation.car_id == car_id)
        if owner_id:
            query = query.filter(Reservation.owner_id == owner_id)
        return query.first() is not None
