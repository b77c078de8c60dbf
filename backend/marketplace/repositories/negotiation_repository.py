"""Rate negotiation data access."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from ..core.timezone_utils import ensure_utc
from ..models.negotiation import OPEN_NEGOTIATION_STATUSES, RateNegotiation
from .base_repository import BaseRepository


class NegotiationRepository(BaseRepository[RateNegotiation]):
    def __init__(self, db: Session):
        super().__init__(db, RateNegotiation)

    def get_full(self, negotiation_id: str) -> Optional[RateNegotiation]:
        query = (
            self._build_query()
            .options(
                selectinload(RateNegotiation.counter_offers),
                selectinload(RateNegotiation.messages),
            )
            .filter(RateNegotiation.id == negotiation_id)
        )
        results = self._execute_query(query)
        return results[0] if results else None

    def list_open_past_expiry(self, now: datetime) -> List[RateNegotiation]:
        query = self._build_query().filter(
            RateNegotiation.status.in_(OPEN_NEGOTIATION_STATUSES),
            RateNegotiation.expires_at <= ensure_utc(now),
        )
        return self._execute_query(query)

    def list_for_user(self, user_id: str, limit: int = 100) -> List[RateNegotiation]:
        query = (
            self._build_query()
            .filter(
                (RateNegotiation.customer_id == user_id) | (RateNegotiation.owner_id == user_id)
            )
            .order_by(RateNegotiation.created_at.desc())
            .limit(limit)
        )
        return self._execute_query(query)
