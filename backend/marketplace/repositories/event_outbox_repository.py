# backend/marketplace/repositories/event_outbox_repository.py
"""
Outbox rows: enqueue, claim and record delivery attempts.

An explicit ``idempotency_key`` makes enqueue return the existing row instead
of a duplicate. On PostgreSQL, claims use ``SKIP LOCKED`` so two dispatchers
never pick the same event.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import dialect_name
from ..models.event_outbox import EventOutbox, EventOutboxStatus

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 1000


class EventOutboxRepository:
    def __init__(self, db: Session):
        self.db = db
        self._skip_locked = dialect_name(db) == "postgresql"

    def _claim(self, stmt):
        if self._skip_locked:
            stmt = stmt.with_for_update(skip_locked=True)
        return stmt

    def find_by_key(self, idempotency_key: str) -> Optional[EventOutbox]:
        return self.db.execute(
            select(EventOutbox).where(EventOutbox.idempotency_key == idempotency_key)
        ).scalar_one_or_none()

    def enqueue(
        self,
        event_type: str,
        aggregate_id: str,
        payload: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        next_attempt_at: Optional[datetime] = None,
    ) -> EventOutbox:
        if idempotency_key is not None:
            existing = self.find_by_key(idempotency_key)
            if existing is not None:
                logger.debug("Outbox event %s already queued", idempotency_key)
                return existing

        event_id = generate_ulid()
        due = next_attempt_at or utc_now()
        event = EventOutbox(
            id=event_id,
            event_type=event_type,
            aggregate_id=aggregate_id,
            payload=payload or {},
            idempotency_key=idempotency_key or f"{event_type}:{event_id}",
            status=EventOutboxStatus.PENDING.value,
            attempt_count=0,
            next_attempt_at=due,
        )
        self.db.add(event)
        self.db.flush()
        return event

    def fetch_pending(self, limit: int = 200, now: Optional[datetime] = None) -> List[EventOutbox]:
        """Pending events whose backoff has elapsed, oldest due first."""
        stmt = (
            select(EventOutbox)
            .where(
                EventOutbox.status == EventOutboxStatus.PENDING.value,
                EventOutbox.next_attempt_at <= (now or utc_now()),
            )
            .order_by(EventOutbox.next_attempt_at, EventOutbox.id)
            .limit(limit)
        )
        return list(self.db.execute(self._claim(stmt)).scalars())

    def get_by_id(self, event_id: str, for_update: bool = False) -> Optional[EventOutbox]:
        if not for_update:
            return self.db.get(EventOutbox, event_id)
        stmt = select(EventOutbox).where(EventOutbox.id == event_id)
        return self.db.execute(self._claim(stmt)).scalar_one_or_none()

    def _require(self, event_id: str) -> EventOutbox:
        event = self.db.get(EventOutbox, event_id)
        if event is None:
            raise LookupError(f"Outbox event {event_id} does not exist")
        return event

    def mark_sent(self, event_id: str, attempt_count: int) -> None:
        event = self._require(event_id)
        event.status = EventOutboxStatus.SENT.value
        event.attempt_count = attempt_count
        event.last_error = None
        event.next_attempt_at = utc_now()
        self.db.flush()

    def mark_failed(
        self,
        event_id: str,
        *,
        attempt_count: int,
        backoff_seconds: int,
        error: Optional[str] = None,
        terminal: bool = False,
    ) -> None:
        """Record a failed attempt; ``terminal`` parks the row as FAILED."""
        event = self._require(event_id)
        now = utc_now()
        event.attempt_count = attempt_count
        event.last_error = error[:MAX_ERROR_LENGTH] if error else None
        if terminal:
            event.status = EventOutboxStatus.FAILED.value
            event.next_attempt_at = now
        else:
            event.status = EventOutboxStatus.PENDING.value
            event.next_attempt_at = now + timedelta(seconds=max(backoff_seconds, 1))
        self.db.flush()
