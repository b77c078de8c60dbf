# backend/marketplace/tasks/notification_tasks.py
"""
Celery tasks for dispatching notification outbox events.

Implements a two-step workflow:
1. `outbox.dispatch_pending` periodically enqueues delivery tasks.
2. `outbox.deliver_event` performs delivery with retries and backoff.

Most events are delivered right after the request that raised them
commits; these tasks pick up whatever that first attempt missed.
"""

from __future__ import annotations

from typing import Any, Optional

from celery.app.task import Task  # noqa: F401 - used for type hints
from celery.utils.log import get_task_logger

from ..core.config import settings
from ..database import SessionLocal
from ..repositories.event_outbox_repository import EventOutboxRepository
from ..services.notification_service import NotificationDeliveryError, NotificationService
from .celery_app import celery_app
from .session_scope import session_scope

logger = get_task_logger(__name__)


@celery_app.task(name="outbox.dispatch_pending", max_retries=0, queue="notifications")
def dispatch_pending() -> int:
    """
    Fetch pending outbox events and enqueue delivery tasks.

    Returns the number of events scheduled.
    """
    with session_scope() as session:
        repo = EventOutboxRepository(session)
        pending = repo.fetch_pending(limit=settings.outbox_dispatch_batch_size)
        for event in pending:
            deliver_event.apply_async((event.id,), queue="notifications")
        scheduled: int = len(pending)
        if scheduled:
            logger.info("Scheduled %s outbox events for delivery", scheduled)
        return scheduled


@celery_app.task(
    name="outbox.deliver_event",
    bind=True,
    max_retries=settings.outbox_max_attempts,
    default_retry_delay=30,
    queue="notifications",
)
def deliver_event(self: "Task[Any, Any]", event_id: str) -> Optional[int]:
    """Deliver a single outbox event; returns the number of notifications written."""
    session = SessionLocal()
    try:
        try:
            written = NotificationService(session).deliver_event(event_id)
        except NotificationDeliveryError as exc:
            if exc.terminal:
                logger.error(
                    "Outbox event %s failed permanently after %s attempts",
                    event_id,
                    exc.attempt,
                )
                raise
            logger.warning(
                "Retrying outbox event %s attempt=%s backoff=%ss",
                event_id,
                exc.attempt,
                exc.backoff_seconds,
            )
            raise self.retry(countdown=exc.backoff_seconds, exc=exc)
        if written is None:
            logger.info("Outbox event %s missing or already handled; skipping", event_id)
        return written
    finally:
        session.close()
