# backend/marketplace/tasks/maintenance_tasks.py
"""Periodic sweeps: negotiation expiry and car document expiry."""

from typing import Dict

from celery.utils.log import get_task_logger

from ..services.car_service import CarService
from ..services.negotiation_service import NegotiationService
from .celery_app import celery_app
from .session_scope import session_scope

logger = get_task_logger(__name__)


@celery_app.task(name="negotiations.expire_stale", max_retries=0)
def expire_stale_negotiations() -> int:
    with session_scope() as session:
        expired = NegotiationService(session).expire_stale()
    if expired:
        logger.info("Expired %s stale negotiations", expired)
    return expired


@celery_app.task(name="documents.check_expiring", max_retries=0)
def check_expiring_documents() -> Dict[str, int]:
    """Daily document sweep: expiry reminders, then expiry of lapsed documents."""
    with session_scope() as session:
        result = CarService(session).check_expiring_documents()
    return {
        "reminders_sent": result.reminders_sent,
        "documents_expired": result.documents_expired,
    }
