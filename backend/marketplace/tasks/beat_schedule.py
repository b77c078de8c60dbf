# backend/marketplace/tasks/beat_schedule.py
"""Periodic task schedule."""

from datetime import timedelta

from celery.schedules import crontab

BEAT_SCHEDULE = {
    # Sweep for outbox events whose immediate delivery failed or never ran
    "dispatch-pending-notifications": {
        "task": "outbox.dispatch_pending",
        "schedule": timedelta(seconds=30),
        "options": {"queue": "notifications"},
    },
    "expire-stale-negotiations": {
        "task": "negotiations.expire_stale",
        "schedule": crontab(minute="*/15"),
        "options": {"queue": "maintenance"},
    },
    # Daily at 09:00 UTC
    "check-expiring-car-documents": {
        "task": "documents.check_expiring",
        "schedule": crontab(hour=9, minute=0),
        "options": {"queue": "maintenance"},
    },
}
