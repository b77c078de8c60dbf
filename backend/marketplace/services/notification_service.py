# backend/marketplace/services/notification_service.py
"""
In-app notifications.

``notify`` only writes a ``notification.requested`` row to the event outbox,
inside whatever transaction the caller has open, so a notification exists
if and only if the state change that caused it committed. Delivery turns
the outbox row into one ``Notification`` per recipient. It is attempted
right after the caller commits and retried by the outbox Celery tasks.

Recipients are addressed by ``Audience``:

    SingleUser(user_id)   one user
    AllAdmins()           every active admin
    RoleGroup(role)       every active user holding ``role``

Users that turned a category off in ``notification_settings`` are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from time import monotonic
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import RoleName
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..models.event_outbox import EventOutbox, EventOutboxStatus
from ..models.notification import Notification
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT_TYPE = "notification.requested"
BACKOFF_SECONDS = [30, 120, 600, 1800, 7200]


def next_backoff(attempt_number: int) -> int:
    """Return backoff delay for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


@dataclass(frozen=True)
class SingleUser:
    user_id: str

    def to_payload(self) -> Dict[str, Any]:
        return {"kind": "user", "user_id": self.user_id}


@dataclass(frozen=True)
class AllAdmins:
    def to_payload(self) -> Dict[str, Any]:
        return {"kind": "admins"}


@dataclass(frozen=True)
class RoleGroup:
    role: RoleName

    def to_payload(self) -> Dict[str, Any]:
        return {"kind": "role", "role": self.role.value}


Audience = Union[SingleUser, AllAdmins, RoleGroup]


def audience_from_payload(data: Dict[str, Any]) -> Audience:
    kind = data.get("kind")
    if kind == "user" and data.get("user_id"):
        return SingleUser(str(data["user_id"]))
    if kind == "admins":
        return AllAdmins()
    if kind == "role":
        return RoleGroup(RoleName(data["role"]))
    raise ValueError(f"Unknown notification audience: {data!r}")


class NotificationDeliveryError(Exception):
    """A delivery attempt failed; the outbox row already records the attempt."""

    def __init__(self, event_id: str, attempt: int, backoff_seconds: int, terminal: bool):
        self.event_id = event_id
        self.attempt = attempt
        self.backoff_seconds = backoff_seconds
        self.terminal = terminal
        super().__init__(
            f"Delivery of outbox event {event_id} failed on attempt {attempt}"
            + (" (giving up)" if terminal else f"; retry in {backoff_seconds}s")
        )


class NotificationService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.outbox_repository = RepositoryFactory.create_event_outbox_repository(db)
        self.notification_repository = RepositoryFactory.create_notification_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def notify(
        self,
        audience: Audience,
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
        *,
        after_commit: Optional[Callable[[str, Callable[[], Any]], None]] = None,
    ) -> EventOutbox:
        """
        Queue a notification in the caller's transaction.

        Pass the calling service's ``after_commit`` to attempt delivery as
        soon as that transaction commits; otherwise the outbox dispatcher
        picks the event up.
        """
        event = self.outbox_repository.enqueue(
            NOTIFICATION_EVENT_TYPE,
            aggregate_id=getattr(audience, "user_id", None) or type,
            payload={
                "audience": audience.to_payload(),
                "type": type,
                "title": title,
                "message": message,
                "link": link,
            },
        )
        if after_commit is not None:
            event_id = event.id
            after_commit(f"notification:{type}", lambda: self.deliver_event(event_id))
        return event

    def _resolve_recipients(self, audience: Audience) -> List[User]:
        if isinstance(audience, SingleUser):
            return self.user_repository.list_active_by_ids([audience.user_id])
        if isinstance(audience, AllAdmins):
            return self.user_repository.list_active_admins()
        return self.user_repository.list_active_by_role(audience.role)

    def _write_notifications(self, event: EventOutbox) -> int:
        payload = event.payload or {}
        audience = audience_from_payload(payload.get("audience") or {})
        category = payload.get("type") or "general"
        already = self.notification_repository.delivered_recipients(event.id)

        written = 0
        for user in self._resolve_recipients(audience):
            if user.id in already or not user.wants_notification(category):
                continue
            self.notification_repository.create(
                recipient_id=user.id,
                type=category,
                title=payload.get("title") or "",
                message=payload.get("message") or "",
                link=payload.get("link"),
                source_event_id=event.id,
            )
            written += 1
        return written

    def deliver_event(self, event_id: str) -> Optional[int]:
        """
        Deliver one pending outbox event.

        Returns the number of notifications written, or None when the event
        is missing or no longer pending.

        Raises:
            NotificationDeliveryError: the attempt failed and was recorded
        """
        event = self.outbox_repository.get_by_id(event_id, for_update=True)
        if event is None or event.status != EventOutboxStatus.PENDING.value:
            return None

        event_type = event.event_type
        attempt = int(event.attempt_count or 0) + 1
        prometheus_metrics.record_notification_attempt(event_type)
        start = monotonic()
        try:
            with self.transaction():
                written = self._write_notifications(event)
                self.outbox_repository.mark_sent(event_id, attempt)
        except Exception as exc:
            prometheus_metrics.observe_notification_dispatch(event_type, monotonic() - start)
            backoff = next_backoff(attempt)
            terminal = attempt >= settings.outbox_max_attempts
            with self.transaction():
                self.outbox_repository.mark_failed(
                    event_id,
                    attempt_count=attempt,
                    backoff_seconds=backoff,
                    error=str(exc),
                    terminal=terminal,
                )
            if terminal:
                prometheus_metrics.record_notification_outcome(event_type, "failed")
            raise NotificationDeliveryError(event_id, attempt, backoff, terminal) from exc

        prometheus_metrics.observe_notification_dispatch(event_type, monotonic() - start)
        prometheus_metrics.record_notification_outcome(event_type, "sent")
        logger.info(
            "Delivered outbox event %s: %s notification(s) on attempt %s",
            event_id,
            written,
            attempt,
        )
        return written

    @BaseService.measure_operation("list_notifications")
    def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        if limit < 1 or limit > 200:
            raise ValidationException("limit must be between 1 and 200")
        return self.notification_repository.list_for_recipient(
            user_id, unread_only=unread_only, limit=limit
        )

    def unread_count(self, user_id: str) -> int:
        return self.notification_repository.count_unread(user_id)

    @BaseService.measure_operation("mark_notification_read")
    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        with self.transaction():
            notification = self.notification_repository.get_by_id(notification_id)
            if notification is None:
                raise NotFoundException(
                    "Notification not found", details={"notification_id": notification_id}
                )
            if notification.recipient_id != user_id:
                raise ForbiddenException("Not your notification")
            if not notification.is_read:
                notification.mark_read()
            return notification

    @BaseService.measure_operation("mark_all_notifications_read")
    def mark_all_read(self, user_id: str) -> int:
        with self.transaction():
            return self.notification_repository.mark_all_read(user_id)
