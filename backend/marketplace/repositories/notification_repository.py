"""In-app notification data access."""

from typing import List

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..core.timezone_utils import utc_now
from ..models.notification import Notification
from .base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session):
        super().__init__(db, Notification)

    def list_for_recipient(
        self, recipient_id: str, *, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        query = self._build_query().filter(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc()).limit(limit)
        return self._execute_query(query)

    def count_unread(self, recipient_id: str) -> int:
        return self.count(recipient_id=recipient_id, is_read=False)

    def delivered_recipients(self, source_event_id: str) -> set[str]:
        rows = (
            self.db.query(Notification.recipient_id)
            .filter(Notification.source_event_id == source_event_id)
            .all()
        )
        return {row[0] for row in rows}

    def mark_all_read(self, recipient_id: str) -> int:
        result = self.db.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utc_now())
        )
        self.db.flush()
        return int(result.rowcount or 0)
