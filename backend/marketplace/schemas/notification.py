"""Notification schemas."""

from typing import List, Optional

from .base import ResponseModel, UtcDatetime


class NotificationResponse(ResponseModel):
    id: str
    type: str
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool
    read_at: Optional[UtcDatetime] = None
    created_at: UtcDatetime


class NotificationListResponse(ResponseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(ResponseModel):
    updated: int
