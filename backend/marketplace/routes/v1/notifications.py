# backend/marketplace/routes/v1/notifications.py
"""Notification inbox routes - API v1."""

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_current_actor, get_notification_service
from ...core.actor import Actor
from ...core.exceptions import DomainException
from ...schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from ...services.notification_service import NotificationService
from .common import handle_domain_exception, ulid_path

router = APIRouter(tags=["notifications-v1"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    unread_only: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    """List notifications for the current user, newest first."""
    notifications = service.list_for_user(actor.id, unread_only=unread_only, limit=limit)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=service.unread_count(actor.id),
    )


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=service.mark_all_read(actor.id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str = ulid_path("Notification ULID"),
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    try:
        return NotificationResponse.model_validate(service.mark_read(actor.id, notification_id))
    except DomainException as e:
        handle_domain_exception(e)
