# backend/marketplace/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets service instances bound to its own database session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability import AvailabilityService
from ...services.car_service import CarService
from ...services.hiring_service import HiringService
from ...services.negotiation_service import NegotiationService
from ...services.notification_service import NotificationService
from ...services.reservation_service import ReservationService
from ...services.review_service import ReviewService
from .database import get_db


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_reservation_service(
    db: Session = Depends(get_db),
    availability_service: AvailabilityService = Depends(get_availability_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> ReservationService:
    """
    Get reservation service instance.

    Args:
        db: Database session
        availability_service: Conflict checks and slot grid
        notification_service: Outbox-backed notifications

    Returns:
        ReservationService instance
    """
    return ReservationService(db, availability_service, notification_service)


def get_negotiation_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> NegotiationService:
    return NegotiationService(db, notification_service)


def get_hiring_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> HiringService:
    return HiringService(db, notification_service)


def get_car_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> CarService:
    return CarService(db, notification_service)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    return ReviewService(db)
