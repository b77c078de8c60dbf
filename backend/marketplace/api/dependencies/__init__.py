# backend/marketplace/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .auth import get_current_actor, require_admin
from .database import get_db
from .services import (
    get_availability_service,
    get_car_service,
    get_hiring_service,
    get_negotiation_service,
    get_notification_service,
    get_reservation_service,
    get_review_service,
)

__all__ = [
    # Auth
    "get_current_actor",
    "require_admin",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_car_service",
    "get_hiring_service",
    "get_negotiation_service",
    "get_notification_service",
    "get_reservation_service",
    "get_review_service",
]
