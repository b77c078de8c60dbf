# backend/marketplace/repositories/factory.py
"""
Repository factory.

Services get their repositories from here so tests can swap one out in a
single place.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

if TYPE_CHECKING:
    from .car_repository import CarDocumentRepository, CarRepository
    from .event_outbox_repository import EventOutboxRepository
    from .job_repository import JobApplicationRepository, JobRepository
    from .negotiation_repository import NegotiationRepository
    from .notification_repository import NotificationRepository
    from .reservation_repository import ReservationRepository
    from .review_repository import ReviewRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_reservation_repository(db: Session) -> "ReservationRepository":
        from .reservation_repository import ReservationRepository

        return ReservationRepository(db)

    @staticmethod
    def create_car_repository(db: Session) -> "CarRepository":
        from .car_repository import CarRepository

        return CarRepository(db)

    @staticmethod
    def create_car_document_repository(db: Session) -> "CarDocumentRepository":
        from .car_repository import CarDocumentRepository

        return CarDocumentRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_negotiation_repository(db: Session) -> "NegotiationRepository":
        from .negotiation_repository import NegotiationRepository

        return NegotiationRepository(db)

    @staticmethod
    def create_job_repository(db: Session) -> "JobRepository":
        from .job_repository import JobRepository

        return JobRepository(db)

    @staticmethod
    def create_job_application_repository(db: Session) -> "JobApplicationRepository":
        from .job_repository import JobApplicationRepository

        return JobApplicationRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)

    @staticmethod
    def create_review_repository(db: Session) -> "ReviewRepository":
        from .review_repository import ReviewRepository

        return ReviewRepository(db)
