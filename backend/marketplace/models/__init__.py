"""
Database models for the marketplace.

Importing this package registers every table on ``Base.metadata``.
"""

from .car import Car, CarDocument
from .event_outbox import EventOutbox, EventOutboxStatus
from .job import ApplicationMessage, ContractSignature, Job, JobApplication
from .negotiation import NegotiationCounterOffer, NegotiationMessage, RateNegotiation
from .notification import Notification
from .product import Product
from .reservation import Reservation, ReservationStatusEvent
from .review import Review
from .user import User

__all__ = [
    "ApplicationMessage",
    "Car",
    "CarDocument",
    "ContractSignature",
    "EventOutbox",
    "EventOutboxStatus",
    "Job",
    "JobApplication",
    "NegotiationCounterOffer",
    "NegotiationMessage",
    "Notification",
    "Product",
    "RateNegotiation",
    "Reservation",
    "ReservationStatusEvent",
    "Review",
    "User",
]
