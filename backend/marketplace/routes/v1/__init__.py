# backend/marketplace/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from fastapi import APIRouter

from . import applications, cars, jobs, negotiations, notifications, reservations, reviews

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(reservations.router, prefix="/reservations")
api_v1.include_router(cars.router, prefix="/cars")
api_v1.include_router(negotiations.router, prefix="/negotiations")
api_v1.include_router(jobs.router, prefix="/jobs")
api_v1.include_router(applications.router, prefix="/applications")
api_v1.include_router(reviews.router, prefix="/reviews")
api_v1.include_router(notifications.router, prefix="/notifications")

__all__ = [
    "api_v1",
    "applications",
    "cars",
    "jobs",
    "negotiations",
    "notifications",
    "reservations",
    "reviews",
]
