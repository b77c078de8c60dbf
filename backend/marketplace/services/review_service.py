# backend/marketplace/services/review_service.py
"""
Reviews of drivers, cars and products.

A review is tied to a ``ReviewTarget``; each target resolves to a row that
carries the running rating (``RateableMixin``), so the average update is the
same whatever is being reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional, Protocol, Tuple, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.enums import ReviewTargetType, RoleName
from ..core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..models.car import Car
from ..models.product import Product
from ..models.review import Review
from ..models.user import User
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class Rateable(Protocol):
    rating_average: object
    rating_count: object

    def apply_rating_update(self, rating: int) -> None:
        ...


@dataclass(frozen=True)
class DriverTarget:
    user_id: str
    target_type = ReviewTargetType.DRIVER

    @property
    def target_id(self) -> str:
        return self.user_id


@dataclass(frozen=True)
class CarTarget:
    car_id: str
    target_type = ReviewTargetType.CAR

    @property
    def target_id(self) -> str:
        return self.car_id


@dataclass(frozen=True)
class ProductTarget:
    product_id: str
    target_type = ReviewTargetType.PRODUCT

    @property
    def target_id(self) -> str:
        return self.product_id


ReviewTarget = Union[DriverTarget, CarTarget, ProductTarget]


def make_target(target_type: ReviewTargetType, target_id: str) -> ReviewTarget:
    if target_type == ReviewTargetType.DRIVER:
        return DriverTarget(target_id)
    if target_type == ReviewTargetType.CAR:
        return CarTarget(target_id)
    return ProductTarget(target_id)


class ReviewService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_review_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.car_repository = RepositoryFactory.create_car_repository(db)
        self.product_repository = RepositoryFactory.create_base_repository(db, Product)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.application_repository = RepositoryFactory.create_job_application_repository(db)

    def _resolve(self, actor: Actor, target: ReviewTarget) -> Tuple[Rateable, Optional[str]]:
        """Load the rated row and return it with the id of whoever it belongs to."""
        if isinstance(target, DriverTarget):
            driver: Optional[User] = self.user_repository.get_by_id(target.user_id)
            if driver is None or not driver.is_active or driver.role != RoleName.DRIVER.value:
                raise NotFoundException("Driver not found", details={"driver_id": target.user_id})
            return driver, driver.id
        if isinstance(target, CarTarget):
            car: Optional[Car] = self.car_repository.get_by_id(target.car_id)
            if car is None:
                raise NotFoundException("Car not found", details={"car_id": target.car_id})
            return car, car.owner_id
        product: Optional[Product] = self.product_repository.get_by_id(target.product_id)
        if product is None or not product.is_active:
            raise NotFoundException("Product not found", details={"product_id": target.product_id})
        return product, product.vendor_id

    def _check_eligible(self, actor: Actor, target: ReviewTarget) -> None:
        if isinstance(target, DriverTarget):
            eligible = self.application_repository.has_accepted_with_owner(
                target.user_id, actor.id
            ) or self.reservation_repository.has_completed_between(
                actor.id, owner_id=target.user_id
            )
            if not eligible:
                raise ForbiddenException(
                    "You can only review a driver you have hired or ridden with"
                )
        elif isinstance(target, CarTarget):
            if not self.reservation_repository.has_completed_between(actor.id, car_id=target.car_id):
                raise ForbiddenException("You can only review a car you have rented")

    @BaseService.measure_operation("submit_review")
    def submit_review(
        self,
        actor: Actor,
        target: ReviewTarget,
        rating: int,
        comment: Optional[str] = None,
    ) -> Tuple[Review, Rateable]:
        """
        Record a review and fold it into the target's running average.

        Raises:
            ValidationException: rating outside 1..5
            NotFoundException: target missing
            ForbiddenException: self-review, or no qualifying history with the target
            ConflictException: author already reviewed this target
        """
        if not 1 <= int(rating) <= 5:
            raise ValidationException("Rating must be between 1 and 5")

        rated, belongs_to = self._resolve(actor, target)
        if belongs_to == actor.id:
            raise ForbiddenException("You cannot review yourself or your own listing")
        self._check_eligible(actor, target)
        if self.repository.exists_for(actor.id, target.target_type.value, target.target_id):
            raise ConflictException(
                "You have already reviewed this", code="REVIEW_EXISTS"
            )

        with self.transaction():
            try:
                review = self.repository.create(
                    author_id=actor.id,
                    target_type=target.target_type.value,
                    target_id=target.target_id,
                    rating=int(rating),
                    comment=comment,
                )
            except IntegrityError:
                raise ConflictException("You have already reviewed this", code="REVIEW_EXISTS")
            rated.apply_rating_update(int(rating))

        self.log_operation(
            "submit_review",
            target_type=target.target_type.value,
            target_id=target.target_id,
        )
        return review, rated
