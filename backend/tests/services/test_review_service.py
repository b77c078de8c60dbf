from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace.core.enums import (
    ApplicationStatus,
    ContractStatus,
    ReservationKind,
    ReservationStatus,
    RoleName,
)
from marketplace.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from marketplace.models.job import Job, JobApplication
from marketplace.models.product import Product
from marketplace.schemas.reservation import ReservationCreate
from marketplace.services.reservation_service import ReservationService
from marketplace.services.review_service import (
    CarTarget,
    DriverTarget,
    ProductTarget,
    ReviewService,
)
from tests.factories import actor_for, in_hours, make_user


@pytest.fixture
def service(db):
    return ReviewService(db)


def completed_rental(db, car, customer, owner):
    reservations = ReservationService(db)
    start = in_hours(30)
    reservation = reservations.create_reservation(
        actor_for(customer),
        ReservationCreate(
            kind=ReservationKind.BOOKING,
            car_id=car.id,
            start_at=start,
            end_at=start + timedelta(hours=2),
            rate_type="hourly",
        ),
    )
    for target in (ReservationStatus.CONFIRMED, ReservationStatus.ACTIVE, ReservationStatus.COMPLETED):
        reservations.transition_reservation(actor_for(owner), reservation.id, target)
    return reservation


class TestCarReviews:
    def test_renter_reviews_car(self, db, service, car, customer, owner):
        completed_rental(db, car, customer, owner)

        review, rated = service.submit_review(actor_for(customer), CarTarget(car.id), 4, "Clean")

        assert review.target_type == "car"
        assert review.author_id == customer.id
        assert rated is car
        assert car.rating_count == 1
        assert car.rating_average == Decimal("4.00")

    def test_average_across_reviewers(self, db, service, car, customer, other_customer, owner):
        completed_rental(db, car, customer, owner)
        completed_rental(db, car, other_customer, owner)
        service.submit_review(actor_for(customer), CarTarget(car.id), 5)
        service.submit_review(actor_for(other_customer), CarTarget(car.id), 2)
        assert car.rating_count == 2
        assert car.rating_average == Decimal("3.50")

    def test_needs_completed_rental(self, service, car, customer):
        with pytest.raises(ForbiddenException):
            service.submit_review(actor_for(customer), CarTarget(car.id), 5)

    def test_one_review_per_author(self, db, service, car, customer, owner):
        completed_rental(db, car, customer, owner)
        service.submit_review(actor_for(customer), CarTarget(car.id), 5)
        with pytest.raises(ConflictException) as exc:
            service.submit_review(actor_for(customer), CarTarget(car.id), 1)
        assert exc.value.code == "REVIEW_EXISTS"

    def test_owner_cannot_review_own_car(self, service, car, owner):
        with pytest.raises(ForbiddenException):
            service.submit_review(actor_for(owner), CarTarget(car.id), 5)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_range(self, service, car, customer, rating):
        with pytest.raises(ValidationException):
            service.submit_review(actor_for(customer), CarTarget(car.id), rating)


class TestDriverReviews:
    def test_owner_reviews_hired_driver(self, db, service, owner, driver):
        job = Job(owner_id=owner.id, title="Night shift", status="filled")
        db.add(job)
        db.flush()
        db.add(
            JobApplication(
                job_id=job.id,
                driver_id=driver.id,
                status=ApplicationStatus.ACCEPTED.value,
                contract_status=ContractStatus.SIGNED.value,
            )
        )
        db.commit()

        _, rated = service.submit_review(actor_for(owner), DriverTarget(driver.id), 5)
        assert rated.rating_count == 1

    def test_unrelated_owner_is_refused(self, service, owner, driver):
        with pytest.raises(ForbiddenException):
            service.submit_review(actor_for(owner), DriverTarget(driver.id), 5)

    def test_target_must_be_a_driver(self, service, owner, customer):
        with pytest.raises(NotFoundException):
            service.submit_review(actor_for(owner), DriverTarget(customer.id), 5)


class TestProductReviews:
    def test_any_user_reviews_active_product(self, db, service, customer):
        vendor = make_user(db, RoleName.OWNER)
        product = Product(vendor_id=vendor.id, name="Seat covers", price=Decimal("40"))
        db.add(product)
        db.commit()

        _, rated = service.submit_review(actor_for(customer), ProductTarget(product.id), 3)
        assert rated.rating_average == Decimal("3.00")

    def test_inactive_product(self, db, service, customer):
        vendor = make_user(db, RoleName.OWNER)
        product = Product(vendor_id=vendor.id, name="Old wax", price=Decimal("5"), is_active=False)
        db.add(product)
        db.commit()
        with pytest.raises(NotFoundException):
            service.submit_review(actor_for(customer), ProductTarget(product.id), 3)
