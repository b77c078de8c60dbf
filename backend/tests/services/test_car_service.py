from datetime import date, timedelta

import pytest

from marketplace.core.enums import AvailabilityStatus, DocumentType, DocumentVerificationStatus
from marketplace.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from marketplace.models.notification import Notification
from marketplace.schemas.car import CarDocumentCreate
from marketplace.services.car_service import CarService
from tests.factories import actor_for

TODAY = date(2030, 6, 1)


@pytest.fixture
def service(db):
    return CarService(db)


def add_doc(service, owner, car, expiry, doc_type=DocumentType.INSURANCE):
    return service.add_document(
        actor_for(owner),
        car.id,
        CarDocumentCreate(
            doc_type=doc_type,
            document_number="INS-778",
            document_url="https://files.example.com/ins.pdf",
            expiry_date=expiry,
        ),
    )


def notifications_for(db, user):
    return [n.type for n in db.query(Notification).filter_by(recipient_id=user.id)]


class TestDocuments:
    def test_upload_is_pending_and_admins_hear(self, db, service, car, owner, admin):
        document = add_doc(service, owner, car, TODAY + timedelta(days=200))

        assert document.verification_status == DocumentVerificationStatus.PENDING.value
        assert document.id in car.documents
        assert notifications_for(db, admin) == ["document_uploaded"]

    def test_stranger_cannot_upload(self, service, car, customer):
        with pytest.raises(ForbiddenException):
            add_doc(service, customer, car, TODAY)

    def test_admin_verifies(self, db, service, car, owner, admin):
        document = add_doc(service, owner, car, TODAY + timedelta(days=200))
        verified = service.verify_document(actor_for(admin), car.id, document.id, approve=True)

        assert verified.verification_status == DocumentVerificationStatus.VERIFIED.value
        assert verified.verified_by_id == admin.id
        assert "document_verified" in notifications_for(db, owner)

    def test_admin_rejects_with_reason(self, service, car, owner, admin):
        document = add_doc(service, owner, car, TODAY + timedelta(days=200))
        rejected = service.verify_document(
            actor_for(admin), car.id, document.id, approve=False, rejection_reason="Blurry scan"
        )
        assert rejected.verification_status == DocumentVerificationStatus.REJECTED.value
        assert rejected.rejection_reason == "Blurry scan"

    def test_owner_cannot_verify(self, service, car, owner):
        document = add_doc(service, owner, car, TODAY + timedelta(days=200))
        with pytest.raises(ForbiddenException):
            service.verify_document(actor_for(owner), car.id, document.id, approve=True)

    def test_remove(self, service, car, owner):
        document = add_doc(service, owner, car, None)
        service.remove_document(actor_for(owner), car.id, document.id)
        assert service.get_car(car.id).documents == {}
        with pytest.raises(NotFoundException):
            service.remove_document(actor_for(owner), car.id, document.id)

    def test_manual_reminder(self, db, service, car, owner, admin):
        document = add_doc(service, owner, car, TODAY + timedelta(days=90))
        service.send_document_reminder(actor_for(admin), car.id, document.id)
        assert "document_reminder_manual" in notifications_for(db, owner)


class TestAvailabilityOverride:
    def test_owner_sets_maintenance(self, service, car, owner):
        updated = service.set_availability(actor_for(owner), car.id, AvailabilityStatus.MAINTENANCE)
        assert updated.availability_status == "maintenance"

    def test_customer_cannot(self, service, car, customer):
        with pytest.raises(ForbiddenException):
            service.set_availability(actor_for(customer), car.id, AvailabilityStatus.SOLD)


class TestExpirySweep:
    def test_reminder_on_offset_days_only_once(self, db, service, car, owner):
        add_doc(service, owner, car, TODAY + timedelta(days=14))

        first = service.check_expiring_documents(today=TODAY)
        again = service.check_expiring_documents(today=TODAY)

        assert (first.reminders_sent, first.documents_expired) == (1, 0)
        assert again.reminders_sent == 0
        assert notifications_for(db, owner).count("document_expiry_reminder") == 1

    def test_off_schedule_day_sends_nothing(self, service, car, owner):
        add_doc(service, owner, car, TODAY + timedelta(days=13))
        assert service.check_expiring_documents(today=TODAY).reminders_sent == 0

    def test_expired_document_is_marked_and_reported(self, db, service, car, owner, admin):
        document = add_doc(service, owner, car, TODAY - timedelta(days=1))

        result = service.check_expiring_documents(today=TODAY)
        repeat = service.check_expiring_documents(today=TODAY)

        assert result.documents_expired == 1
        assert repeat.documents_expired == 0
        assert document.verification_status == DocumentVerificationStatus.EXPIRED.value
        assert "document_expired" in notifications_for(db, owner)
        assert "document_expired" in notifications_for(db, admin)

    def test_expired_document_cannot_be_verified(self, service, car, owner, admin):
        document = add_doc(service, owner, car, TODAY - timedelta(days=1))
        service.check_expiring_documents(today=TODAY)
        with pytest.raises(ValidationException):
            service.verify_document(actor_for(admin), car.id, document.id, approve=True)

    def test_undated_documents_are_ignored(self, service, car, owner):
        add_doc(service, owner, car, None, doc_type=DocumentType.REGISTRATION)
        result = service.check_expiring_documents(today=TODAY)
        assert (result.reminders_sent, result.documents_expired) == (0, 0)


class TestExpiryStats:
    def test_buckets(self, service, car, owner):
        for days in (-3, 2, 7, 20, 30, 31, 365):
            add_doc(service, owner, car, TODAY + timedelta(days=days))

        stats = service.expiry_stats(today=TODAY)

        assert stats.expired == 1
        assert stats.expiring_in_7_days == 2
        assert stats.expiring_in_30_days == 2
        assert stats.valid == 2
        assert stats.total == 7
