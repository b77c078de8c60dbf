"""Outbox-backed notifications: fan-out, preferences, retries and reads."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from marketplace.core.config import settings
from marketplace.core.enums import RoleName
from marketplace.core.exceptions import ForbiddenException, ValidationException
from marketplace.core.timezone_utils import ensure_utc, utc_now
from marketplace.models.event_outbox import EventOutbox, EventOutboxStatus
from marketplace.models.notification import Notification
from marketplace.services.notification_service import (
    AllAdmins,
    NotificationDeliveryError,
    NotificationService,
    RoleGroup,
    SingleUser,
    next_backoff,
)
from tests.factories import make_user


@pytest.fixture
def service(db):
    return NotificationService(db)


def queue(service, audience, type="booking_confirmed"):
    with service.transaction():
        event = service.notify(audience, type, "Title", "Body", link="/somewhere")
    return event.id


def notifications(db, user):
    return db.scalars(select(Notification).where(Notification.recipient_id == user.id)).all()


class TestDelivery:
    def test_notify_only_writes_outbox(self, db, service, customer):
        event_id = queue(service, SingleUser(customer.id))

        event = db.get(EventOutbox, event_id)
        assert event.status == EventOutboxStatus.PENDING.value
        assert event.payload["audience"] == {"kind": "user", "user_id": customer.id}
        assert notifications(db, customer) == []

    def test_deliver_single_user(self, db, service, customer):
        event_id = queue(service, SingleUser(customer.id))

        assert service.deliver_event(event_id) == 1

        [note] = notifications(db, customer)
        assert (note.type, note.title, note.link, note.is_read) == (
            "booking_confirmed",
            "Title",
            "/somewhere",
            False,
        )
        assert db.get(EventOutbox, event_id).status == EventOutboxStatus.SENT.value

    def test_redelivery_is_a_no_op(self, db, service, customer):
        event_id = queue(service, SingleUser(customer.id))
        service.deliver_event(event_id)
        assert service.deliver_event(event_id) is None
        assert len(notifications(db, customer)) == 1

    def test_all_admins(self, db, service, admin):
        second_admin = make_user(db, RoleName.ADMIN)
        make_user(db, RoleName.ADMIN, is_active=False)
        event_id = queue(service, AllAdmins())
        assert service.deliver_event(event_id) == 2
        assert len(notifications(db, second_admin)) == 1

    def test_role_group(self, db, service, driver, customer):
        event_id = queue(service, RoleGroup(RoleName.DRIVER), type="new_job")
        assert service.deliver_event(event_id) == 1
        assert notifications(db, customer) == []

    def test_muted_category_is_skipped(self, db, service):
        quiet = make_user(
            db,
            RoleName.CUSTOMER,
            notification_settings={"categories": {"booking_confirmed": False}},
        )
        event_id = queue(service, SingleUser(quiet.id))
        assert service.deliver_event(event_id) == 0
        assert db.get(EventOutbox, event_id).status == EventOutboxStatus.SENT.value

    def test_after_commit_delivers_immediately(self, db, service, customer):
        with service.transaction():
            service.notify(
                SingleUser(customer.id), "hello", "Hi", "There", after_commit=service.after_commit
            )
        assert len(notifications(db, customer)) == 1


class TestRetries:
    def _break_delivery(self, monkeypatch):
        def boom(self, event):
            raise RuntimeError("fan-out failed")

        monkeypatch.setattr(NotificationService, "_write_notifications", boom)

    def test_failure_is_recorded_and_rescheduled(self, db, service, customer, monkeypatch):
        event_id = queue(service, SingleUser(customer.id))
        self._break_delivery(monkeypatch)

        before = utc_now()
        with pytest.raises(NotificationDeliveryError) as exc:
            service.deliver_event(event_id)

        assert exc.value.attempt == 1
        assert exc.value.terminal is False
        assert exc.value.backoff_seconds == next_backoff(1)
        event = db.get(EventOutbox, event_id)
        db.refresh(event)
        assert event.status == EventOutboxStatus.PENDING.value
        assert event.attempt_count == 1
        assert "fan-out failed" in event.last_error
        assert ensure_utc(event.next_attempt_at) >= before + timedelta(seconds=next_backoff(1))

    def test_gives_up_after_max_attempts(self, db, service, customer, monkeypatch):
        monkeypatch.setattr(settings, "outbox_max_attempts", 2)
        event_id = queue(service, SingleUser(customer.id))
        self._break_delivery(monkeypatch)

        with pytest.raises(NotificationDeliveryError):
            service.deliver_event(event_id)
        with pytest.raises(NotificationDeliveryError) as exc:
            service.deliver_event(event_id)

        assert exc.value.terminal is True
        event = db.get(EventOutbox, event_id)
        db.refresh(event)
        assert event.status == EventOutboxStatus.FAILED.value
        assert service.deliver_event(event_id) is None

    def test_backoff_schedule(self):
        assert [next_backoff(n) for n in range(1, 8)] == [30, 120, 600, 1800, 7200, 7200, 7200]


class TestReading:
    def test_list_mark_read_and_count(self, db, service, customer):
        for _ in range(3):
            service.deliver_event(queue(service, SingleUser(customer.id)))

        listed = service.list_for_user(customer.id)
        assert len(listed) == 3
        assert service.unread_count(customer.id) == 3

        service.mark_read(customer.id, listed[0].id)
        assert service.unread_count(customer.id) == 2
        unread = service.list_for_user(customer.id, unread_only=True)
        assert {n.id for n in unread} == {n.id for n in listed[1:]}

        assert service.mark_all_read(customer.id) == 2
        assert service.unread_count(customer.id) == 0

    def test_cannot_read_someone_elses(self, db, service, customer, other_customer):
        service.deliver_event(queue(service, SingleUser(customer.id)))
        [note] = notifications(db, customer)
        with pytest.raises(ForbiddenException):
            service.mark_read(other_customer.id, note.id)

    @pytest.mark.parametrize("limit", [0, 201])
    def test_limit_bounds(self, service, customer, limit):
        with pytest.raises(ValidationException):
            service.list_for_user(customer.id, limit=limit)
