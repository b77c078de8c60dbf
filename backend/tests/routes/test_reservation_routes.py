from datetime import timedelta

import pytest

from marketplace.core.exceptions import ResourceBusyException
from marketplace.services import reservation_service
from tests.factories import auth_headers, in_hours

BASE = "/api/v1/reservations"


def booking_body(car, start=None, hours=2, **extra):
    start = start or in_hours(30)
    body = {
        "kind": "booking",
        "car_id": car.id,
        "start_at": start.isoformat(),
        "end_at": (start + timedelta(hours=hours)).isoformat(),
        "rate_type": "hourly",
    }
    body.update(extra)
    return body


@pytest.fixture
def booked(client, car, customer):
    response = client.post(BASE, json=booking_body(car), headers=auth_headers(customer))
    assert response.status_code == 201
    return response.json()


class TestAuth:
    def test_missing_token(self, client, car):
        response = client.post(BASE, json=booking_body(car))

        assert response.status_code == 401
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["detail"] == "Not authenticated"

    def test_garbage_token(self, client, car):
        response = client.post(
            BASE, json=booking_body(car), headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Could not validate credentials"

    def test_deactivated_user(self, client, db, car, customer):
        customer.is_active = False
        db.commit()
        response = client.get(BASE, headers=auth_headers(customer))
        assert response.status_code == 401


class TestCreate:
    def test_created_with_pricing(self, booked, car, customer):
        assert booked["status"] == "pending"
        assert booked["customer_id"] == customer.id
        assert booked["owner_id"] == car.owner_id
        assert booked["total_amount"] == 20.0
        assert booked["deposit_amount"] == 4.0
        assert [e["status"] for e in booked["status_history"]] == ["pending"]

    def test_overlap_is_409_with_details(self, client, booked, car, other_customer):
        start = in_hours(31)
        response = client.post(
            BASE, json=booking_body(car, start=start), headers=auth_headers(other_customer)
        )

        assert response.status_code == 409
        problem = response.json()
        assert problem["code"] == "BOOKING_CONFLICT"
        assert problem["errors"]["conflicting_reservation_id"] == booked["id"]
        assert problem["instance"] == BASE

    def test_busy_lock_is_409(self, client, car, customer, monkeypatch):
        def busy(*args, **kwargs):
            raise ResourceBusyException(car.id, 0.0)

        monkeypatch.setattr(reservation_service, "resource_lock", busy)
        response = client.post(BASE, json=booking_body(car), headers=auth_headers(customer))
        assert response.status_code == 409
        assert response.json()["code"] == "RESOURCE_BUSY"

    def test_schema_error_is_422(self, client, car, customer):
        body = booking_body(car)
        del body["rate_type"]
        response = client.post(BASE, json=body, headers=auth_headers(customer))

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"
        assert response.json()["errors"]

    def test_unknown_fields_are_rejected(self, client, car, customer):
        response = client.post(
            BASE, json=booking_body(car, discount="50%"), headers=auth_headers(customer)
        )
        assert response.status_code == 422

    def test_past_start_is_400(self, client, car, customer):
        response = client.post(
            BASE, json=booking_body(car, start=in_hours(-5)), headers=auth_headers(customer)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_owner_cannot_book(self, client, car, owner):
        response = client.post(BASE, json=booking_body(car), headers=auth_headers(owner))
        assert response.status_code == 403

    def test_request_id_is_echoed(self, client, car, customer):
        response = client.post(
            BASE,
            json=booking_body(car),
            headers={**auth_headers(customer), "X-Request-ID": "req-abc"},
        )
        assert response.headers["X-Request-ID"] == "req-abc"


class TestLifecycle:
    def test_owner_confirms_and_customer_sees_it(self, client, booked, owner, customer):
        url = f"{BASE}/{booked['id']}"
        confirmed = client.post(
            f"{url}/transition", json={"status": "confirmed"}, headers=auth_headers(owner)
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"

        fetched = client.get(url, headers=auth_headers(customer))
        assert fetched.json()["status"] == "confirmed"

    def test_illegal_move_is_409(self, client, booked, owner):
        response = client.post(
            f"{BASE}/{booked['id']}/transition",
            json={"status": "completed"},
            headers=auth_headers(owner),
        )
        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_STATE_TRANSITION"

    def test_customer_cannot_confirm(self, client, booked, customer):
        response = client.post(
            f"{BASE}/{booked['id']}/transition",
            json={"status": "confirmed"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403

    def test_cancel_a_day_ahead_refunds_half(self, client, booked, customer):
        response = client.post(
            f"{BASE}/{booked['id']}/cancel",
            json={"reason": "Plans changed"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["cancellation_reason"] == "Plans changed"
        assert body["refund_amount"] == 10.0

    def test_cancel_without_body(self, client, booked, customer):
        response = client.post(f"{BASE}/{booked['id']}/cancel", headers=auth_headers(customer))
        assert response.status_code == 200

    def test_reschedule(self, client, booked, customer):
        start = in_hours(60)
        response = client.post(
            f"{BASE}/{booked['id']}/reschedule",
            json={"start_at": start.isoformat()},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["rescheduled_from_start"] == booked["start_at"]

    def test_stranger_cannot_read(self, client, booked, other_customer):
        response = client.get(f"{BASE}/{booked['id']}", headers=auth_headers(other_customer))
        assert response.status_code == 403

    def test_malformed_id(self, client, customer):
        response = client.get(f"{BASE}/not-a-ulid", headers=auth_headers(customer))
        assert response.status_code == 422

    def test_lists_by_side(self, client, booked, customer, owner):
        mine = client.get(BASE, headers=auth_headers(customer)).json()
        on_my_cars = client.get(BASE, params={"as_owner": True}, headers=auth_headers(owner))
        assert [r["id"] for r in mine] == [booked["id"]]
        assert [r["id"] for r in on_my_cars.json()] == [booked["id"]]
