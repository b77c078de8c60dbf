"""Cars, notifications, reviews and the unversioned health and metrics endpoints."""

from datetime import date, datetime, time, timedelta, timezone

from marketplace.core.enums import ReservationStatus
from marketplace.models.reservation import Reservation
from tests.factories import auth_headers, in_hours


class TestOps:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["database"] == "ok"

    def test_metrics_exposition(self, client, car):
        client.get(f"/api/v1/cars/{car.id}")
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "marketplace_http_requests_total" in response.text
        assert "/api/v1/cars/:id" in response.text

    def test_request_id_is_generated(self, client):
        assert len(client.get("/health").headers["X-Request-ID"]) == 26

    def test_unknown_route_is_problem_json(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.headers["content-type"].startswith("application/problem+json")


class TestCars:
    def test_public_car_details(self, client, car):
        body = client.get(f"/api/v1/cars/{car.id}").json()
        assert body["hourly_rate"] == 10.0
        assert body["availability_status"] == "available"

    def test_slots_for_a_future_day(self, client, car):
        day = date.today() + timedelta(days=10)
        body = client.get(f"/api/v1/cars/{car.id}/slots", params={"day": day.isoformat()}).json()
        assert [s["local_time"] for s in body["slots"]][:2] == ["09:00", "10:00"]
        assert len(body["slots"]) == 9

    def test_calendar(self, client, car, customer):
        start = in_hours(48)
        client.post(
            "/api/v1/reservations",
            json={
                "car_id": car.id,
                "start_at": start.isoformat(),
                "end_at": (start + timedelta(hours=3)).isoformat(),
                "rate_type": "hourly",
            },
            headers=auth_headers(customer),
        )
        body = client.get(
            f"/api/v1/cars/{car.id}/calendar",
            params={
                "start": (start - timedelta(hours=2)).isoformat(),
                "end": (start + timedelta(hours=5)).isoformat(),
            },
        ).json()
        assert [b["status"] for b in body["booked"]] == ["pending"]
        assert len(body["free"]) == 2

    def test_document_upload_and_admin_verify(self, client, car, owner, admin):
        uploaded = client.post(
            f"/api/v1/cars/{car.id}/documents",
            json={"doc_type": "insurance", "expiry_date": "2031-01-01"},
            headers=auth_headers(owner),
        )
        assert uploaded.status_code == 201
        doc_url = f"/api/v1/cars/{car.id}/documents/{uploaded.json()['id']}"

        denied = client.post(
            f"{doc_url}/verify", json={"approve": True}, headers=auth_headers(owner)
        )
        assert denied.status_code == 403

        verified = client.post(
            f"{doc_url}/verify", json={"approve": True}, headers=auth_headers(admin)
        )
        assert verified.json()["verification_status"] == "verified"

        assert client.delete(doc_url, headers=auth_headers(owner)).status_code == 204
        listed = client.get(f"/api/v1/cars/{car.id}/documents", headers=auth_headers(owner))
        assert listed.json() == []

    def test_expiry_stats_are_admin_only(self, client, owner, admin):
        url = "/api/v1/cars/documents/expiry-stats"
        assert client.get(url, headers=auth_headers(owner)).status_code == 403
        stats = client.get(url, headers=auth_headers(admin))
        assert stats.json()["total"] == 0

    def test_availability_override(self, client, car, owner, customer):
        url = f"/api/v1/cars/{car.id}/availability"
        refused = client.patch(url, json={"status": "maintenance"}, headers=auth_headers(customer))
        assert refused.status_code == 403
        updated = client.patch(url, json={"status": "maintenance"}, headers=auth_headers(owner))
        assert updated.json()["availability_status"] == "maintenance"


class TestNotifications:
    def test_inbox_flow(self, client, car, customer, owner):
        client.post(
            "/api/v1/reservations",
            json={
                "car_id": car.id,
                "start_at": in_hours(30).isoformat(),
                "end_at": in_hours(32).isoformat(),
                "rate_type": "hourly",
            },
            headers=auth_headers(customer),
        )

        inbox = client.get("/api/v1/notifications", headers=auth_headers(owner)).json()
        assert inbox["unread_count"] >= 1
        first = inbox["notifications"][0]

        read = client.post(
            f"/api/v1/notifications/{first['id']}/read", headers=auth_headers(owner)
        )
        assert read.json()["is_read"] is True
        assert (
            client.post(
                f"/api/v1/notifications/{first['id']}/read", headers=auth_headers(customer)
            ).status_code
            == 403
        )

        cleared = client.post("/api/v1/notifications/read-all", headers=auth_headers(owner))
        assert cleared.json()["updated"] == inbox["unread_count"] - 1

    def test_limit_is_validated(self, client, customer):
        response = client.get(
            "/api/v1/notifications", params={"limit": 500}, headers=auth_headers(customer)
        )
        assert response.status_code == 422


class TestReviews:
    def _completed_rental(self, db, car, customer):
        start = datetime.combine(date.today() - timedelta(days=3), time(10), tzinfo=timezone.utc)
        db.add(
            Reservation(
                car_id=car.id,
                customer_id=customer.id,
                owner_id=car.owner_id,
                start_at=start,
                end_at=start + timedelta(hours=2),
                status=ReservationStatus.COMPLETED.value,
                total_amount=20,
                deposit_amount=4,
            )
        )
        db.commit()

    def test_car_review_returns_new_average(self, client, db, car, customer):
        self._completed_rental(db, car, customer)
        response = client.post(
            "/api/v1/reviews",
            json={"target_type": "car", "target_id": car.id, "rating": 4, "comment": "Smooth"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 201
        assert response.json()["target_rating_average"] == 4.0
        assert response.json()["target_rating_count"] == 1

        again = client.post(
            "/api/v1/reviews",
            json={"target_type": "car", "target_id": car.id, "rating": 2},
            headers=auth_headers(customer),
        )
        assert again.status_code == 409
        assert again.json()["code"] == "REVIEW_EXISTS"

    def test_review_needs_history(self, client, car, customer):
        response = client.post(
            "/api/v1/reviews",
            json={"target_type": "car", "target_id": car.id, "rating": 5},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403
