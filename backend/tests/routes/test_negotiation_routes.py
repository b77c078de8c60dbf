from datetime import timedelta

from tests.factories import auth_headers, in_hours

BASE = "/api/v1/negotiations"


def open_negotiation(client, car, customer, rate=8, start=None):
    start = start or in_hours(30)
    response = client.post(
        BASE,
        json={
            "car_id": car.id,
            "rate_type": "hourly",
            "proposed_rate": rate,
            "start_at": start.isoformat(),
            "end_at": (start + timedelta(hours=2)).isoformat(),
            "message": "Regular customer",
        },
        headers=auth_headers(customer),
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_counter_accept_then_book_at_agreed_rate(client, car, customer, owner):
    start = in_hours(30)
    negotiation = open_negotiation(client, car, customer, start=start)
    url = f"{BASE}/{negotiation['id']}"

    countered = client.post(
        f"{url}/respond",
        json={"action": "counter", "counter_rate": 9},
        headers=auth_headers(owner),
    )
    assert countered.status_code == 200
    assert countered.json()["status"] == "countered"
    assert [c["rate"] for c in countered.json()["counter_offers"]] == [9.0]

    accepted = client.post(
        f"{url}/respond", json={"action": "accept"}, headers=auth_headers(customer)
    )
    assert accepted.json()["status"] == "accepted"

    booking = client.post(
        "/api/v1/reservations",
        json={
            "car_id": car.id,
            "start_at": start.isoformat(),
            "end_at": (start + timedelta(hours=2)).isoformat(),
            "rate_type": "hourly",
            "negotiation_id": negotiation["id"],
        },
        headers=auth_headers(customer),
    )
    assert booking.status_code == 201
    assert booking.json()["total_amount"] == 18.0
    assert booking.json()["original_amount"] == 20.0
    assert booking.json()["is_negotiated"] is True

    reused = client.post(
        "/api/v1/reservations",
        json={
            "car_id": car.id,
            "start_at": (start + timedelta(days=2)).isoformat(),
            "end_at": (start + timedelta(days=2, hours=2)).isoformat(),
            "rate_type": "hourly",
            "negotiation_id": negotiation["id"],
        },
        headers=auth_headers(customer),
    )
    assert reused.status_code == 409
    assert reused.json()["code"] == "NEGOTIATION_ALREADY_USED"


def test_second_open_negotiation_is_409(client, car, customer):
    open_negotiation(client, car, customer)
    response = client.post(
        BASE,
        json={
            "car_id": car.id,
            "rate_type": "hourly",
            "proposed_rate": "7.50",
            "start_at": in_hours(40).isoformat(),
            "end_at": in_hours(42).isoformat(),
        },
        headers=auth_headers(customer),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "NEGOTIATION_EXISTS"


def test_proposer_cannot_answer_own_offer(client, car, customer):
    negotiation = open_negotiation(client, car, customer)
    response = client.post(
        f"{BASE}/{negotiation['id']}/respond",
        json={"action": "accept"},
        headers=auth_headers(customer),
    )
    assert response.status_code == 403


def test_messages_and_listing(client, car, customer, owner, other_customer):
    negotiation = open_negotiation(client, car, customer)
    url = f"{BASE}/{negotiation['id']}"

    posted = client.post(
        f"{url}/messages", json={"content": "Is 8 fair?"}, headers=auth_headers(owner)
    )
    assert [m["content"] for m in posted.json()["messages"]] == ["Regular customer", "Is 8 fair?"]

    listed = client.get(BASE, headers=auth_headers(owner)).json()
    assert [n["id"] for n in listed] == [negotiation["id"]]
    assert client.get(url, headers=auth_headers(other_customer)).status_code == 403
