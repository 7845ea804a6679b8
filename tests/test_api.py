from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import BOOKING_DATE, COUPLES_THEATER, EVENING_SLOT
from theater_booking.main import app


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _open(client, **body) -> dict:
    payload = {"theater_name": COUPLES_THEATER, "date": BOOKING_DATE, "time_slot": EVENING_SLOT}
    payload.update(body)
    response = client.post("/v1/wizards", json=payload)
    assert response.status_code == 201
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_open_wizard_returns_view(client):
    view = _open(client)

    assert view["active_step"] == "Overview"
    assert view["steps"] == ["Overview", "Occasion", "Food", "Terms & Conditions"]
    assert view["capacity"] == {"min": 2, "max": 2}
    assert view["draft"]["headcount"] == 2
    assert view["price"]["final_total"] == 1399
    assert view["session"]["theater_name"] == COUPLES_THEATER

    client.delete(f"/v1/wizards/{view['id']}")


def test_validation_error_is_reported_as_modal_payload(client):
    wizard_id = _open(client)["id"]

    response = client.post(f"/v1/wizards/{wizard_id}/steps/continue", json={})

    assert response.status_code == 400
    assert response.json() == {
        "title": "Missing Name",
        "message": "Please enter your name to continue.",
        "kind": "validation",
    }
    client.delete(f"/v1/wizards/{wizard_id}")


def test_unknown_wizard_is_404(client):
    assert client.get("/v1/wizards/nope").status_code == 404


def test_closed_wizard_is_gone(client):
    wizard_id = _open(client)["id"]

    assert client.delete(f"/v1/wizards/{wizard_id}").status_code == 204
    assert client.get(f"/v1/wizards/{wizard_id}").status_code == 404


def test_headcount_requires_value_or_action(client):
    wizard_id = _open(client)["id"]

    response = client.put(f"/v1/wizards/{wizard_id}/headcount", json={})

    assert response.status_code == 400
    client.delete(f"/v1/wizards/{wizard_id}")


def test_toggle_item_returns_notice(client):
    wizard_id = _open(client)["id"]

    response = client.post(f"/v1/wizards/{wizard_id}/services/Food/items/Popcorn/toggle")

    body = response.json()
    assert response.status_code == 200
    assert body["notice"]["message"] == "Added Popcorn • Total ₹1548"
    assert body["wizard"]["draft"]["selected_items"]["Food"][0]["name"] == "Popcorn"
    client.delete(f"/v1/wizards/{wizard_id}")


def test_handoff_carries_movie_into_wizard(client):
    response = client.post(
        "/v1/handoffs",
        json={"origin": "movies", "movie_title": "Interstellar", "theater_name": COUPLES_THEATER},
    )
    assert response.status_code == 201
    token = response.json()["token"]

    view = _open(client, theater_name=None, handoff_token=token)

    assert view["draft"]["want_movies"] is True
    assert view["draft"]["movie"]["name"] == "Interstellar"
    client.delete(f"/v1/wizards/{view['id']}")


def test_online_checkout_completes(client):
    wizard_id = _open(client)["id"]
    base = f"/v1/wizards/{wizard_id}"

    client.patch(f"{base}/customer", json={"name": "Asha", "phone": "9876543210", "email": "asha@example.com"})
    client.put(f"{base}/decoration", json={"enabled": False})
    move = client.post(f"{base}/steps/continue", json={}).json()["move"]
    assert move["confirmation"] is not None
    move = client.post(f"{base}/steps/continue", json={"confirmed": True}).json()["move"]
    assert move["step"] == "Occasion"
    client.put(f"{base}/occasion", json={"name": "Movie Night"})
    assert client.post(f"{base}/steps/continue", json={}).json()["move"]["step"] == "Food"
    client.post(f"{base}/services/Food/items/Popcorn/toggle")
    assert client.post(f"{base}/steps/continue", json={}).json()["move"]["step"] == "Terms & Conditions"
    client.put(f"{base}/terms", json={"agreed": True})
    assert client.post(f"{base}/steps/continue", json={}).json()["move"]["final"] is True

    response = client.post(f"{base}/checkout")

    assert response.status_code == 200
    payment = response.json()["payment"]
    assert payment["phase"] == "success"
    assert payment["outcome"]["message"] == "Payment completed and booking confirmed successfully!"
    assert payment["outcome"]["booking_id"].startswith("FMT-")
    client.delete(base)


def test_checkout_before_last_step_conflicts(client):
    wizard_id = _open(client)["id"]

    response = client.post(f"/v1/wizards/{wizard_id}/checkout")

    assert response.status_code == 409
    assert response.json()["title"] == "Checkout Unavailable"
    client.delete(f"/v1/wizards/{wizard_id}")


def test_callback_for_unknown_payment_is_404(client):
    response = client.post("/v1/payments/unknown/callback", json={"status": "success"})
    assert response.status_code == 404
