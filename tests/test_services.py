"""Tests for the services endpoints and their cache."""
from __future__ import annotations

from datetime import date

import pytest

from salon_booking.cache import SERVICES_ACTIVE, service_key
from salon_booking.extensions import cache, db
from salon_booking.models import Booking, Service

NEW_SERVICE = {
    "name": "Thai massage",
    "description": "Traditional stretching massage on a mat",
    "durationMinutes": 90,
    "priceCents": 9000,
    "displayOrder": 2,
}


@pytest.fixture
def setup_data(app):
    with app.app_context():
        services = [
            Service(name="Relaxing massage", description="Gentle full body massage",
                    duration_minutes=60, price_cents=6000, display_order=1),
            Service(name="Foot reflexology", description="Pressure points on the feet",
                    duration_minutes=30, price_cents=3500, display_order=1),
            Service(name="Old ritual", description="Retired ritual, kept for history",
                    duration_minutes=45, price_cents=5000, display_order=0, is_active=False),
        ]
        db.session.add_all(services)
        db.session.commit()
        return [s.service_id for s in services]


def test_list_services_hides_inactive_and_orders_for_display(client, setup_data) -> None:
    response = client.get("/services")
    names = [s["name"] for s in response.get_json()["services"]]

    assert response.status_code == 200
    assert names == ["Foot reflexology", "Relaxing massage"]


def test_include_inactive_needs_staff(client, setup_data, client_user, pro_user) -> None:
    as_client = client.get("/services?includeInactive=true", headers=client_user[1])
    as_pro = client.get("/services?includeInactive=true", headers=pro_user[1])

    assert len(as_client.get_json()["services"]) == 2
    assert [s["name"] for s in as_pro.get_json()["services"]][0] == "Old ritual"


def test_list_services_is_cached(client, setup_data, app) -> None:
    client.get("/services")

    with app.app_context():
        assert [s["name"] for s in cache.get(SERVICES_ACTIVE)] == ["Foot reflexology", "Relaxing massage"]


def test_get_service(client, setup_data, app) -> None:
    response = client.get(f"/services/{setup_data[0]}")

    assert response.status_code == 200
    assert response.get_json()["service"]["price"] == 60.0
    with app.app_context():
        assert cache.get(service_key(setup_data[0]))["name"] == "Relaxing massage"

    assert client.get("/services/999").status_code == 404


def test_create_service_201_invalidates_list(client, setup_data, pro_user) -> None:
    client.get("/services")

    response = client.post("/services", json=NEW_SERVICE, headers=pro_user[1])
    listed = [s["name"] for s in client.get("/services").get_json()["services"]]

    assert response.status_code == 201
    assert response.get_json()["service"]["duration_minutes"] == 90
    assert "Thai massage" in listed


def test_create_service_requires_staff(client, setup_data, client_user) -> None:
    assert client.post("/services", json=NEW_SERVICE).status_code == 401
    assert client.post("/services", json=NEW_SERVICE, headers=client_user[1]).status_code == 403


@pytest.mark.parametrize("override", [
    {"name": "ab"},
    {"description": "short"},
    {"durationMinutes": 0},
    {"priceCents": -1},
    {"durationMinutes": "long"},
])
def test_create_service_validation_400(client, pro_user, override) -> None:
    response = client.post("/services", json={**NEW_SERVICE, **override}, headers=pro_user[1])

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_update_service_refreshes_cached_entry(client, setup_data, pro_user) -> None:
    service_id = setup_data[0]
    client.get(f"/services/{service_id}")

    response = client.patch(f"/services/{service_id}", json={"priceCents": 6500}, headers=pro_user[1])

    assert response.status_code == 200
    assert client.get(f"/services/{service_id}").get_json()["service"]["price_cents"] == 6500


def test_update_duration_of_booked_service_409(client, setup_data, pro_user, client_user, app) -> None:
    service_id = setup_data[0]
    with app.app_context():
        db.session.add(Booking(
            service_id=service_id, user_id=client_user[0], date=date(2030, 6, 4),
            start_time="10:00", end_time="11:00", price_at_booking_cents=6000,
        ))
        db.session.commit()

    duration = client.patch(f"/services/{service_id}", json={"durationMinutes": 75}, headers=pro_user[1])
    price = client.patch(f"/services/{service_id}", json={"priceCents": 7000}, headers=pro_user[1])

    assert duration.status_code == 409
    assert price.status_code == 200
    with app.app_context():
        assert Booking.query.one().price_at_booking_cents == 6000


def test_delete_service(client, setup_data, pro_user, client_user, app) -> None:
    unused, booked = setup_data[1], setup_data[0]
    with app.app_context():
        db.session.add(Booking(
            service_id=booked, user_id=client_user[0], date=date(2030, 6, 4),
            start_time="10:00", end_time="11:00", price_at_booking_cents=6000,
        ))
        db.session.commit()

    assert client.delete(f"/services/{unused}", headers=pro_user[1]).status_code == 200
    assert client.delete(f"/services/{booked}", headers=pro_user[1]).status_code == 200

    with app.app_context():
        assert db.session.get(Service, unused) is None
        assert db.session.get(Service, booked).is_active is False
    assert client.get("/services").get_json()["services"] == []
    assert client.delete("/services/999", headers=pro_user[1]).status_code == 404
