"""Tests for the weekly availability endpoints."""
from __future__ import annotations

import pytest

from salon_booking.cache import AVAILABILITY_ACTIVE
from salon_booking.extensions import cache, db
from salon_booking.models import WeeklyAvailability


@pytest.fixture
def setup_data(app):
    with app.app_context():
        windows = [
            WeeklyAvailability(day_of_week="FRIDAY", start_time="09:00", end_time="12:00"),
            WeeklyAvailability(day_of_week="MONDAY", start_time="14:00", end_time="18:00"),
            WeeklyAvailability(day_of_week="MONDAY", start_time="09:00", end_time="12:00"),
            WeeklyAvailability(day_of_week="SUNDAY", start_time="10:00", end_time="13:00", is_active=False),
        ]
        db.session.add_all(windows)
        db.session.commit()
        return [w.availability_id for w in windows]


def test_list_availability_in_week_order(client, setup_data) -> None:
    response = client.get("/availability")
    windows = response.get_json()["availability"]

    assert response.status_code == 200
    assert [(w["day_of_week"], w["start_time"]) for w in windows] == [
        ("MONDAY", "09:00"), ("MONDAY", "14:00"), ("FRIDAY", "09:00"),
    ]


def test_list_availability_include_inactive(client, setup_data) -> None:
    windows = client.get("/availability?includeInactive=true").get_json()["availability"]

    assert windows[-1]["day_of_week"] == "SUNDAY"
    assert windows[-1]["is_active"] is False


def test_working_days(client, setup_data) -> None:
    response = client.get("/availability/working-days")

    assert response.get_json() == {"working_days": ["MONDAY", "FRIDAY"]}


def test_get_availability(client, setup_data) -> None:
    assert client.get(f"/availability/{setup_data[0]}").get_json()["availability"]["day_of_week"] == "FRIDAY"
    assert client.get("/availability/999").status_code == 404


def test_create_availability_invalidates_cache(client, setup_data, pro_user, app) -> None:
    client.get("/availability")
    client.get("/availability/working-days")

    response = client.post(
        "/availability",
        json={"dayOfWeek": "wednesday", "startTime": "18:00", "endTime": "24:00"},
        headers=pro_user[1],
    )

    assert response.status_code == 201
    assert response.get_json()["availability"]["end_time"] == "24:00"
    with app.app_context():
        assert cache.get(AVAILABILITY_ACTIVE) is None
    assert client.get("/availability/working-days").get_json()["working_days"] == [
        "MONDAY", "WEDNESDAY", "FRIDAY",
    ]


def test_create_duplicate_availability_409(client, setup_data, pro_user) -> None:
    response = client.post(
        "/availability",
        json={"dayOfWeek": "MONDAY", "startTime": "09:00", "endTime": "12:00"},
        headers=pro_user[1],
    )

    assert response.status_code == 409
    assert response.get_json()["error"] == "conflict"


@pytest.mark.parametrize("payload", [
    {"dayOfWeek": "FUNDAY", "startTime": "09:00", "endTime": "12:00"},
    {"dayOfWeek": "MONDAY", "startTime": "12:00", "endTime": "09:00"},
    {"dayOfWeek": "MONDAY", "startTime": "9am", "endTime": "12:00"},
])
def test_create_availability_validation_400(client, pro_user, payload) -> None:
    response = client.post("/availability", json=payload, headers=pro_user[1])

    assert response.status_code == 400


def test_availability_writes_need_staff(client, setup_data, client_user) -> None:
    payload = {"dayOfWeek": "MONDAY", "startTime": "19:00", "endTime": "20:00"}

    assert client.post("/availability", json=payload, headers=client_user[1]).status_code == 403
    assert client.delete(f"/availability/{setup_data[0]}", headers=client_user[1]).status_code == 403


def test_update_availability(client, setup_data, pro_user) -> None:
    response = client.patch(
        f"/availability/{setup_data[0]}",
        json={"endTime": "13:00"},
        headers=pro_user[1],
    )
    window = response.get_json()["availability"]

    assert response.status_code == 200
    assert (window["day_of_week"], window["start_time"], window["end_time"]) == ("FRIDAY", "09:00", "13:00")

    clash = client.patch(
        f"/availability/{setup_data[0]}",
        json={"dayOfWeek": "MONDAY", "startTime": "09:00", "endTime": "12:00"},
        headers=pro_user[1],
    )
    assert clash.status_code == 409


def test_delete_availability_soft_disables(client, setup_data, pro_user, app) -> None:
    response = client.delete(f"/availability/{setup_data[0]}", headers=pro_user[1])

    assert response.status_code == 200
    assert response.get_json()["availability"]["is_active"] is False
    with app.app_context():
        assert db.session.get(WeeklyAvailability, setup_data[0]) is not None
    assert client.get("/availability/working-days").get_json()["working_days"] == ["MONDAY"]
