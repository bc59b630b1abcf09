"""Tests for the blocked slot endpoints."""
from __future__ import annotations

from datetime import date

import pytest

from salon_booking.extensions import db
from salon_booking.models import BlockedSlot, Service, WeeklyAvailability


@pytest.fixture
def setup_data(app):
    with app.app_context():
        service = Service(name="Head massage", description="Thirty minutes of scalp care",
                          duration_minutes=30, price_cents=3000)
        db.session.add_all([
            service,
            WeeklyAvailability(day_of_week="MONDAY", start_time="09:00", end_time="12:00"),
            BlockedSlot(date=date(2030, 6, 10), start_time="10:00", end_time="11:00", reason="Training"),
            BlockedSlot(date=date(2030, 6, 20), reason="Holiday"),
        ])
        db.session.commit()
        return service.service_id


def test_create_partial_blocked_slot_removes_slots(client, setup_data, pro_user, frozen_now) -> None:
    response = client.post(
        "/blocked-slots",
        json={"date": "2030-06-03", "startTime": "10:00", "endTime": "10:30", "reason": "Dentist"},
        headers=pro_user[1],
    )
    slots = client.post(
        "/bookings/available-slots", json={"serviceId": setup_data, "date": "2030-06-03"}
    ).get_json()["slots"]

    assert response.status_code == 201
    assert response.get_json()["blocked_slot"]["is_full_day"] is False
    assert slots == ["09:00", "09:30", "10:30", "11:00", "11:30"]


def test_create_full_day_blocked_slot(client, setup_data, pro_user, frozen_now) -> None:
    response = client.post("/blocked-slots", json={"date": "2030-06-03"}, headers=pro_user[1])
    slots = client.post(
        "/bookings/available-slots", json={"serviceId": setup_data, "date": "2030-06-03"}
    ).get_json()["slots"]

    blocked = response.get_json()["blocked_slot"]
    assert (blocked["start_time"], blocked["end_time"], blocked["is_full_day"]) == ("00:00", "24:00", True)
    assert slots == []


@pytest.mark.parametrize("payload", [
    {"startTime": "10:00", "endTime": "11:00"},
    {"date": "2030-06-03", "startTime": "11:00", "endTime": "10:00"},
    {"date": "2030-06-03", "startTime": "25:00", "endTime": "26:00"},
])
def test_create_blocked_slot_validation_400(client, pro_user, payload) -> None:
    assert client.post("/blocked-slots", json=payload, headers=pro_user[1]).status_code == 400


def test_create_blocked_slot_needs_staff(client, client_user) -> None:
    response = client.post("/blocked-slots", json={"date": "2030-06-03"}, headers=client_user[1])

    assert response.status_code == 403


def test_list_blocked_slots_with_range(client, setup_data) -> None:
    everything = client.get("/blocked-slots").get_json()["blocked_slots"]
    june_tenth = client.get("/blocked-slots?fromDate=2030-06-01&toDate=2030-06-15").get_json()["blocked_slots"]

    assert [b["reason"] for b in everything] == ["Training", "Holiday"]
    assert [b["date"] for b in june_tenth] == ["2030-06-10"]


def test_get_update_delete_blocked_slot(client, setup_data, pro_user, app) -> None:
    with app.app_context():
        blocked_id = BlockedSlot.query.filter_by(reason="Training").one().blocked_slot_id
    headers = pro_user[1]

    assert client.get(f"/blocked-slots/{blocked_id}", headers=headers).status_code == 200

    updated = client.patch(
        f"/blocked-slots/{blocked_id}",
        json={"endTime": "12:00", "reason": "Long training"},
        headers=headers,
    ).get_json()["blocked_slot"]
    assert (updated["start_time"], updated["end_time"], updated["reason"]) == ("10:00", "12:00", "Long training")

    bad = client.patch(f"/blocked-slots/{blocked_id}", json={"startTime": "13:00"}, headers=headers)
    assert bad.status_code == 400

    assert client.delete(f"/blocked-slots/{blocked_id}", headers=headers).status_code == 200
    assert client.get(f"/blocked-slots/{blocked_id}", headers=headers).status_code == 404
