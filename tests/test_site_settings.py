"""Tests for the site settings endpoints."""
from __future__ import annotations

import pytest

from salon_booking.extensions import db
from salon_booking.models import Service, WeeklyAvailability


def test_get_site_settings_creates_defaults(client) -> None:
    response = client.get("/site-settings")
    settings = response.get_json()["settings"]

    assert response.status_code == 200
    assert settings["slot_granularity_minutes"] == 30
    assert settings["min_lead_time_minutes"] == 60
    assert settings["booking_advance_max_days"] == 60
    assert settings["cancellation_deadline_hours"] == 24


def test_update_site_settings_admin_only(client, pro_user, admin_user) -> None:
    payload = {"salonName": "Zen Studio", "slotGranularityMinutes": 15}

    assert client.patch("/site-settings", json=payload, headers=pro_user[1]).status_code == 403

    response = client.patch("/site-settings", json=payload, headers=admin_user[1])
    settings = response.get_json()["settings"]

    assert response.status_code == 200
    assert settings["salon_name"] == "Zen Studio"
    assert settings["slot_granularity_minutes"] == 15


@pytest.mark.parametrize("payload", [
    {"slotGranularityMinutes": 7},
    {"slotGranularityMinutes": 0},
    {"slotGranularityMinutes": 480},
    {"minLeadTimeMinutes": -5},
    {"bookingAdvanceMaxDays": 0},
    {"bookingAdvanceMinDays": 10, "bookingAdvanceMaxDays": 5},
    {"defaultOpenTime": "19:00", "defaultCloseTime": "09:00"},
    {"cancellationDeadlineHours": "soon"},
    {"salonName": ""},
])
def test_update_site_settings_validation_400(client, admin_user, payload) -> None:
    response = client.patch("/site-settings", json=payload, headers=admin_user[1])

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_granularity_change_drives_slot_grid(client, admin_user, app, frozen_now) -> None:
    with app.app_context():
        service = Service(name="Quick neck massage", description="Fifteen minute neck relief",
                          duration_minutes=15, price_cents=1500)
        db.session.add_all([
            service,
            WeeklyAvailability(day_of_week="TUESDAY", start_time="09:00", end_time="10:00"),
        ])
        db.session.commit()
        service_id = service.service_id

    client.patch("/site-settings", json={"slotGranularityMinutes": 15}, headers=admin_user[1])
    slots = client.post(
        "/bookings/available-slots", json={"serviceId": service_id, "date": "2030-06-04"}
    ).get_json()["slots"]

    assert slots == ["09:00", "09:15", "09:30", "09:45"]
