"""Tests for the review endpoints."""
from __future__ import annotations

from datetime import date

import pytest

from salon_booking.extensions import db
from salon_booking.models import Booking, Review, Service


@pytest.fixture
def setup_data(app, client_user):
    user_id, _ = client_user
    with app.app_context():
        service = Service(name="Lymphatic drainage", description="Gentle drainage massage",
                          duration_minutes=60, price_cents=7500)
        db.session.add(service)
        db.session.flush()

        def booking(day: int, status: str) -> Booking:
            return Booking(service_id=service.service_id, user_id=user_id, date=date(2030, 5, day),
                           start_time="10:00", end_time="11:00", status=status,
                           price_at_booking_cents=7500)

        completed = booking(6, "COMPLETED")
        pending = booking(7, "PENDING")
        db.session.add_all([completed, pending])
        db.session.commit()
        return {
            "service_id": service.service_id,
            "completed_id": completed.booking_id,
            "pending_id": pending.booking_id,
        }


def post_review(client, headers, booking_id, rating=5, comment="Wonderful"):
    return client.post(
        "/reviews",
        json={"bookingId": booking_id, "rating": rating, "comment": comment},
        headers=headers,
    )


def test_create_review_success_201(client, setup_data, client_user, app) -> None:
    response = post_review(client, client_user[1], setup_data["completed_id"])
    review = response.get_json()["review"]

    assert response.status_code == 201
    assert review["rating"] == 5
    assert review["is_approved"] is False
    assert review["service"]["name"] == "Lymphatic drainage"
    with app.app_context():
        assert Review.query.count() == 1


def test_review_only_once_per_booking_409(client, setup_data, client_user) -> None:
    post_review(client, client_user[1], setup_data["completed_id"])

    response = post_review(client, client_user[1], setup_data["completed_id"])

    assert response.status_code == 409


def test_review_requires_completed_booking_400(client, setup_data, client_user) -> None:
    response = post_review(client, client_user[1], setup_data["pending_id"])

    assert response.status_code == 400


def test_review_of_someone_elses_booking_403(client, setup_data, make_user) -> None:
    _, other = make_user()

    assert post_review(client, other, setup_data["completed_id"]).status_code == 403


@pytest.mark.parametrize("rating", [0, 6, "great"])
def test_create_review_invalid_rating_400(client, setup_data, client_user, rating) -> None:
    response = post_review(client, client_user[1], setup_data["completed_id"], rating=rating)

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_moderation_controls_public_listing(client, setup_data, client_user, pro_user) -> None:
    review_id = post_review(client, client_user[1], setup_data["completed_id"]).get_json()["review"]["id"]

    assert client.get("/reviews").get_json()["reviews"] == []
    assert len(client.get("/reviews?all=true", headers=pro_user[1]).get_json()["reviews"]) == 1
    assert client.get("/reviews?all=true", headers=client_user[1]).get_json()["reviews"] == []

    assert client.patch(f"/reviews/{review_id}/approve", headers=client_user[1]).status_code == 403
    assert client.patch(f"/reviews/{review_id}/approve", headers=pro_user[1]).status_code == 200

    public = client.get(f"/reviews/service/{setup_data['service_id']}").get_json()
    assert public["total"] == 1
    assert public["average_rating"] == 5

    client.patch(f"/reviews/{review_id}/unpublish", headers=pro_user[1])
    assert client.get("/reviews").get_json()["reviews"] == []


def test_owner_edits_comment(client, setup_data, client_user, make_user) -> None:
    review_id = post_review(client, client_user[1], setup_data["completed_id"]).get_json()["review"]["id"]
    _, other = make_user()

    edited = client.patch(f"/reviews/{review_id}", json={"comment": "Even better"}, headers=client_user[1])
    forbidden = client.patch(f"/reviews/{review_id}", json={"comment": "Spam"}, headers=other)

    assert edited.get_json()["review"]["comment"] == "Even better"
    assert forbidden.status_code == 403


def test_delete_review(client, setup_data, client_user, make_user, pro_user) -> None:
    first = post_review(client, client_user[1], setup_data["completed_id"]).get_json()["review"]["id"]
    _, other = make_user()

    assert client.delete(f"/reviews/{first}", headers=other).status_code == 403
    assert client.delete(f"/reviews/{first}", headers=client_user[1]).status_code == 200
    assert client.delete(f"/reviews/{first}", headers=pro_user[1]).status_code == 404


def test_get_single_review(client, setup_data, client_user, make_user, pro_user) -> None:
    review_id = post_review(client, client_user[1], setup_data["completed_id"]).get_json()["review"]["id"]
    _, other = make_user()

    # pending reviews stay hidden from the public
    assert client.get(f"/reviews/{review_id}").status_code == 404
    assert client.get(f"/reviews/{review_id}", headers=other).status_code == 404
    assert client.get(f"/reviews/{review_id}", headers=client_user[1]).status_code == 200

    client.patch(f"/reviews/{review_id}/approve", headers=pro_user[1])
    response = client.get(f"/reviews/{review_id}")

    assert response.status_code == 200
    assert response.get_json()["review"]["rating"] == 5
    assert client.get("/reviews/999").status_code == 404


def test_reviewable_bookings_for_service(client, setup_data, client_user, make_user) -> None:
    url = f"/reviews/service/{setup_data['service_id']}/user-bookings"

    assert client.get(url).status_code == 401

    before = client.get(url, headers=client_user[1]).get_json()["bookings"]
    post_review(client, client_user[1], setup_data["completed_id"])
    after = client.get(url, headers=client_user[1]).get_json()["bookings"]
    _, other = make_user()

    assert [b["id"] for b in before] == [setup_data["completed_id"]]
    assert before[0]["has_review"] is False
    assert after[0]["has_review"] is True
    assert client.get(url, headers=other).get_json()["bookings"] == []


def test_staff_edits_and_moderates_review(client, setup_data, client_user, pro_user) -> None:
    review_id = post_review(client, client_user[1], setup_data["completed_id"]).get_json()["review"]["id"]

    owner_moderation = client.patch(f"/reviews/{review_id}", json={"isApproved": True}, headers=client_user[1])
    bad_flag = client.patch(f"/reviews/{review_id}", json={"isApproved": "yes"}, headers=pro_user[1])
    edited = client.patch(
        f"/reviews/{review_id}", json={"isApproved": True, "comment": "Edited by staff"}, headers=pro_user[1]
    )

    assert owner_moderation.status_code == 403
    assert bad_flag.status_code == 400
    assert edited.status_code == 200
    assert edited.get_json()["review"]["is_approved"] is True
    assert edited.get_json()["review"]["comment"] == "Edited by staff"


def test_service_reviews_published_only_switch(client, setup_data, client_user, pro_user) -> None:
    post_review(client, client_user[1], setup_data["completed_id"])
    url = f"/reviews/service/{setup_data['service_id']}"

    assert client.get(url).get_json()["total"] == 0
    assert client.get(f"{url}?publishedOnly=false").get_json()["total"] == 0
    assert client.get(f"{url}?publishedOnly=false", headers=pro_user[1]).get_json()["total"] == 1
