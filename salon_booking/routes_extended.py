"""Extended routes: reviews, users, site settings and the conflict report."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import conflicts, repository
from .auth import admin_required, current_user, is_staff, login_required, staff_required
from .extensions import db
from .models import USER_ROLES, Booking, Review, User
from .routes import _field, _flag, _parse_date
from .scheduling.errors import InvalidInterval
from .scheduling.intervals import MINUTES_PER_DAY, TimeInterval
from .scheduling.status import BookingStatus

bp_ext = Blueprint("api_ext", __name__)


# --- START: Reviews ---


@bp_ext.post("/reviews")
@login_required
def create_review() -> tuple[dict[str, object], int]:
    """Review a completed booking.
    ---
    tags:
      - Reviews
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            bookingId:
              type: integer
            rating:
              type: integer
              minimum: 1
              maximum: 5
            comment:
              type: string
    responses:
      201:
        description: Review created, waiting for approval
      400:
        description: Invalid rating or booking not completed
      403:
        description: Booking belongs to someone else
      404:
        description: Booking not found
      409:
        description: Booking already reviewed
    """
    payload = request.get_json(silent=True) or {}

    try:
        booking_id = int(_field(payload, "bookingId", "booking_id"))
        rating = int(payload.get("rating"))
    except (ValueError, TypeError):
        return jsonify({"error": "invalid_payload", "message": "bookingId and rating are required"}), 400

    if not 1 <= rating <= 5:
        return jsonify({"error": "invalid_payload", "message": "rating must be between 1 and 5"}), 400

    try:
        booking = db.session.get(Booking, booking_id)
        if not booking:
            return jsonify({"error": "not_found", "message": "Booking not found"}), 404
        if booking.user_id != g.current_user.user_id:
            return jsonify({"error": "forbidden", "message": "You can only review your own bookings"}), 403
        if booking.status != BookingStatus.COMPLETED.value:
            return (
                jsonify({"error": "invalid_payload", "message": "Only completed bookings can be reviewed"}),
                400,
            )
        if booking.review is not None:
            return jsonify({"error": "conflict", "message": "This booking was already reviewed"}), 409

        review = Review(
            booking_id=booking.booking_id,
            user_id=g.current_user.user_id,
            rating=rating,
            comment=(payload.get("comment") or "").strip() or None,
        )
        db.session.add(review)
        db.session.commit()

    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "conflict", "message": "This booking was already reviewed"}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create review", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Review submitted", "review": review.to_dict()}), 201


@bp_ext.get("/reviews")
def list_reviews() -> tuple[dict[str, object], int]:
    """List reviews, newest first.

    Only approved reviews are public; PRO and ADMIN may pass ``all=true``.
    """
    try:
        query = Review.query
        if not (_flag(request.args.get("all")) and is_staff(current_user())):
            query = query.filter(Review.is_approved.is_(True))
        reviews = query.order_by(Review.created_at.desc()).all()
        return jsonify({"reviews": [r.to_dict() for r in reviews]}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch reviews", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.get("/reviews/service/<int:service_id>")
def list_service_reviews(service_id: int) -> tuple[dict[str, object], int]:
    """Reviews of one service, with the average rating.

    Approved reviews only; PRO and ADMIN may pass ``publishedOnly=false``.
    """
    published_only = request.args.get("publishedOnly", "true").strip().lower() != "false"
    try:
        query = Review.query.join(Review.booking).filter(Booking.service_id == service_id)
        if published_only or not is_staff(current_user()):
            query = query.filter(Review.is_approved.is_(True))
        reviews = query.order_by(Review.created_at.desc()).all()
        average = round(sum(r.rating for r in reviews) / len(reviews), 2) if reviews else None
        return (
            jsonify({
                "service_id": service_id,
                "average_rating": average,
                "total": len(reviews),
                "reviews": [r.to_dict() for r in reviews],
            }),
            200,
        )

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch service reviews", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.get("/reviews/service/<int:service_id>/user-bookings")
@login_required
def list_reviewable_bookings(service_id: int) -> tuple[dict[str, object], int]:
    """The caller's completed bookings of a service, newest first.
    ---
    tags:
      - Reviews
    parameters:
      - in: path
        name: service_id
        type: integer
        required: true
    responses:
      200:
        description: Completed bookings; ``has_review`` marks the ones already reviewed
      401:
        description: Missing or invalid token
    """
    try:
        bookings = (
            Booking.query.filter(
                Booking.user_id == g.current_user.user_id,
                Booking.service_id == service_id,
                Booking.status == BookingStatus.COMPLETED.value,
            )
            .order_by(Booking.date.desc(), Booking.start_time.desc())
            .all()
        )
        return jsonify({"bookings": [b.to_dict() for b in bookings]}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch reviewable bookings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.get("/reviews/<int:review_id>")
def get_review(review_id: int) -> tuple[dict[str, object], int]:
    """One review. Unapproved reviews are visible to their author and to staff only."""
    try:
        review = db.session.get(Review, review_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch review", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if not review:
        return jsonify({"error": "not_found", "message": "Review not found"}), 404
    if not review.is_approved:
        viewer = current_user()
        if viewer is None or (not is_staff(viewer) and viewer.user_id != review.user_id):
            return jsonify({"error": "not_found", "message": "Review not found"}), 404

    return jsonify({"review": review.to_dict()}), 200


@bp_ext.patch("/reviews/<int:review_id>")
@login_required
def update_review(review_id: int) -> tuple[dict[str, object], int]:
    """Edit a review.

    The author may change the comment. PRO and ADMIN may also change the
    comment and set ``isApproved``.
    """
    payload = request.get_json(silent=True) or {}
    staff = is_staff(g.current_user)
    approved = _field(payload, "isApproved", "is_approved")

    if approved is not None and not isinstance(approved, bool):
        return jsonify({"error": "invalid_payload", "message": "isApproved must be a boolean"}), 400

    try:
        review = db.session.get(Review, review_id)
        if not review:
            return jsonify({"error": "not_found", "message": "Review not found"}), 404
        if not staff and review.user_id != g.current_user.user_id:
            return jsonify({"error": "forbidden", "message": "You can only edit your own reviews"}), 403
        if approved is not None and not staff:
            return jsonify({"error": "forbidden", "message": "Only staff can moderate reviews"}), 403

        if "comment" in payload:
            review.comment = (payload.get("comment") or "").strip() or None
        if approved is not None:
            review.is_approved = approved
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update review", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"review": review.to_dict()}), 200


def _set_review_approval(review_id: int, approved: bool):
    try:
        review = db.session.get(Review, review_id)
        if not review:
            return jsonify({"error": "not_found", "message": "Review not found"}), 404

        review.is_approved = approved
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to moderate review", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Review %s %s", review_id, "approved" if approved else "unpublished")
    return jsonify({"review": review.to_dict()}), 200


@bp_ext.patch("/reviews/<int:review_id>/approve")
@staff_required
def approve_review(review_id: int) -> tuple[dict[str, object], int]:
    """Publish a review (PRO/ADMIN)."""
    return _set_review_approval(review_id, True)


@bp_ext.patch("/reviews/<int:review_id>/unpublish")
@staff_required
def unpublish_review(review_id: int) -> tuple[dict[str, object], int]:
    """Hide a published review (PRO/ADMIN)."""
    return _set_review_approval(review_id, False)


@bp_ext.delete("/reviews/<int:review_id>")
@login_required
def delete_review(review_id: int) -> tuple[dict[str, str], int]:
    try:
        review = db.session.get(Review, review_id)
        if not review:
            return jsonify({"error": "not_found", "message": "Review not found"}), 404
        if not is_staff(g.current_user) and review.user_id != g.current_user.user_id:
            return jsonify({"error": "forbidden", "message": "You can only delete your own reviews"}), 403

        db.session.delete(review)
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete review", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Review deleted successfully"}), 200


# --- END: Reviews ---

# --- START: Users ---

_PROFILE_FIELDS = (("firstName", "first_name"), ("lastName", "last_name"), ("phone", "phone"))


def _apply_profile(user: User, payload: dict) -> str | None:
    """Copy profile fields from the payload; return an error message if any."""
    for camel, snake in _PROFILE_FIELDS:
        value = _field(payload, camel, snake)
        if value is None:
            continue
        value = str(value).strip()
        if snake != "phone" and not value:
            return f"{camel} cannot be empty"
        setattr(user, snake, value or None)
    return None


@bp_ext.get("/users/me")
@login_required
def get_me() -> tuple[dict[str, object], int]:
    """Profile of the signed-in user."""
    return jsonify({"user": g.current_user.to_dict()}), 200


@bp_ext.patch("/users/me")
@login_required
def update_me() -> tuple[dict[str, object], int]:
    """Update the signed-in user's names and phone.
    ---
    tags:
      - Users
    parameters:
      - in: body
        name: body
        schema:
          properties:
            firstName:
              type: string
            lastName:
              type: string
            phone:
              type: string
    responses:
      200:
        description: Profile updated
      400:
        description: Empty name
    """
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    error = _apply_profile(user, payload)
    if error:
        db.session.rollback()
        return jsonify({"error": "invalid_payload", "message": error}), 400

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update profile", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"user": user.to_dict()}), 200


@bp_ext.get("/users")
@staff_required
def list_users() -> tuple[dict[str, object], int]:
    """List users, optionally filtered by role or a name/e-mail search (PRO/ADMIN)."""
    try:
        query = User.query
        role = (request.args.get("role") or "").strip().upper()
        if role:
            if role not in USER_ROLES:
                return jsonify({"error": "invalid_parameters"}), 400
            query = query.filter(User.role == role)
        search = (request.args.get("search") or "").strip()
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            ))
        users = query.order_by(User.last_name, User.first_name).all()
        return jsonify({"users": [u.to_dict() for u in users]}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch users", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.patch("/users/<int:user_id>")
@admin_required
def update_user(user_id: int) -> tuple[dict[str, object], int]:
    """Change a user's role, activation or profile (ADMIN)."""
    payload = request.get_json(silent=True) or {}

    try:
        user = db.session.get(User, user_id)
        if not user:
            return jsonify({"error": "not_found", "message": "User not found"}), 404

        if "role" in payload:
            role = str(payload.get("role") or "").strip().upper()
            if role not in USER_ROLES:
                return (
                    jsonify({"error": "invalid_payload", "message": "role must be USER, PRO or ADMIN"}),
                    400,
                )
            user.role = role

        is_active = _field(payload, "isActive", "is_active")
        if is_active is not None:
            if user.user_id == g.current_user.user_id and not is_active:
                return jsonify({"error": "invalid_payload", "message": "You cannot deactivate yourself"}), 400
            user.is_active = bool(is_active)

        error = _apply_profile(user, payload)
        if error:
            db.session.rollback()
            return jsonify({"error": "invalid_payload", "message": error}), 400

        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update user", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("User %s updated by admin %s", user_id, g.current_user.user_id)
    return jsonify({"user": user.to_dict()}), 200


# --- END: Users ---

# --- START: Site settings ---

_TEXT_SETTINGS = (
    "salon_name", "salon_description", "salon_address", "salon_phone", "salon_email",
    "logo_url", "hero_image_url", "facebook_url", "instagram_url",
)
_INT_SETTINGS = (
    "slot_granularity_minutes", "min_lead_time_minutes", "booking_advance_min_days",
    "booking_advance_max_days", "cancellation_deadline_hours", "reminder_days_before",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _validate_settings(settings, payload: dict) -> tuple[dict, str | None]:
    changes: dict[str, object] = {}

    for name in _TEXT_SETTINGS:
        value = _field(payload, _camel(name), name)
        if value is not None:
            changes[name] = str(value).strip() or None
    if "salon_name" in changes and not changes["salon_name"]:
        return changes, "salon_name cannot be empty"

    for name in _INT_SETTINGS:
        value = _field(payload, _camel(name), name)
        if value is None:
            continue
        if isinstance(value, bool):
            return changes, f"{name} must be a non-negative integer"
        try:
            changes[name] = int(value)
        except (ValueError, TypeError):
            return changes, f"{name} must be a non-negative integer"
        if changes[name] < 0:
            return changes, f"{name} must be a non-negative integer"

    flag = _field(payload, "emailNotificationsEnabled", "email_notifications_enabled")
    if flag is not None:
        changes["email_notifications_enabled"] = bool(flag)

    granularity = changes.get("slot_granularity_minutes", settings.slot_granularity_minutes)
    if not 5 <= granularity <= 240 or MINUTES_PER_DAY % granularity:
        return changes, "slot_granularity_minutes must be between 5 and 240 and divide a day"

    min_days = changes.get("booking_advance_min_days", settings.booking_advance_min_days)
    max_days = changes.get("booking_advance_max_days", settings.booking_advance_max_days)
    if max_days < 1 or max_days < min_days:
        return changes, "booking_advance_max_days must be at least 1 and not below booking_advance_min_days"

    open_time = _field(payload, "defaultOpenTime", "default_open_time") or settings.default_open_time
    close_time = _field(payload, "defaultCloseTime", "default_close_time") or settings.default_close_time
    try:
        TimeInterval.from_hhmm(open_time, close_time)
    except InvalidInterval as exc:
        return changes, exc.message
    changes["default_open_time"] = open_time
    changes["default_close_time"] = close_time

    return changes, None


@bp_ext.get("/site-settings")
def get_site_settings() -> tuple[dict[str, object], int]:
    """Public salon profile and booking rules."""
    try:
        return jsonify({"settings": repository.get_site_settings().to_dict()}), 200

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to fetch site settings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.patch("/site-settings")
@admin_required
def update_site_settings() -> tuple[dict[str, object], int]:
    """Update the salon profile and booking rules (ADMIN).
    ---
    tags:
      - Site settings
    parameters:
      - in: body
        name: body
        schema:
          properties:
            slotGranularityMinutes:
              type: integer
            minLeadTimeMinutes:
              type: integer
            bookingAdvanceMinDays:
              type: integer
            bookingAdvanceMaxDays:
              type: integer
            cancellationDeadlineHours:
              type: integer
            defaultOpenTime:
              type: string
            defaultCloseTime:
              type: string
    responses:
      200:
        description: Settings updated
      400:
        description: Invalid value
    """
    payload = request.get_json(silent=True) or {}

    try:
        settings = repository.get_site_settings()
        changes, error = _validate_settings(settings, payload)
        if error:
            current_app.logger.warning("Rejected site settings update: %s", error)
            return jsonify({"error": "invalid_payload", "message": error}), 400

        for name, value in changes.items():
            setattr(settings, name, value)
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update site settings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"settings": settings.to_dict()}), 200


# --- END: Site settings ---

# --- START: Conflicts ---


@bp_ext.get("/conflicts")
@staff_required
def list_conflicts() -> tuple[dict[str, object], int]:
    """Scheduling anomalies between bookings, blocks and opening hours.
    ---
    tags:
      - Conflicts
    parameters:
      - name: fromDate
        in: query
        type: string
        format: date
      - name: toDate
        in: query
        type: string
        format: date
    responses:
      200:
        description: Conflicts sorted by severity then date
      400:
        description: Invalid date
    """
    raw_from, raw_to = request.args.get("fromDate"), request.args.get("toDate")
    from_date, to_date = _parse_date(raw_from), _parse_date(raw_to)
    if (raw_from and from_date is None) or (raw_to and to_date is None):
        return jsonify({"error": "invalid_parameters", "message": "Dates must be YYYY-MM-DD"}), 400

    try:
        return jsonify(conflicts.find_conflicts(from_date, to_date)), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute conflicts", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_ext.get("/conflicts/summary")
@staff_required
def summarize_conflicts() -> tuple[dict[str, object], int]:
    try:
        return jsonify(conflicts.conflicts_summary()), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to summarize conflicts", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


# --- END: Conflicts ---
