"""HTTP routes for the salon booking backend."""
from __future__ import annotations

from datetime import date, datetime, time, timezone

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import catalogue, repository
from .auth import current_user, is_staff, login_required, staff_required
from .extensions import cache, db
from .models import BlockedSlot, Booking, Service, User, WeeklyAvailability
from .scheduling.availability import DayOfWeek
from .scheduling.errors import (CancellationDeadlinePassed, InvalidInterval,
                                InvalidStatusTransition, OutOfBookingHorizon,
                                SchedulingError, SlotNoLongerAvailable)
from .scheduling.guard import ReservationRequest
from .scheduling.intervals import (TimeInterval, format_hhmm, parse_hhmm)
from .scheduling.policy import check_booking_horizon, check_cancellation_deadline
from .scheduling.slots import available_slots, earliest_start_for
from .scheduling.status import BookingStatus, parse_status, transition

bp = Blueprint("api", __name__)


def register_routes(app) -> None:
    from .routes_extended import bp_ext

    app.register_blueprint(bp)
    app.register_blueprint(bp_ext)


def _field(payload: dict, camel: str, snake: str | None = None):
    """Read a body field sent either as camelCase or snake_case."""
    if camel in payload:
        return payload.get(camel)
    return payload.get(snake) if snake else None


def _parse_date(value) -> date | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip().split("T", 1)[0])
    except ValueError:
        return None


def _flag(value) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes"}


def _scheduling_error(exc: SchedulingError, status: int):
    return jsonify({"error": exc.code, "message": exc.message}), status


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# --- START: Services ---


def _validate_service_fields(payload: dict, partial: bool) -> tuple[dict, str | None]:
    """Collect the writable service fields from a payload.

    Returns the cleaned fields and an error message (None when valid).
    """
    fields: dict[str, object] = {}

    if "name" in payload or not partial:
        name = (payload.get("name") or "").strip()
        if len(name) < 3:
            return fields, "name must be at least 3 characters"
        fields["name"] = name

    if "description" in payload or not partial:
        description = (payload.get("description") or "").strip()
        if len(description) < 10:
            return fields, "description must be at least 10 characters"
        fields["description"] = description

    duration = _field(payload, "durationMinutes", "duration_minutes")
    if duration is not None or not partial:
        try:
            fields["duration_minutes"] = int(duration)
            if fields["duration_minutes"] < 1:
                raise ValueError("duration_minutes must be > 0")
        except (ValueError, TypeError):
            return fields, "duration_minutes must be a positive integer"

    price = _field(payload, "priceCents", "price_cents")
    if price is not None or not partial:
        try:
            fields["price_cents"] = int(price)
            if fields["price_cents"] < 0:
                raise ValueError("price_cents must be >= 0")
        except (ValueError, TypeError):
            return fields, "price_cents must be a non-negative integer"

    is_active = _field(payload, "isActive", "is_active")
    if is_active is not None:
        fields["is_active"] = bool(is_active)

    display_order = _field(payload, "displayOrder", "display_order")
    if display_order is not None:
        try:
            fields["display_order"] = int(display_order)
        except (ValueError, TypeError):
            return fields, "display_order must be an integer"

    image_url = _field(payload, "imageUrl", "image_url")
    if image_url is not None:
        fields["image_url"] = str(image_url).strip() or None

    return fields, None


@bp.get("/services")
def list_services() -> tuple[dict[str, object], int]:
    """List services ordered for display.
    ---
    tags:
      - Services
    parameters:
      - name: includeInactive
        in: query
        type: boolean
        description: Only honoured for PRO and ADMIN callers.
    responses:
      200:
        description: List of services
      500:
        description: Server error
    """
    try:
        include_inactive = _flag(request.args.get("includeInactive")) and is_staff(current_user())
        services = catalogue.list_services(cache, include_inactive=include_inactive)
        return jsonify({"services": services}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch services", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/services/<int:service_id>")
def get_service(service_id: int) -> tuple[dict[str, object], int]:
    """Get a single service.
    ---
    tags:
      - Services
    responses:
      200:
        description: Service details
      404:
        description: Service not found
    """
    try:
        service = catalogue.get_service(cache, service_id)
        if service is None:
            return jsonify({"error": "not_found", "message": "Service not found"}), 404
        return jsonify({"service": service}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch service", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.post("/services")
@staff_required
def create_service() -> tuple[dict[str, object], int]:
    """Create a new service (PRO/ADMIN).
    ---
    tags:
      - Services
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            name:
              type: string
            description:
              type: string
            durationMinutes:
              type: integer
            priceCents:
              type: integer
            isActive:
              type: boolean
            displayOrder:
              type: integer
            imageUrl:
              type: string
    responses:
      201:
        description: Service created successfully
      400:
        description: Invalid input
      500:
        description: Database error
    """
    payload = request.get_json(silent=True) or {}

    fields, error = _validate_service_fields(payload, partial=False)
    if error:
        return jsonify({"error": "invalid_payload", "message": error}), 400

    try:
        new_service = Service(**fields)
        db.session.add(new_service)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create service", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    catalogue.invalidate_services(cache, new_service.service_id)
    return jsonify({"message": "Service created successfully", "service": new_service.to_dict()}), 201


@bp.patch("/services/<int:service_id>")
@staff_required
def update_service(service_id: int) -> tuple[dict[str, object], int]:
    """Update a service (PRO/ADMIN).

    Existing bookings keep their own end time and price snapshot. The duration
    of a service that already has bookings cannot change; create a new
    service instead.
    ---
    tags:
      - Services
    responses:
      200:
        description: Service updated successfully
      400:
        description: Invalid input
      404:
        description: Service not found
      409:
        description: Duration change on a booked service
      500:
        description: Database error
    """
    payload = request.get_json(silent=True) or {}

    try:
        service = db.session.get(Service, service_id)
        if not service:
            return jsonify({"error": "not_found", "message": "Service not found"}), 404

        fields, error = _validate_service_fields(payload, partial=True)
        if error:
            return jsonify({"error": "invalid_payload", "message": error}), 400

        new_duration = fields.get("duration_minutes")
        if new_duration is not None and new_duration != service.duration_minutes:
            if Booking.query.filter_by(service_id=service_id).first() is not None:
                return (
                    jsonify({
                        "error": "conflict",
                        "message": "duration cannot change once the service has bookings",
                    }),
                    409,
                )

        for name, value in fields.items():
            setattr(service, name, value)
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update service", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    catalogue.invalidate_services(cache, service_id)
    return jsonify({"message": "Service updated successfully", "service": service.to_dict()}), 200


@bp.delete("/services/<int:service_id>")
@staff_required
def delete_service(service_id: int) -> tuple[dict[str, str], int]:
    """Delete a service, or deactivate it when bookings reference it.
    ---
    tags:
      - Services
    responses:
      200:
        description: Service deleted or deactivated
      404:
        description: Service not found
      500:
        description: Database error
    """
    try:
        service = db.session.get(Service, service_id)
        if not service:
            return jsonify({"error": "not_found", "message": "Service not found"}), 404

        if Booking.query.filter_by(service_id=service_id).first() is not None:
            service.is_active = False
            message = "Service has bookings and was deactivated"
        else:
            db.session.delete(service)
            message = "Service deleted successfully"
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete service", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    catalogue.invalidate_services(cache, service_id)
    return jsonify({"message": message}), 200


# --- END: Services ---

# --- START: Weekly availability ---


def _parse_day_of_week(value) -> DayOfWeek | None:
    try:
        return DayOfWeek(str(value).strip().upper())
    except ValueError:
        return None


@bp.get("/availability")
def list_availability() -> tuple[dict[str, object], int]:
    """List weekly opening windows.
    ---
    tags:
      - Availability
    parameters:
      - name: includeInactive
        in: query
        type: boolean
    responses:
      200:
        description: Weekly windows ordered by weekday then start time
    """
    try:
        include_inactive = _flag(request.args.get("includeInactive"))
        windows = catalogue.list_weekly_availability(cache, include_inactive=include_inactive)
        return jsonify({"availability": windows}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch availability", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/availability/working-days")
def list_working_days() -> tuple[dict[str, object], int]:
    """Weekdays with at least one active window."""
    try:
        return jsonify({"working_days": catalogue.get_working_days(cache)}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch working days", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/availability/<int:availability_id>")
def get_availability(availability_id: int) -> tuple[dict[str, object], int]:
    try:
        window = db.session.get(WeeklyAvailability, availability_id)
        if not window:
            return jsonify({"error": "not_found", "message": "Availability not found"}), 404
        return jsonify({"availability": window.to_dict()}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch availability", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


def _duplicate_window(day_of_week: str, start: str, end: str, exclude_id: int | None = None) -> bool:
    query = WeeklyAvailability.query.filter_by(
        day_of_week=day_of_week, start_time=start, end_time=end
    )
    if exclude_id is not None:
        query = query.filter(WeeklyAvailability.availability_id != exclude_id)
    return query.first() is not None


@bp.post("/availability")
@staff_required
def create_availability() -> tuple[dict[str, object], int]:
    """Add a weekly opening window (PRO/ADMIN).
    ---
    tags:
      - Availability
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            dayOfWeek:
              type: string
              enum: [MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY]
            startTime:
              type: string
              example: "09:00"
            endTime:
              type: string
              example: "12:00"
            isActive:
              type: boolean
    responses:
      201:
        description: Window created
      400:
        description: Invalid day or time range
      409:
        description: The same window already exists
    """
    payload = request.get_json(silent=True) or {}

    day = _parse_day_of_week(_field(payload, "dayOfWeek", "day_of_week"))
    if day is None:
        return jsonify({"error": "invalid_payload", "message": "dayOfWeek must be MONDAY..SUNDAY"}), 400

    try:
        window = TimeInterval.from_hhmm(
            _field(payload, "startTime", "start_time"), _field(payload, "endTime", "end_time")
        )
    except InvalidInterval as exc:
        return _scheduling_error(exc, 400)

    start, end = window.to_hhmm()
    is_active = _field(payload, "isActive", "is_active")

    try:
        if _duplicate_window(day.value, start, end):
            return jsonify({"error": "conflict", "message": "This availability slot already exists"}), 409

        availability = WeeklyAvailability(
            day_of_week=day.value,
            start_time=start,
            end_time=end,
            is_active=True if is_active is None else bool(is_active),
        )
        db.session.add(availability)
        db.session.commit()

    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "conflict", "message": "This availability slot already exists"}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create availability", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    catalogue.invalidate_availability(cache)
    return jsonify({"availability": availability.to_dict()}), 201


@bp.patch("/availability/<int:availability_id>")
@staff_required
def update_availability(availability_id: int) -> tuple[dict[str, object], int]:
    """Edit or (de)activate a weekly window (PRO/ADMIN).
    ---
    tags:
      - Availability
    responses:
      200:
        description: Window updated
      400:
        description: Invalid day or time range
      404:
        description: Window not found
      409:
        description: The same window already exists
    """
    payload = request.get_json(silent=True) or {}

    try:
        availability = db.session.get(WeeklyAvailability, availability_id)
        if not availability:
            return jsonify({"error": "not_found", "message": "Availability not found"}), 404

        day_value = _field(payload, "dayOfWeek", "day_of_week")
        day = _parse_day_of_week(day_value) if day_value is not None else DayOfWeek(availability.day_of_week)
        if day is None:
            return jsonify({"error": "invalid_payload", "message": "dayOfWeek must be MONDAY..SUNDAY"}), 400

        start_value = _field(payload, "startTime", "start_time") or availability.start_time
        end_value = _field(payload, "endTime", "end_time") or availability.end_time
        try:
            start, end = TimeInterval.from_hhmm(start_value, end_value).to_hhmm()
        except InvalidInterval as exc:
            return _scheduling_error(exc, 400)

        if _duplicate_window(day.value, start, end, exclude_id=availability_id):
            return jsonify({"error": "conflict", "message": "This availability slot already exists"}), 409

        availability.day_of_week = day.value
        availability.start_time = start
        availability.end_time = end
        is_active = _field(payload, "isActive", "is_active")
        if is_active is not None:
            availability.is_active = bool(is_active)
        db.session.commit()

    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "conflict", "message": "This availability slot already exists"}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update availability", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    catalogue.invalidate_availability(cache)
    return jsonify({"availability": availability.to_dict()}), 200


@bp.delete("/availability/<int:availability_id>")
@staff_required
def disable_availability(availability_id: int) -> tuple[dict[str, object], int]:
    """Disable a weekly window; rows are kept for history."""
    try:
        availability = db.session.get(WeeklyAvailability, availability_id)
        if not availability:
            return jsonify({"error": "not_found", "message": "Availability not found"}), 404

        availability.is_active = False
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to disable availability", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    catalogue.invalidate_availability(cache)
    return jsonify({"message": "Availability disabled", "availability": availability.to_dict()}), 200


# --- END: Weekly availability ---

# --- START: Blocked slots ---


def _blocked_slot_times(payload: dict, current: BlockedSlot | None = None) -> tuple[str, str]:
    """Resolve start/end of a blocked slot; both missing means the whole day."""
    start = _field(payload, "startTime", "start_time")
    end = _field(payload, "endTime", "end_time")
    if current is not None:
        start = start or current.start_time
        end = end or current.end_time
    return TimeInterval.from_hhmm(start or "00:00", end or "24:00").to_hhmm()


@bp.post("/blocked-slots")
@staff_required
def create_blocked_slot() -> tuple[dict[str, object], int]:
    """Block a date, fully or partially (PRO/ADMIN).
    ---
    tags:
      - Blocked slots
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            date:
              type: string
              format: date
            startTime:
              type: string
            endTime:
              type: string
            reason:
              type: string
    responses:
      201:
        description: Blocked slot created
      400:
        description: Invalid date or time range
    """
    payload = request.get_json(silent=True) or {}

    day = _parse_date(payload.get("date"))
    if day is None:
        return jsonify({"error": "invalid_payload", "message": "date must be in YYYY-MM-DD format"}), 400

    try:
        start, end = _blocked_slot_times(payload)
    except InvalidInterval as exc:
        return _scheduling_error(exc, 400)

    try:
        blocked = BlockedSlot(
            date=day,
            start_time=start,
            end_time=end,
            reason=(payload.get("reason") or "").strip() or None,
        )
        db.session.add(blocked)
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create blocked slot", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Blocked %s %s-%s", day, start, end)
    return jsonify({"blocked_slot": blocked.to_dict()}), 201


@bp.get("/blocked-slots")
def list_blocked_slots() -> tuple[dict[str, object], int]:
    """List blocked slots, optionally within [fromDate, toDate]."""
    from_date = _parse_date(request.args.get("fromDate"))
    to_date = _parse_date(request.args.get("toDate"))

    try:
        query = BlockedSlot.query
        if from_date:
            query = query.filter(BlockedSlot.date >= from_date)
        if to_date:
            query = query.filter(BlockedSlot.date <= to_date)
        slots = query.order_by(BlockedSlot.date, BlockedSlot.start_time).all()
        return jsonify({"blocked_slots": [slot.to_dict() for slot in slots]}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch blocked slots", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/blocked-slots/<int:blocked_slot_id>")
@staff_required
def get_blocked_slot(blocked_slot_id: int) -> tuple[dict[str, object], int]:
    blocked = db.session.get(BlockedSlot, blocked_slot_id)
    if not blocked:
        return jsonify({"error": "not_found", "message": "Blocked slot not found"}), 404
    return jsonify({"blocked_slot": blocked.to_dict()}), 200


@bp.patch("/blocked-slots/<int:blocked_slot_id>")
@staff_required
def update_blocked_slot(blocked_slot_id: int) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}

    try:
        blocked = db.session.get(BlockedSlot, blocked_slot_id)
        if not blocked:
            return jsonify({"error": "not_found", "message": "Blocked slot not found"}), 404

        if "date" in payload:
            day = _parse_date(payload.get("date"))
            if day is None:
                return jsonify({"error": "invalid_payload", "message": "date must be in YYYY-MM-DD format"}), 400
            blocked.date = day

        try:
            blocked.start_time, blocked.end_time = _blocked_slot_times(payload, current=blocked)
        except InvalidInterval as exc:
            return _scheduling_error(exc, 400)

        if "reason" in payload:
            blocked.reason = (payload.get("reason") or "").strip() or None
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update blocked slot", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"blocked_slot": blocked.to_dict()}), 200


@bp.delete("/blocked-slots/<int:blocked_slot_id>")
@staff_required
def delete_blocked_slot(blocked_slot_id: int) -> tuple[dict[str, str], int]:
    try:
        blocked = db.session.get(BlockedSlot, blocked_slot_id)
        if not blocked:
            return jsonify({"error": "not_found", "message": "Blocked slot not found"}), 404

        db.session.delete(blocked)
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete blocked slot", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Blocked slot deleted successfully"}), 200


# --- END: Blocked slots ---

# --- START: Bookings ---


@bp.route("/bookings/available-slots", methods=["GET", "POST"])
def list_available_slots() -> tuple[dict[str, object], int]:
    """Bookable start times of a service on a date.
    ---
    tags:
      - Bookings
    parameters:
      - in: body
        name: body
        schema:
          properties:
            serviceId:
              type: integer
            date:
              type: string
              format: date
    responses:
      200:
        description: Start times as HH:mm; empty when the salon is closed
      400:
        description: Invalid input or date outside the booking horizon
      404:
        description: Service not found
    """
    if request.method == "POST":
        payload = request.get_json(silent=True) or {}
    else:
        payload = request.args

    service_id = _field(payload, "serviceId", "service_id")
    day = _parse_date(payload.get("date"))

    if not service_id or day is None:
        return (
            jsonify({
                "error": "invalid_payload",
                "message": "serviceId and date (YYYY-MM-DD) are required",
            }),
            400,
        )

    try:
        service = db.session.get(Service, int(service_id))
    except (ValueError, TypeError):
        return jsonify({"error": "invalid_payload", "message": "serviceId must be an integer"}), 400

    try:
        if not service:
            return jsonify({"error": "not_found", "message": "Service not found"}), 404
        if not service.is_active:
            return jsonify({"error": "invalid_payload", "message": "Service is not active"}), 400

        settings = repository.scheduling_settings()
        now = repository.salon_now()
        try:
            check_booking_horizon(day, now.date(), settings)
        except OutOfBookingHorizon as exc:
            return _scheduling_error(exc, 400)

        slots = available_slots(
            repository.build_resolver(),
            day,
            service.duration_minutes,
            repository.load_active_bookings(day),
            settings,
            now,
        )

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute available slots", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return (
        jsonify({
            "date": day.isoformat(),
            "service_id": service.service_id,
            "slots": [format_hhmm(start) for start in slots],
        }),
        200,
    )


@bp.post("/bookings")
@login_required
def create_booking() -> tuple[dict[str, object], int]:
    """Book a service for the signed-in user.
    ---
    tags:
      - Bookings
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            serviceId:
              type: integer
            date:
              type: string
              format: date
            startTime:
              type: string
              example: "10:30"
            notes:
              type: string
          required:
            - serviceId
            - date
            - startTime
    responses:
      201:
        description: Booking created (PENDING)
      400:
        description: Invalid payload or date outside the booking horizon
      404:
        description: Service not found
      409:
        description: Slot no longer available
      500:
        description: Server error
    """
    payload = request.get_json(silent=True) or {}

    service_id = _field(payload, "serviceId", "service_id")
    day = _parse_date(payload.get("date"))
    start_value = _field(payload, "startTime", "start_time")
    notes = (payload.get("notes") or "").strip() or None

    if not all([service_id, day, start_value]):
        return (
            jsonify({
                "error": "invalid_payload",
                "message": "serviceId, date (YYYY-MM-DD) and startTime (HH:mm) are required",
            }),
            400,
        )

    try:
        start = parse_hhmm(start_value)
    except InvalidInterval as exc:
        return _scheduling_error(exc, 400)

    try:
        service = db.session.get(Service, int(service_id))
    except (ValueError, TypeError):
        return jsonify({"error": "invalid_payload", "message": "serviceId must be an integer"}), 400

    try:
        if not service:
            return jsonify({"error": "not_found", "message": "Service not found"}), 404
        if not service.is_active:
            return jsonify({"error": "invalid_payload", "message": "Service is not active"}), 400

        settings = repository.scheduling_settings()
        now = repository.salon_now()

        try:
            check_booking_horizon(day, now.date(), settings)
            TimeInterval.starting_at(start, service.duration_minutes)
        except SchedulingError as exc:
            return _scheduling_error(exc, 400)

        if start % settings.slot_granularity_minutes:
            return (
                jsonify({
                    "error": "invalid_payload",
                    "message": f"startTime must be on the {settings.slot_granularity_minutes} minute grid",
                }),
                400,
            )

        earliest = earliest_start_for(day, now, settings.min_lead_time_minutes)
        if earliest is not None and start < earliest:
            current_app.logger.info("Refused booking inside lead time: %s %s", day, start_value)
            return (
                jsonify({"error": "slot_unavailable", "message": "This time slot is too close to book"}),
                409,
            )

        booking = repository.insert_booking(
            ReservationRequest(
                day=day,
                start=start,
                duration=service.duration_minutes,
                service_id=service.service_id,
                user_id=g.current_user.user_id,
                price_cents=service.price_cents,
                notes=notes,
            ),
            granularity=settings.slot_granularity_minutes,
        )

    except SlotNoLongerAvailable as exc:
        # expected under load; the client re-fetches the slot list
        current_app.logger.info("Booking refused for %s %s: %s", day, start_value, exc.message)
        return _scheduling_error(exc, 409)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create booking", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Booking created successfully", "booking": booking.to_dict()}), 201


@bp.get("/bookings")
@staff_required
def list_bookings() -> tuple[dict[str, object], int]:
    """List bookings with filters and pagination (PRO/ADMIN).
    ---
    tags:
      - Bookings
    parameters:
      - name: userId
        in: query
        type: integer
      - name: status
        in: query
        type: string
      - name: date
        in: query
        type: string
      - name: name
        in: query
        type: string
      - name: type
        in: query
        type: string
        enum: [upcoming, past]
      - name: page
        in: query
        type: integer
        default: 1
      - name: limit
        in: query
        type: integer
        default: 20
        maximum: 100
    responses:
      200:
        description: Bookings ordered by date and start time
      400:
        description: Invalid filters
    """
    try:
        page = max(1, int(request.args.get("page", 1)))
        limit = min(100, max(1, int(request.args.get("limit", 20))))

        query = Booking.query
        if request.args.get("userId"):
            query = query.filter(Booking.user_id == int(request.args["userId"]))
        if request.args.get("status"):
            query = query.filter(Booking.status == parse_status(request.args["status"]).value)
        if request.args.get("date"):
            day = _parse_date(request.args["date"])
            if day is None:
                raise ValueError("date must be in YYYY-MM-DD format")
            query = query.filter(Booking.date == day)
        if request.args.get("name"):
            pattern = f"%{request.args['name'].strip()}%"
            query = query.join(Booking.user).filter(
                or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern))
            )

        today = repository.salon_now().date()
        kind = request.args.get("type")
        if kind == "upcoming":
            query = query.filter(Booking.date >= today).order_by(Booking.date, Booking.start_time)
        elif kind == "past":
            query = query.filter(Booking.date < today).order_by(Booking.date.desc(), Booking.start_time.desc())
        else:
            query = query.order_by(Booking.date, Booking.start_time)

        total = query.count()
        bookings = query.limit(limit).offset((page - 1) * limit).all()

        return (
            jsonify({
                "bookings": [b.to_dict() for b in bookings],
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "pages": (total + limit - 1) // limit,
                },
            }),
            200,
        )
    except (ValueError, TypeError, InvalidStatusTransition):
        return jsonify({"error": "invalid_parameters"}), 400
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch bookings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/bookings/my-bookings")
@login_required
def list_my_bookings() -> tuple[dict[str, object], int]:
    """Bookings of the signed-in user."""
    try:
        query = Booking.query.filter(Booking.user_id == g.current_user.user_id)
        if request.args.get("status"):
            query = query.filter(Booking.status == parse_status(request.args["status"]).value)
        bookings = query.order_by(Booking.date.desc(), Booking.start_time.desc()).all()
        return jsonify({"bookings": [b.to_dict() for b in bookings]}), 200

    except InvalidStatusTransition as exc:
        return _scheduling_error(exc, 400)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch user bookings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


def _load_visible_booking(booking_id: int):
    """Fetch a booking the caller may see, or the error response to return."""
    booking = db.session.get(Booking, booking_id)
    if not booking:
        return None, (jsonify({"error": "not_found", "message": "Booking not found"}), 404)
    if not is_staff(g.current_user) and booking.user_id != g.current_user.user_id:
        return None, (
            jsonify({"error": "forbidden", "message": "You can only access your own bookings"}),
            403,
        )
    return booking, None


@bp.get("/bookings/<int:booking_id>")
@login_required
def get_booking(booking_id: int) -> tuple[dict[str, object], int]:
    try:
        booking, error = _load_visible_booking(booking_id)
        if error:
            return error
        return jsonify({"booking": booking.to_dict()}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch booking", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.patch("/bookings/<int:booking_id>")
@login_required
def update_booking(booking_id: int) -> tuple[dict[str, object], int]:
    """Update a booking.

    Clients may only edit their own notes. PRO/ADMIN may also move the
    status along the booking lifecycle and write private pro notes.
    ---
    tags:
      - Bookings
    parameters:
      - in: body
        name: body
        schema:
          properties:
            status:
              type: string
              enum: [PENDING, CONFIRMED, COMPLETED, CANCELLED, NO_SHOW]
            notes:
              type: string
            proNotes:
              type: string
    responses:
      200:
        description: Booking updated
      400:
        description: Invalid status transition
      403:
        description: Not allowed
      404:
        description: Booking not found
    """
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    try:
        booking, error = _load_visible_booking(booking_id)
        if error:
            return error

        pro_notes = _field(payload, "proNotes", "pro_notes")
        if not is_staff(user) and ("status" in payload or pro_notes is not None):
            return (
                jsonify({"error": "forbidden", "message": "Clients can only update their notes"}),
                403,
            )

        if "status" in payload:
            try:
                new_status = transition(booking.status, parse_status(payload["status"]))
            except InvalidStatusTransition as exc:
                return _scheduling_error(exc, 400)
            booking.status = new_status.value
            if new_status is BookingStatus.CANCELLED:
                booking.cancelled_at = datetime.now(timezone.utc)
            current_app.logger.info("Booking %s moved to %s", booking_id, new_status.value)

        if "notes" in payload:
            booking.notes = (payload.get("notes") or "").strip() or None
        if pro_notes is not None:
            booking.pro_notes = str(pro_notes).strip() or None

        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update booking", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Booking updated successfully", "booking": booking.to_dict()}), 200


@bp.post("/bookings/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int) -> tuple[dict[str, object], int]:
    """Cancel a booking.

    Clients must cancel at least ``cancellation_deadline_hours`` before the
    appointment; PRO/ADMIN can cancel at any time.
    ---
    tags:
      - Bookings
    responses:
      200:
        description: Booking cancelled
      400:
        description: Booking already terminal or deadline passed
      403:
        description: Not the owner
      404:
        description: Booking not found
    """
    payload = request.get_json(silent=True) or {}

    try:
        booking, error = _load_visible_booking(booking_id)
        if error:
            return error

        try:
            new_status = transition(booking.status, BookingStatus.CANCELLED)
            if not is_staff(g.current_user):
                hour, minute = divmod(parse_hhmm(booking.start_time), 60)
                starts_at = datetime.combine(booking.date, time(hour, minute))
                check_cancellation_deadline(
                    starts_at, repository.salon_now(), repository.scheduling_settings()
                )
        except (InvalidStatusTransition, CancellationDeadlinePassed) as exc:
            return _scheduling_error(exc, 400)

        booking.status = new_status.value
        booking.cancelled_at = datetime.now(timezone.utc)
        booking.cancel_reason = (payload.get("reason") or "").strip() or None
        db.session.commit()

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel booking", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Booking %s cancelled", booking_id)
    return jsonify({"message": "Booking cancelled successfully", "booking": booking.to_dict()}), 200


# --- END: Bookings ---
