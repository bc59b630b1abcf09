"""Database models for the salon booking backend."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import text

from .extensions import db
from .scheduling.availability import DayOfWeek
from .scheduling.status import BookingStatus


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


USER_ROLES = ("USER", "PRO", "ADMIN")
ACTIVE_STATUS_SQL = "status IN ('PENDING', 'CONFIRMED')"


class User(db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    phone = db.Column(db.String(30))
    role = db.Column(
        db.Enum(
            *USER_ROLES,
            name="user_role",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="USER",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
        }

    def to_dict(self) -> dict[str, object]:
        data = self.to_dict_basic()
        data.update({
            "role": self.role,
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        })
        return data


class Service(db.Model):
    """Treatments offered by the salon."""

    __tablename__ = "services"

    service_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=False)
    # drives slot sizing
    duration_minutes = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    __table_args__ = (
        db.CheckConstraint("duration_minutes > 0", name="service_duration_positive"),
        db.CheckConstraint("price_cents >= 0", name="service_price_non_negative"),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "name": self.name,
            "description": self.description,
            "duration_minutes": self.duration_minutes,
            "price_cents": self.price_cents,
            "price": self.price_cents / 100.0,
            "is_active": bool(self.is_active),
            "display_order": self.display_order,
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class WeeklyAvailability(db.Model):
    """Recurring opening window for a weekday.

    Disabled through ``is_active`` rather than deleted.
    """

    __tablename__ = "weekly_availability"

    availability_id = db.Column(db.Integer, primary_key=True)
    day_of_week = db.Column(
        db.Enum(
            *[day.value for day in DayOfWeek],
            name="day_of_week",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
    )
    start_time = db.Column(db.String(5), nullable=False)  # HH:mm
    end_time = db.Column(db.String(5), nullable=False)  # HH:mm, may be 24:00
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    __table_args__ = (
        db.UniqueConstraint("day_of_week", "start_time", "end_time", name="uq_weekly_window"),
        db.CheckConstraint("start_time < end_time", name="weekly_window_ordered"),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.availability_id,
            "day_of_week": self.day_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_active": bool(self.is_active),
        }


class BlockedSlot(db.Model):
    """Date-specific closure, full day (00:00-24:00) or partial."""

    __tablename__ = "blocked_slots"

    blocked_slot_id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(5), nullable=False, default="00:00")
    end_time = db.Column(db.String(5), nullable=False, default="24:00")
    reason = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    __table_args__ = (
        db.CheckConstraint("start_time < end_time", name="blocked_slot_ordered"),
    )

    @property
    def is_full_day(self) -> bool:
        return self.start_time == "00:00" and self.end_time == "24:00"

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.blocked_slot_id,
            "date": self.date.isoformat() if self.date else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_full_day": self.is_full_day,
            "reason": self.reason,
        }


class Booking(db.Model):
    """A client's reservation of a service at a date and time.

    ``end_time`` is ``start_time + service duration`` at creation and
    ``price_at_booking_cents`` snapshots the service price, so later edits to
    the service leave existing bookings untouched.
    """

    __tablename__ = "bookings"

    booking_id = db.Column(db.Integer, primary_key=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)
    status = db.Column(
        db.Enum(
            *[status.value for status in BookingStatus],
            name="booking_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default=BookingStatus.PENDING.value,
    )
    price_at_booking_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text)
    pro_notes = db.Column(db.Text)
    cancelled_at = db.Column(db.DateTime)
    cancel_reason = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    __table_args__ = (
        db.CheckConstraint("start_time < end_time", name="booking_time_ordered"),
        # Two active bookings can never share a start time. Partial overlaps
        # are kept out by the per-date lock in BookingConflictGuard.
        db.Index(
            "uq_bookings_active_start",
            "date",
            "start_time",
            unique=True,
            sqlite_where=text(ACTIVE_STATUS_SQL),
            postgresql_where=text(ACTIVE_STATUS_SQL),
        ),
    )

    service = db.relationship("Service")
    user = db.relationship("User")
    review = db.relationship("Review", back_populates="booking", uselist=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.booking_id,
            "service_id": self.service_id,
            "service": {
                "id": self.service.service_id,
                "name": self.service.name,
                "duration_minutes": self.service.duration_minutes,
            } if self.service else None,
            "user_id": self.user_id,
            "user": self.user.to_dict_basic() if self.user else None,
            "date": self.date.isoformat() if self.date else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": self.status,
            "price_at_booking_cents": self.price_at_booking_cents,
            "price_at_booking": self.price_at_booking_cents / 100.0,
            "notes": self.notes,
            "pro_notes": self.pro_notes,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancel_reason": self.cancel_reason,
            "has_review": self.review is not None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class BookingDayLock(db.Model):
    """One row per booked date; reservations for a date serialize on it."""

    __tablename__ = "booking_day_locks"

    date = db.Column(db.Date, primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)


class Review(db.Model):
    """Client review of a completed booking (at most one per booking)."""

    __tablename__ = "reviews"

    review_id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(
        db.Integer, db.ForeignKey("bookings.booking_id"), unique=True, nullable=False
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    rating = db.Column(db.Integer, nullable=False)  # 1-5 stars
    comment = db.Column(db.Text)
    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    __table_args__ = (
        db.CheckConstraint("rating BETWEEN 1 AND 5", name="review_rating_range"),
    )

    booking = db.relationship("Booking", back_populates="review")
    user = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        service = self.booking.service if self.booking else None
        return {
            "id": self.review_id,
            "booking_id": self.booking_id,
            "user_id": self.user_id,
            "user_name": self.user.first_name if self.user else "Anonymous",
            "service": {"id": service.service_id, "name": service.name} if service else None,
            "rating": self.rating,
            "comment": self.comment,
            "is_approved": bool(self.is_approved),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class SiteSettings(db.Model):
    """Singleton row holding the salon profile and the booking rules."""

    __tablename__ = "site_settings"

    settings_id = db.Column(db.Integer, primary_key=True)
    salon_name = db.Column(db.String(150), nullable=False, default="Mon Salon de Massage")
    salon_description = db.Column(db.Text)
    salon_address = db.Column(db.String(255))
    salon_phone = db.Column(db.String(30))
    salon_email = db.Column(db.String(255))
    logo_url = db.Column(db.String(500))
    hero_image_url = db.Column(db.String(500))
    default_open_time = db.Column(db.String(5), nullable=False, default="09:00")
    default_close_time = db.Column(db.String(5), nullable=False, default="19:00")
    slot_granularity_minutes = db.Column(db.Integer, nullable=False, default=30)
    min_lead_time_minutes = db.Column(db.Integer, nullable=False, default=60)
    booking_advance_min_days = db.Column(db.Integer, nullable=False, default=0)
    booking_advance_max_days = db.Column(db.Integer, nullable=False, default=60)
    cancellation_deadline_hours = db.Column(db.Integer, nullable=False, default=24)
    email_notifications_enabled = db.Column(db.Boolean, nullable=False, default=True)
    reminder_days_before = db.Column(db.Integer, nullable=False, default=1)
    facebook_url = db.Column(db.String(500))
    instagram_url = db.Column(db.String(500))
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "salon_name": self.salon_name,
            "salon_description": self.salon_description,
            "salon_address": self.salon_address,
            "salon_phone": self.salon_phone,
            "salon_email": self.salon_email,
            "logo_url": self.logo_url,
            "hero_image_url": self.hero_image_url,
            "default_open_time": self.default_open_time,
            "default_close_time": self.default_close_time,
            "slot_granularity_minutes": self.slot_granularity_minutes,
            "min_lead_time_minutes": self.min_lead_time_minutes,
            "booking_advance_min_days": self.booking_advance_min_days,
            "booking_advance_max_days": self.booking_advance_max_days,
            "cancellation_deadline_hours": self.cancellation_deadline_hours,
            "email_notifications_enabled": bool(self.email_notifications_enabled),
            "reminder_days_before": self.reminder_days_before,
            "facebook_url": self.facebook_url,
            "instagram_url": self.instagram_url,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
