"""Database access used by the scheduling core."""
from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from flask import current_app

from .extensions import db
from .models import BlockedSlot, Booking, SiteSettings, WeeklyAvailability
from .scheduling.availability import AvailabilityResolver, DayOfWeek
from .scheduling.guard import BookingConflictGuard, ReservationRequest
from .scheduling.policy import SchedulingSettings
from .scheduling.status import ACTIVE_STATUSES


def salon_now() -> datetime:
    """Current wall-clock time at the salon, as a naive datetime."""
    tz = ZoneInfo(current_app.config.get("SALON_TIMEZONE", "UTC"))
    return datetime.now(tz).replace(tzinfo=None)


def load_weekly_availability(
    weekday: DayOfWeek, include_inactive: bool = False
) -> list[WeeklyAvailability]:
    query = WeeklyAvailability.query.filter_by(day_of_week=DayOfWeek(weekday).value)
    if not include_inactive:
        query = query.filter(WeeklyAvailability.is_active.is_(True))
    return query.order_by(WeeklyAvailability.start_time).all()


def load_blocked_slots(day: date) -> list[BlockedSlot]:
    return (
        BlockedSlot.query.filter(BlockedSlot.date == day)
        .order_by(BlockedSlot.start_time)
        .all()
    )


def load_active_bookings(day: date) -> list[Booking]:
    return (
        Booking.query.filter(
            Booking.date == day,
            Booking.status.in_([status.value for status in ACTIVE_STATUSES]),
        )
        .order_by(Booking.start_time)
        .all()
    )


def build_resolver() -> AvailabilityResolver:
    return AvailabilityResolver(load_weekly_availability, load_blocked_slots)


def get_site_settings() -> SiteSettings:
    """Return the settings row, creating it with defaults on first use."""
    settings = SiteSettings.query.order_by(SiteSettings.settings_id).first()
    if settings is None:
        settings = SiteSettings(
            salon_name="Mon Salon de Massage",
            salon_description="Bienvenue dans notre salon de massage professionnel.",
        )
        db.session.add(settings)
        db.session.commit()
    return settings


def scheduling_settings() -> SchedulingSettings:
    settings = get_site_settings()
    return SchedulingSettings(
        slot_granularity_minutes=settings.slot_granularity_minutes,
        min_lead_time_minutes=settings.min_lead_time_minutes,
        booking_advance_min_days=settings.booking_advance_min_days,
        booking_advance_max_days=settings.booking_advance_max_days,
        cancellation_deadline_hours=settings.cancellation_deadline_hours,
    )


def insert_booking(request: ReservationRequest, granularity: int | None = None) -> Booking:
    """Durably insert a booking through the conflict guard."""
    guard = BookingConflictGuard(
        db.session,
        resolver=build_resolver(),
        granularity=granularity,
        lock_timeout_ms=current_app.config.get("BOOKING_LOCK_TIMEOUT_MS", 3000),
        retries=current_app.config.get("BOOKING_LOCK_RETRIES", 3),
    )
    return guard.try_reserve(request)
