"""Booking rules driven by the salon's site settings."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .errors import CancellationDeadlinePassed, OutOfBookingHorizon


@dataclass(frozen=True)
class SchedulingSettings:
    slot_granularity_minutes: int = 30
    min_lead_time_minutes: int = 60
    booking_advance_min_days: int = 0
    booking_advance_max_days: int = 60
    cancellation_deadline_hours: int = 24


def booking_horizon(today: date, settings: SchedulingSettings) -> tuple[date, date]:
    """First and last bookable dates, both inclusive."""
    return (
        today + timedelta(days=settings.booking_advance_min_days),
        today + timedelta(days=settings.booking_advance_max_days),
    )


def check_booking_horizon(day: date, today: date, settings: SchedulingSettings) -> None:
    first, last = booking_horizon(today, settings)
    if day < first:
        raise OutOfBookingHorizon(
            f"Bookings must be made at least {settings.booking_advance_min_days} days in advance"
        )
    if day > last:
        raise OutOfBookingHorizon(
            f"Bookings cannot be made more than {settings.booking_advance_max_days} days in advance"
        )


def check_cancellation_deadline(
    starts_at: datetime, now: datetime, settings: SchedulingSettings
) -> None:
    if starts_at - now < timedelta(hours=settings.cancellation_deadline_hours):
        raise CancellationDeadlinePassed(
            "Bookings can only be cancelled at least "
            f"{settings.cancellation_deadline_hours} hours in advance"
        )
