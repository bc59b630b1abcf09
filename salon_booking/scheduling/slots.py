"""Bookable start times on the salon's slot grid."""
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from .availability import AvailabilityResolver, to_interval
from .errors import InvalidInterval
from .intervals import MINUTES_PER_DAY, TimeInterval, contains, overlaps
from .policy import SchedulingSettings


def earliest_start_for(day: date, now: datetime, lead_minutes: int) -> Optional[int]:
    """Earliest start minute still bookable on ``day``.

    ``None`` means no same-day restriction. For a past date, or when the lead
    time runs past midnight, the value lies beyond the end of the day so no
    candidate can satisfy it.
    """
    today = now.date()
    if day > today:
        return None
    if day < today:
        return MINUTES_PER_DAY + 1
    return now.hour * 60 + now.minute + (1 if now.second or now.microsecond else 0) + lead_minutes


def generate_slots(
    open_intervals: Iterable[TimeInterval],
    service_duration: int,
    existing_bookings: Iterable[TimeInterval],
    granularity: int,
    earliest_start: Optional[int] = None,
) -> list[int]:
    """Return candidate start minutes, ascending and without duplicates.

    Candidates sit on multiples of ``granularity`` counted from midnight, so
    services of different lengths share the same grid. A candidate ``t`` is
    kept when ``[t, t + service_duration)`` fits inside one open interval,
    overlaps no booking and does not start before ``earliest_start``.
    """
    if service_duration <= 0:
        raise InvalidInterval("service duration must be positive")
    if granularity <= 0:
        raise InvalidInterval("slot granularity must be positive")

    booked = sorted(existing_bookings)
    slots: set[int] = set()

    for window in open_intervals:
        # first grid point at or after the window start
        t = -(-window.start // granularity) * granularity
        if earliest_start is not None and t < earliest_start:
            t = -(-earliest_start // granularity) * granularity
        while t + service_duration <= window.end:
            candidate = TimeInterval.starting_at(t, service_duration)
            if contains(window, candidate) and not any(
                overlaps(candidate, booking) for booking in booked
            ):
                slots.add(t)
            t += granularity

    return sorted(slots)


def available_slots(
    resolver: AvailabilityResolver,
    day: date,
    service_duration: int,
    active_bookings: Sequence,
    settings: SchedulingSettings,
    now: datetime,
) -> list[int]:
    """Open intervals of ``day`` cut into slots for a service."""
    open_intervals = resolver.resolve(day)
    if not open_intervals:
        return []

    return generate_slots(
        open_intervals,
        service_duration,
        [to_interval(booking) for booking in active_bookings],
        settings.slot_granularity_minutes,
        earliest_start_for(day, now, settings.min_lead_time_minutes),
    )
