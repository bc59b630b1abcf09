"""Report of scheduling anomalies for the operator.

Bookings can end up in conflict with data that changed after they were made:
a blocked slot added on a booked afternoon, a weekly window disabled, or rows
written before the conflict guard existed.
"""
from __future__ import annotations

from collections import Counter
from datetime import date
from itertools import combinations
from typing import Optional

from .models import BlockedSlot, Booking, WeeklyAvailability
from .scheduling.availability import to_interval, weekday_of
from .scheduling.intervals import contains, merge, overlaps
from .scheduling.status import ACTIVE_STATUSES

OVERLAPPING_BOOKINGS = "OVERLAPPING_BOOKINGS"
BOOKING_BLOCKED_SLOT = "BOOKING_BLOCKED_SLOT"
BOOKING_NO_AVAILABILITY = "BOOKING_NO_AVAILABILITY"

CONFLICT_TYPES = (OVERLAPPING_BOOKINGS, BOOKING_BLOCKED_SLOT, BOOKING_NO_AVAILABILITY)
SEVERITY_ORDER = {"HIGH": 0, "MEDIUM": 1, "LOW": 2}


def _in_range(query, column, from_date: Optional[date], to_date: Optional[date]):
    if from_date:
        query = query.filter(column >= from_date)
    if to_date:
        query = query.filter(column <= to_date)
    return query


def _conflict(conflict_id, kind, severity, day, start, end, description, **extra):
    entry = {
        "id": conflict_id,
        "type": kind,
        "severity": severity,
        "date": day.isoformat(),
        "start_time": start,
        "end_time": end,
        "description": description,
    }
    entry.update(extra)
    return entry


def find_conflicts(from_date: Optional[date] = None, to_date: Optional[date] = None) -> dict:
    bookings = _in_range(
        Booking.query.filter(Booking.status.in_([s.value for s in ACTIVE_STATUSES])),
        Booking.date, from_date, to_date,
    ).order_by(Booking.date, Booking.start_time).all()
    blocked_slots = _in_range(BlockedSlot.query, BlockedSlot.date, from_date, to_date).order_by(
        BlockedSlot.date, BlockedSlot.start_time
    ).all()
    windows = WeeklyAvailability.query.filter(WeeklyAvailability.is_active.is_(True)).all()

    conflicts = []

    for first, second in combinations(bookings, 2):
        if first.date == second.date and overlaps(to_interval(first), to_interval(second)):
            conflicts.append(_conflict(
                f"overlap-{first.booking_id}-{second.booking_id}",
                OVERLAPPING_BOOKINGS, "HIGH", first.date, first.start_time, first.end_time,
                "Two bookings overlap",
                affected_bookings=[first.to_dict(), second.to_dict()],
            ))

    for booking in bookings:
        for block in blocked_slots:
            if block.date == booking.date and overlaps(to_interval(booking), to_interval(block)):
                reason = f" ({block.reason})" if block.reason else ""
                conflicts.append(_conflict(
                    f"booking-block-{booking.booking_id}-{block.blocked_slot_id}",
                    BOOKING_BLOCKED_SLOT, "HIGH", booking.date, booking.start_time,
                    booking.end_time, f"Booking during a blocked slot{reason}",
                    affected_bookings=[booking.to_dict()], blocked_slot=block.to_dict(),
                ))

    for booking in bookings:
        weekday = weekday_of(booking.date)
        day_windows = [w for w in windows if w.day_of_week == weekday.value]
        if not day_windows:
            conflicts.append(_conflict(
                f"no-availability-{booking.booking_id}",
                BOOKING_NO_AVAILABILITY, "MEDIUM", booking.date, booking.start_time,
                booking.end_time, f"Booking on a closed day ({weekday.value.title()})",
                affected_bookings=[booking.to_dict()], details={"day_of_week": weekday.value},
            ))
        elif not any(contains(opening, to_interval(booking))
                     for opening in merge(to_interval(w) for w in day_windows)):
            conflicts.append(_conflict(
                f"outside-hours-{booking.booking_id}",
                BOOKING_NO_AVAILABILITY, "MEDIUM", booking.date, booking.start_time,
                booking.end_time, "Booking outside opening hours",
                affected_bookings=[booking.to_dict()],
                details={"availabilities": [w.to_dict() for w in day_windows]},
            ))

    for first, second in combinations(blocked_slots, 2):
        if first.date == second.date and overlaps(to_interval(first), to_interval(second)):
            conflicts.append(_conflict(
                f"block-overlap-{first.blocked_slot_id}-{second.blocked_slot_id}",
                BOOKING_BLOCKED_SLOT, "LOW", first.date, first.start_time, first.end_time,
                "Two blocked slots overlap",
                details={"blocks": [first.to_dict(), second.to_dict()]},
            ))

    conflicts.sort(key=lambda c: (SEVERITY_ORDER[c["severity"]], c["date"]))
    return {"total": len(conflicts), "conflicts": conflicts}


def conflicts_summary() -> dict:
    conflicts = find_conflicts()["conflicts"]
    by_type = Counter(c["type"] for c in conflicts)
    by_severity = Counter(c["severity"] for c in conflicts)
    return {
        "total": len(conflicts),
        "by_type": {kind: by_type.get(kind, 0) for kind in CONFLICT_TYPES},
        "by_severity": {level: by_severity.get(level, 0) for level in SEVERITY_ORDER},
    }
