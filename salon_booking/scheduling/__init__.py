"""Slot availability and reservation rules.

Everything here except ``guard`` is pure computation over plain values;
``guard`` is imported explicitly by the persistence layer.
"""
from .availability import AvailabilityResolver, DayOfWeek, weekday_of, working_days
from .errors import (CancellationDeadlinePassed, InvalidInterval,
                     InvalidStatusTransition, OutOfBookingHorizon,
                     SchedulingError, SlotContention, SlotNoLongerAvailable)
from .intervals import (DatedInterval, TimeInterval, contains, format_hhmm,
                        merge, overlaps, parse_hhmm, subtract)
from .policy import (SchedulingSettings, booking_horizon,
                     check_booking_horizon, check_cancellation_deadline)
from .slots import available_slots, earliest_start_for, generate_slots
from .status import ACTIVE_STATUSES, BookingStatus, parse_status, transition

__all__ = [
    "ACTIVE_STATUSES",
    "AvailabilityResolver",
    "BookingStatus",
    "CancellationDeadlinePassed",
    "DatedInterval",
    "DayOfWeek",
    "InvalidInterval",
    "InvalidStatusTransition",
    "OutOfBookingHorizon",
    "SchedulingError",
    "SchedulingSettings",
    "SlotContention",
    "SlotNoLongerAvailable",
    "TimeInterval",
    "available_slots",
    "booking_horizon",
    "check_booking_horizon",
    "check_cancellation_deadline",
    "contains",
    "earliest_start_for",
    "format_hhmm",
    "generate_slots",
    "merge",
    "overlaps",
    "parse_hhmm",
    "parse_status",
    "subtract",
    "transition",
    "weekday_of",
    "working_days",
]
