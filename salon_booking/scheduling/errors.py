"""Errors raised by the scheduling core."""
from __future__ import annotations


class SchedulingError(Exception):
    """Base class for every scheduling failure."""

    code = "scheduling_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInterval(SchedulingError, ValueError):
    """A time range is malformed (start >= end, bad HH:mm, out of day)."""

    code = "invalid_payload"


class OutOfBookingHorizon(SchedulingError):
    """The requested date lies outside the configured booking window."""

    code = "out_of_booking_horizon"


class SlotNoLongerAvailable(SchedulingError):
    """The slot was taken (or closed) between display and reservation."""

    code = "slot_unavailable"


class SlotContention(SchedulingError):
    """The per-date reservation lock could not be acquired in time.

    Retried internally; callers only see it escalated as SlotNoLongerAvailable.
    """

    code = "slot_contention"


class InvalidStatusTransition(SchedulingError):
    code = "invalid_transition"


class CancellationDeadlinePassed(SchedulingError):
    code = "cancellation_deadline_passed"
