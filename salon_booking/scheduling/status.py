"""Booking lifecycle."""
from __future__ import annotations

import enum

from .errors import InvalidStatusTransition


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Only these statuses hold their interval against new reservations.
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
)

_ALLOWED = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    },
}


def parse_status(value: str) -> BookingStatus:
    try:
        return BookingStatus(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(status.value for status in BookingStatus)
        raise InvalidStatusTransition(f"status must be one of: {allowed}") from None


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in _ALLOWED.get(BookingStatus(current), set())


def transition(current: BookingStatus, target: BookingStatus) -> BookingStatus:
    """Validate ``current -> target`` and return the new status."""
    current = BookingStatus(current)
    target = BookingStatus(target)
    if current in TERMINAL_STATUSES:
        raise InvalidStatusTransition(
            f"Cannot change status of a {current.value.lower()} booking"
        )
    if not can_transition(current, target):
        raise InvalidStatusTransition(
            f"Cannot move a booking from {current.value} to {target.value}"
        )
    return target
