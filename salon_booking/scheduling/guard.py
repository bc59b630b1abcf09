"""Commit-time protection against double booking.

Slots are listed and reserved in two separate requests, so a slot shown as
free may be gone by the time the client books it. Every reservation for a
date first writes that date's ``BookingDayLock`` row. The write holds a row
lock on PostgreSQL and the database write lock on SQLite, so concurrent
reservations for the same date run one after the other and the overlap check
that follows always sees the bookings committed before it.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Booking, BookingDayLock
from .availability import AvailabilityResolver
from .errors import SlotContention, SlotNoLongerAvailable
from .intervals import TimeInterval, contains, format_hhmm
from .status import ACTIVE_STATUSES, BookingStatus

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "This time slot is no longer available, please pick another one"


@dataclass(frozen=True)
class ReservationRequest:
    day: date
    start: int  # minutes since midnight
    duration: int
    service_id: int
    user_id: int
    price_cents: int
    notes: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval.starting_at(self.start, self.duration)


class BookingConflictGuard:
    def __init__(
        self,
        session: Session,
        resolver: Optional[AvailabilityResolver] = None,
        granularity: Optional[int] = None,
        lock_timeout_ms: int = 3000,
        retries: int = 3,
        backoff_seconds: float = 0.05,
    ) -> None:
        self.session = session
        self.resolver = resolver
        self.granularity = granularity
        self.lock_timeout_ms = lock_timeout_ms
        self.retries = retries
        self.backoff_seconds = backoff_seconds

    def try_reserve(self, request: ReservationRequest) -> Booking:
        """Insert the booking, or raise SlotNoLongerAvailable.

        Lock contention is retried ``retries`` times before it is reported
        as the slot being unavailable.
        """
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self._attempt(request)
            except SlotContention as exc:
                logger.info(
                    "Booking lock contention on %s (attempt %d/%d): %s",
                    request.day, attempt, attempts, exc.message,
                )
                if attempt < attempts:
                    time.sleep(self.backoff_seconds * attempt)

        raise SlotNoLongerAvailable(UNAVAILABLE_MESSAGE)

    def _attempt(self, request: ReservationRequest) -> Booking:
        session = self.session
        interval = request.interval
        try:
            self._lock_day(request.day)
            self._check_open(request.day, interval)

            overlapping = self._find_overlap(request.day, interval)
            if overlapping is not None:
                logger.info(
                    "Slot %s on %s overlaps booking %s",
                    interval, request.day, overlapping.booking_id,
                )
                raise SlotNoLongerAvailable(UNAVAILABLE_MESSAGE)

            booking = Booking(
                service_id=request.service_id,
                user_id=request.user_id,
                date=request.day,
                start_time=format_hhmm(interval.start),
                end_time=format_hhmm(interval.end),
                status=BookingStatus(request.status).value,
                price_at_booking_cents=request.price_cents,
                notes=request.notes,
            )
            session.add(booking)
            session.flush()
            session.commit()
        except (SlotNoLongerAvailable, SlotContention):
            session.rollback()
            raise
        except IntegrityError as exc:
            # partial unique index on (date, start_time) for active bookings
            session.rollback()
            raise SlotNoLongerAvailable(UNAVAILABLE_MESSAGE) from exc
        except OperationalError as exc:
            session.rollback()
            if exc.connection_invalidated:
                raise
            raise SlotContention(f"could not lock {request.day}: {exc.orig}") from exc
        except SQLAlchemyError:
            session.rollback()
            raise

        logger.info("Booking %s reserved for %s %s", booking.booking_id, request.day, interval)
        return booking

    def _lock_day(self, day: date) -> None:
        session = self.session
        if session.get_bind().dialect.name == "postgresql":
            session.execute(text(f"SET LOCAL lock_timeout = '{int(self.lock_timeout_ms)}ms'"))

        result = session.execute(
            update(BookingDayLock)
            .where(BookingDayLock.date == day)
            .values(version=BookingDayLock.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return

        # first booking ever for this date
        try:
            session.add(BookingDayLock(date=day, version=1))
            session.flush()
        except IntegrityError as exc:
            raise SlotContention(f"lock row for {day} created concurrently") from exc

    def _check_open(self, day: date, interval: TimeInterval) -> None:
        if self.granularity and interval.start % self.granularity:
            raise SlotNoLongerAvailable(
                f"Start time must be on the {self.granularity} minute grid"
            )
        if self.resolver is None:
            return
        open_intervals = self.resolver.resolve(day)
        if not any(contains(window, interval) for window in open_intervals):
            raise SlotNoLongerAvailable(UNAVAILABLE_MESSAGE)

    def _find_overlap(self, day: date, interval: TimeInterval) -> Optional[Booking]:
        start, end = format_hhmm(interval.start), format_hhmm(interval.end)
        # HH:mm strings are zero padded, so text order is time order
        statement = (
            select(Booking)
            .where(
                Booking.date == day,
                Booking.status.in_([status.value for status in ACTIVE_STATUSES]),
                Booking.start_time < end,
                Booking.end_time > start,
            )
            .limit(1)
        )
        return self.session.execute(statement).scalars().first()
