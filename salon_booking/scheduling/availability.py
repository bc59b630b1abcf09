"""Open intervals for a calendar date.

A date's opening hours come from the weekly schedule of its weekday, minus
every blocked slot recorded for that exact date.
"""
from __future__ import annotations

import enum
import logging
from datetime import date
from typing import Callable, Iterable, Protocol

from .intervals import TimeInterval, merge, subtract

logger = logging.getLogger(__name__)


class DayOfWeek(str, enum.Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


# date.weekday() order: 0 is Monday
WEEK = tuple(DayOfWeek)


def weekday_of(day: date) -> DayOfWeek:
    return WEEK[day.weekday()]


class TimeRange(Protocol):
    start_time: str
    end_time: str


def to_interval(row: TimeRange) -> TimeInterval:
    return TimeInterval.from_hhmm(row.start_time, row.end_time)


def working_days(rows: Iterable) -> list[DayOfWeek]:
    """Distinct weekdays with at least one active window, in week order."""
    days = {DayOfWeek(row.day_of_week) for row in rows if row.is_active}
    return [day for day in WEEK if day in days]


class AvailabilityResolver:
    """Combine the weekly schedule with date-specific blocks.

    ``load_weekly(weekday)`` must return the active weekly rows for a weekday
    and ``load_blocked(day)`` the blocked slots of a date; both rows expose
    ``start_time``/``end_time`` as ``HH:mm`` strings.
    """

    def __init__(
        self,
        load_weekly: Callable[[DayOfWeek], Iterable[TimeRange]],
        load_blocked: Callable[[date], Iterable[TimeRange]],
    ) -> None:
        self._load_weekly = load_weekly
        self._load_blocked = load_blocked

    def resolve(self, day: date) -> list[TimeInterval]:
        weekday = weekday_of(day)
        windows = merge(to_interval(row) for row in self._load_weekly(weekday))
        if not windows:
            logger.debug("No opening hours on %s (%s)", day, weekday.value)
            return []

        for blocked in self._load_blocked(day):
            blocker = to_interval(blocked)
            remaining: list[TimeInterval] = []
            for window in windows:
                remaining.extend(subtract(window, blocker))
            windows = remaining

        return sorted(windows)
