"""Half-open time-of-day intervals at minute resolution.

Times are stored as minutes since midnight, so ``09:30`` is ``570``. An
interval ``[start, end)`` contains ``start`` but not ``end``; two intervals
that only share a boundary do not overlap.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .errors import InvalidInterval

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9])$")


def parse_hhmm(value: str, allow_end_of_day: bool = False) -> int:
    """Convert ``"HH:mm"`` to minutes since midnight.

    ``"24:00"`` is only accepted when ``allow_end_of_day`` is set, for the end
    of a window that closes at midnight.
    """
    if not isinstance(value, str):
        raise InvalidInterval(f"expected a HH:mm string, got {value!r}")
    if allow_end_of_day and value.strip() == "24:00":
        return MINUTES_PER_DAY
    match = _HHMM.match(value.strip())
    if not match:
        raise InvalidInterval(f"{value!r} is not in HH:mm format")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    # 24:00 is a legal interval end (closing at midnight)
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise InvalidInterval(f"{minutes} minutes is outside a day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True, order=True)
class TimeInterval:
    start: int
    end: int

    def __post_init__(self) -> None:
        if not isinstance(self.start, int) or not isinstance(self.end, int):
            raise InvalidInterval("interval bounds must be whole minutes")
        if self.start < 0 or self.end > MINUTES_PER_DAY:
            raise InvalidInterval(
                f"interval [{self.start}, {self.end}) does not fit in a day"
            )
        if self.start >= self.end:
            raise InvalidInterval(
                f"interval start {self.start} must be before end {self.end}"
            )

    @classmethod
    def from_hhmm(cls, start: str, end: str) -> "TimeInterval":
        return cls(parse_hhmm(start), parse_hhmm(end, allow_end_of_day=True))

    @classmethod
    def starting_at(cls, start: int, duration: int) -> "TimeInterval":
        return cls(start, start + duration)

    @property
    def duration(self) -> int:
        return self.end - self.start

    def to_hhmm(self) -> tuple[str, str]:
        return format_hhmm(self.start), format_hhmm(self.end)

    def __str__(self) -> str:
        return "%s-%s" % self.to_hhmm()


@dataclass(frozen=True)
class DatedInterval:
    """A time interval pinned to a calendar date."""

    day: date
    interval: TimeInterval

    def overlaps(self, other: "DatedInterval") -> bool:
        return self.day == other.day and overlaps(self.interval, other.interval)


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    return a.start < b.end and b.start < a.end


def contains(outer: TimeInterval, inner: TimeInterval) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


def subtract(window: TimeInterval, blocker: TimeInterval) -> list[TimeInterval]:
    """Return what is left of ``window`` once ``blocker`` is removed.

    The result holds zero, one or two intervals, in ascending order.
    """
    if not overlaps(window, blocker):
        return [window]

    remainder = []
    if window.start < blocker.start:
        remainder.append(TimeInterval(window.start, blocker.start))
    if blocker.end < window.end:
        remainder.append(TimeInterval(blocker.end, window.end))
    return remainder


def merge(intervals: Iterable[TimeInterval]) -> list[TimeInterval]:
    """Sort intervals and fuse the ones that overlap or touch."""
    merged: list[TimeInterval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = TimeInterval(last.start, interval.end)
            continue
        merged.append(interval)
    return merged
