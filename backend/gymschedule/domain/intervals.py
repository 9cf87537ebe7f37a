"""
Interval model for bookable time spans.

Slots are half-open [start, end): a slot ending at 10:00 and one starting
at 10:00 do not overlap, which is what makes back-to-back bookings legal.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Union

from ..core.exceptions import ValidationException
from .weekdays import Weekday, weekday_of

TimeLike = Union[time, str]

_TIME_FORMATS = ("%H:%M", "%H:%M:%S")


def parse_time(value: TimeLike) -> time:
    """Accept a time or an "HH:MM"/"HH:MM:SS" string."""
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    if isinstance(value, str):
        candidate = value.strip()
        for fmt in _TIME_FORMATS:
            try:
                return datetime.strptime(candidate, fmt).time()
            except ValueError:
                continue
    raise ValidationException(
        f"Invalid time value: {value!r}",
        code="INVALID_TIME",
        details={"value": str(value)},
    )


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True, order=True)
class TimeSlot:
    """A half-open time-of-day range. Construction enforces start < end."""

    start: time
    end: time

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", parse_time(self.start))
        object.__setattr__(self, "end", parse_time(self.end))
        if self.start >= self.end:
            raise ValidationException(
                f"Invalid time range {format_time(self.start)}-{format_time(self.end)}: "
                "end time must be after start time",
                code="INVALID_TIME_RANGE",
                details={"start_time": self.start.isoformat(), "end_time": self.end.isoformat()},
            )

    @classmethod
    def of(cls, start: TimeLike, end: TimeLike) -> "TimeSlot":
        return cls(parse_time(start), parse_time(end))

    def overlaps(self, other: "TimeSlot") -> bool:
        return overlaps(self, other)

    def contains(self, other: "TimeSlot") -> bool:
        return contains(self, other)

    def __str__(self) -> str:
        return f"{format_time(self.start)}-{format_time(self.end)}"


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    """Two half-open slots overlap iff each starts before the other ends."""
    return a.start < b.end and b.start < a.end


def contains(outer: TimeSlot, inner: TimeSlot) -> bool:
    """True when inner lies entirely within outer (edges inclusive)."""
    return outer.start <= inner.start and inner.end <= outer.end


@dataclass(frozen=True)
class RecurringSlot:
    """A slot repeating every week on one weekday (classes, trainer availability)."""

    weekday: Weekday
    slot: TimeSlot

    def __post_init__(self) -> None:
        object.__setattr__(self, "weekday", Weekday.parse(self.weekday))

    @classmethod
    def of(cls, weekday: Union[Weekday, str], start: TimeLike, end: TimeLike) -> "RecurringSlot":
        return cls(Weekday.parse(weekday), TimeSlot.of(start, end))

    def __str__(self) -> str:
        return f"{self.weekday.value} {self.slot}"


@dataclass(frozen=True)
class DatedSlot:
    """A slot on one calendar date (training sessions)."""

    date: date
    slot: TimeSlot

    @property
    def weekday(self) -> Weekday:
        return weekday_of(self.date)

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.slot}"
