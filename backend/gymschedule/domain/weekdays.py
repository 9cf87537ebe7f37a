"""
Day/date reconciliation.

Group classes and trainer availability recur on weekdays while training
sessions live on calendar dates. Every comparison between the two goes
through weekday_of().
"""

from datetime import date
from enum import Enum
from typing import Union

from ..core.exceptions import ValidationException


class Weekday(str, Enum):
    """Days of the week, Monday first (matches date.weekday())."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def position(self) -> int:
        return _ORDER.index(self)

    @classmethod
    def parse(cls, value: Union["Weekday", str]) -> "Weekday":
        """Accept an enum member or a case-insensitive day name ("monday", "Monday")."""
        if isinstance(value, Weekday):
            return value
        if isinstance(value, str):
            normalized = value.strip().capitalize()
            for member in cls:
                if member.value == normalized:
                    return member
        raise ValidationException(
            f"Invalid weekday: {value!r}",
            code="INVALID_WEEKDAY",
            details={"weekday": str(value)},
        )

    def __str__(self) -> str:
        return self.value


_ORDER = list(Weekday)


def weekday_of(day: date) -> Weekday:
    """Map a calendar date to its weekday."""
    return _ORDER[day.weekday()]


def resolve_weekday(on: Union[date, Weekday, str]) -> Weekday:
    """Normalize a date or weekday-like value to a Weekday."""
    if isinstance(on, date):
        return weekday_of(on)
    return Weekday.parse(on)
