"""
Pure scheduling primitives: intervals, weekday/date reconciliation and the
conflict/capacity decision functions. Nothing here touches storage.
"""

from .conflicts import ActiveBooking, BookingKind, BookingRef, find_overlapping, has_free_seat, is_free
from .intervals import DatedSlot, RecurringSlot, TimeSlot, contains, overlaps, parse_time
from .weekdays import Weekday, weekday_of

__all__ = [
    "ActiveBooking",
    "BookingKind",
    "BookingRef",
    "DatedSlot",
    "RecurringSlot",
    "TimeSlot",
    "Weekday",
    "contains",
    "find_overlapping",
    "has_free_seat",
    "is_free",
    "overlaps",
    "parse_time",
    "weekday_of",
]
