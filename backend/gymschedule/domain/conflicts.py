"""
Pure conflict and capacity decisions over booking snapshots.

The repositories collect snapshots; these functions only decide. They hold
no state and are safe to call from any number of threads.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .intervals import RecurringSlot, TimeSlot, contains
from .weekdays import Weekday


class BookingKind(str, Enum):
    CLASS = "class"
    SESSION = "session"


@dataclass(frozen=True)
class BookingRef:
    """Identity of a booking, used to exclude a booking from its own conflict check."""

    kind: BookingKind
    id: str

    @classmethod
    def for_class(cls, class_id: str) -> "BookingRef":
        return cls(BookingKind.CLASS, class_id)

    @classmethod
    def for_session(cls, session_id: str) -> "BookingRef":
        return cls(BookingKind.SESSION, session_id)


@dataclass(frozen=True)
class ActiveBooking:
    """Snapshot of a booking that currently holds a trainer and a room."""

    ref: BookingRef
    weekday: Weekday
    slot: TimeSlot
    trainer_id: str
    room_id: str
    session_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "booking_kind": self.ref.kind.value,
            "booking_id": self.ref.id,
            "weekday": self.weekday.value,
            "session_date": self.session_date.isoformat() if self.session_date else None,
            "start_time": self.slot.start.isoformat(),
            "end_time": self.slot.end.isoformat(),
            "trainer_id": self.trainer_id,
            "room_id": self.room_id,
        }


def find_overlapping(
    candidate: TimeSlot,
    bookings: Iterable[ActiveBooking],
    exclude: Optional[BookingRef] = None,
) -> List[ActiveBooking]:
    """Return every booking (other than `exclude`) whose slot overlaps the candidate."""
    return [
        booking
        for booking in bookings
        if booking.ref != exclude and booking.slot.overlaps(candidate)
    ]


def is_free(
    candidate: TimeSlot,
    bookings: Iterable[ActiveBooking],
    exclude: Optional[BookingRef] = None,
) -> bool:
    return not find_overlapping(candidate, bookings, exclude)


def fits_availability(candidate: TimeSlot, windows: Iterable[TimeSlot]) -> bool:
    """A trainer can take the slot only if one declared window fully contains it."""
    return any(contains(window, candidate) for window in windows)


def find_overlapping_pair(
    slots: Sequence[RecurringSlot],
) -> Optional[Tuple[RecurringSlot, RecurringSlot]]:
    """
    Return the first pair of same-weekday slots that overlap, or None.

    Slots are swept per weekday in start order while tracking the slot
    with the latest end seen so far; any later slot starting before that
    end overlaps it.
    """
    by_day: Dict[Weekday, List[RecurringSlot]] = defaultdict(list)
    for entry in slots:
        by_day[entry.weekday].append(entry)

    for weekday in sorted(by_day, key=lambda day: day.position):
        ordered = sorted(by_day[weekday], key=lambda entry: (entry.slot.start, entry.slot.end))
        widest = ordered[0]
        for entry in ordered[1:]:
            if entry.slot.start < widest.slot.end:
                return widest, entry
            if entry.slot.end > widest.slot.end:
                widest = entry
    return None


def has_free_seat(enrolled: int, capacity: int) -> bool:
    """Inclusive capacity: the last seat is fillable (admit while enrolled < capacity)."""
    return enrolled < capacity
