"""
Timezone utilities for the gym scheduling engine.

Session dates and times are wall-clock values in the gym's timezone, so
"is this in the future" must be answered in that timezone too.
"""

from datetime import date, datetime, time
from typing import Optional

import pytz

from .config import settings


def get_gym_timezone(tz_name: Optional[str] = None) -> pytz.BaseTzInfo:
    """Return the configured gym timezone as a pytz timezone."""
    return pytz.timezone(tz_name or settings.gym_timezone)


def get_gym_now(tz_name: Optional[str] = None) -> datetime:
    """Get the current aware datetime in the gym's timezone."""
    return datetime.now(get_gym_timezone(tz_name))


def localize_slot_start(day: date, start: time, tz_name: Optional[str] = None) -> datetime:
    """Combine a session date and start time into an aware datetime in the gym timezone."""
    return get_gym_timezone(tz_name).localize(datetime.combine(day, start))


def to_gym_time(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert a datetime to the gym timezone, assuming UTC when naive."""
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt.astimezone(get_gym_timezone(tz_name))
