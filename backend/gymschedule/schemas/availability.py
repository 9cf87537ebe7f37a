# backend/gymschedule/schemas/availability.py
"""
Trainer weekly availability schemas.

Time ordering and same-day overlap are checked by the availability service,
not here, so a bad submission is reported with the offending weekday and
ranges instead of a generic field error.
"""

import datetime
from typing import Any, List

from pydantic import ConfigDict, Field, field_validator

from ..domain.weekdays import Weekday
from ._strict_base import StrictModel, StrictRequestModel, normalize_weekday_name


class AvailabilityWindowIn(StrictRequestModel):
    """One weekly window a trainer can be booked in."""

    weekday: Weekday
    start_time: datetime.time
    end_time: datetime.time

    @field_validator("weekday", mode="before")
    @classmethod
    def _normalize_weekday(cls, value: Any) -> Any:
        return normalize_weekday_name(value)


class AvailabilityReplaceRequest(StrictRequestModel):
    """Whole-set replacement of a trainer's weekly availability."""

    slots: List[AvailabilityWindowIn] = Field(default_factory=list)


class AvailabilityWindowOut(StrictModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    weekday: Weekday
    start_time: datetime.time
    end_time: datetime.time
