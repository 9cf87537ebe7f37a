# backend/gymschedule/schemas/scheduling.py
"""
Scheduling schemas: group class requests, candidate lists and schedule views.
"""

import datetime
from typing import Any, List, Optional

from pydantic import ConfigDict, Field, field_validator

from ..domain.weekdays import Weekday
from ._strict_base import StrictModel, StrictRequestModel, normalize_weekday_name


class GroupClassCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    trainer_id: str
    room_id: str
    weekday: Weekday
    start_time: datetime.time
    end_time: datetime.time
    capacity: int = Field(..., ge=1)

    @field_validator("weekday", mode="before")
    @classmethod
    def _normalize_weekday(cls, value: Any) -> Any:
        return normalize_weekday_name(value)


class GroupClassUpdate(StrictRequestModel):
    """Partial update; fields left as None keep their stored value."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    trainer_id: Optional[str] = None
    room_id: Optional[str] = None
    weekday: Optional[Weekday] = None
    start_time: Optional[datetime.time] = None
    end_time: Optional[datetime.time] = None
    capacity: Optional[int] = Field(default=None, ge=1)

    @field_validator("weekday", mode="before")
    @classmethod
    def _normalize_weekday(cls, value: Any) -> Any:
        return normalize_weekday_name(value)


class GroupClassSummary(StrictModel):
    """A class as listed to members, with its current enrollment."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    trainer_id: str
    room_id: str
    weekday: Weekday
    start_time: datetime.time
    end_time: datetime.time
    capacity: int
    enrolled_count: int = 0
    is_enrolled: bool = False

    @property
    def seats_left(self) -> int:
        return max(self.capacity - self.enrolled_count, 0)


class TrainingSessionOut(StrictModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    id: str
    member_id: str
    trainer_id: str
    room_id: str
    session_date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    status: str


class TrainerSchedule(StrictModel):
    """Everything a trainer is booked for: upcoming sessions and weekly classes."""

    trainer_id: str
    sessions: List[TrainingSessionOut] = Field(default_factory=list)
    classes: List[GroupClassSummary] = Field(default_factory=list)


class AvailableTrainer(StrictModel):
    trainer_id: str
    first_name: str
    last_name: str


class AvailableRoom(StrictModel):
    room_id: str
    name: str
