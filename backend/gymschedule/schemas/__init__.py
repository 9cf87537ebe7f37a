"""Pydantic request and response models for the scheduling services."""

from .availability import AvailabilityReplaceRequest, AvailabilityWindowIn, AvailabilityWindowOut
from .scheduling import (
    AvailableRoom,
    AvailableTrainer,
    GroupClassCreate,
    GroupClassSummary,
    GroupClassUpdate,
    TrainerSchedule,
    TrainingSessionOut,
)

__all__ = [
    "AvailabilityReplaceRequest",
    "AvailabilityWindowIn",
    "AvailabilityWindowOut",
    "AvailableRoom",
    "AvailableTrainer",
    "GroupClassCreate",
    "GroupClassSummary",
    "GroupClassUpdate",
    "TrainerSchedule",
    "TrainingSessionOut",
]
