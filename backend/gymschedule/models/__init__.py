"""
Database models for the gym scheduling engine.

- Identity records: members, trainers, rooms
- Trainer weekly availability
- Group classes and enrollments
- Personal training sessions
"""

from .availability import TrainerAvailability
from .directory import Member, Room, Trainer
from .group_class import ClassEnrollment, GroupClass
from .training_session import TrainingSession, TrainingSessionStatus

__all__ = [
    "ClassEnrollment",
    "GroupClass",
    "Member",
    "Room",
    "Trainer",
    "TrainerAvailability",
    "TrainingSession",
    "TrainingSessionStatus",
]
