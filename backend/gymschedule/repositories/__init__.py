# backend/gymschedule/repositories/__init__.py
"""
Repository layer for the gym scheduling engine.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- DirectoryRepository: Members, trainers and rooms
- AvailabilityRepository: Trainer weekly availability windows
- ConflictCheckerRepository: Active bookings holding a trainer or room
- GroupClassRepository: Group classes and enrollments
- TrainingSessionRepository: Personal training sessions

Usage:
    from gymschedule.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_conflict_checker_repository(db)
    bookings = repository.get_active_bookings(weekday, session_date=day, room_id=room_id)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .directory_repository import DirectoryRepository
from .factory import RepositoryFactory
from .group_class_repository import GroupClassRepository
from .training_session_repository import TrainingSessionRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "ConflictCheckerRepository",
    "DirectoryRepository",
    "GroupClassRepository",
    "RepositoryFactory",
    "TrainingSessionRepository",
]
