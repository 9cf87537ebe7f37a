# backend/gymschedule/repositories/factory.py
"""
Repository Factory for the gym scheduling engine.

Every service builds its repositories here, so they all share the
session (and therefore the transaction) the service was given.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .directory_repository import DirectoryRepository
    from .group_class_repository import GroupClassRepository
    from .training_session_repository import TrainingSessionRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Imports are deferred so repository modules can import models freely
    without import cycles through the services package.
    """

    @staticmethod
    def create_directory_repository(db: Session) -> "DirectoryRepository":
        """Create repository for member, trainer and room lookups."""
        from .directory_repository import DirectoryRepository

        return DirectoryRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for trainer weekly availability."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking queries."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_group_class_repository(db: Session) -> "GroupClassRepository":
        """Create repository for group classes and enrollments."""
        from .group_class_repository import GroupClassRepository

        return GroupClassRepository(db)

    @staticmethod
    def create_training_session_repository(db: Session) -> "TrainingSessionRepository":
        """Create repository for personal training sessions."""
        from .training_session_repository import TrainingSessionRepository

        return TrainingSessionRepository(db)
