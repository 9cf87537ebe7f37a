# backend/gymschedule/repositories/group_class_repository.py
"""
Group Class Repository for the gym scheduling engine.

Owns class and enrollment queries. Enrollment counting and insertion are
only safe under the per-class lock the capacity guard holds.
"""

import logging
from typing import Any, List, Optional, Set, Tuple

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..domain.weekdays import Weekday
from ..models.group_class import ClassEnrollment, GroupClass
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

CLASS_WEEKDAY_ORDER = case(
    {day.value: day.position for day in Weekday},
    value=GroupClass.weekday,
)


class GroupClassRepository(BaseRepository[GroupClass]):
    """Repository for group classes and their enrollments."""

    def __init__(self, db: Session):
        super().__init__(db, GroupClass)
        self.logger = logging.getLogger(__name__)

    def get_for_update(self, class_id: str) -> Optional[GroupClass]:
        """Load the class with a row lock, discarding any stale identity-map copy."""
        return self.get_by_id(class_id, for_update=True)

    def list_for_trainer(self, trainer_id: str) -> List[GroupClass]:
        return self._execute_query(
            self.db.query(GroupClass)
            .filter(GroupClass.trainer_id == trainer_id)
            .order_by(CLASS_WEEKDAY_ORDER, GroupClass.start_time)
        )

    def list_with_enrollment_counts(self) -> List[Tuple[GroupClass, int]]:
        """Every class paired with its current enrollment count."""
        enrolled = (
            self.db.query(
                ClassEnrollment.class_id.label("class_id"),
                func.count(ClassEnrollment.id).label("enrolled"),
            )
            .group_by(ClassEnrollment.class_id)
            .subquery()
        )
        rows = self._execute_query(
            self.db.query(GroupClass, func.coalesce(enrolled.c.enrolled, 0))
            .outerjoin(enrolled, enrolled.c.class_id == GroupClass.id)
            .order_by(CLASS_WEEKDAY_ORDER, GroupClass.start_time, GroupClass.name, GroupClass.id)
        )
        return [(group_class, int(count)) for group_class, count in rows]

    # Enrollment queries

    def count_enrollments(self, class_id: str) -> int:
        return int(
            self._execute_scalar(
                self.db.query(func.count(ClassEnrollment.id)).filter(
                    ClassEnrollment.class_id == class_id
                )
            )
            or 0
        )

    def get_enrollment(self, class_id: str, member_id: str) -> Optional[ClassEnrollment]:
        try:
            return (
                self.db.query(ClassEnrollment)
                .filter(
                    ClassEnrollment.class_id == class_id,
                    ClassEnrollment.member_id == member_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting enrollment for class {class_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve enrollment: {str(e)}")

    def get_enrolled_class_ids(self, member_id: str) -> Set[str]:
        rows = self._execute_query(
            self.db.query(ClassEnrollment.class_id).filter(ClassEnrollment.member_id == member_id)
        )
        return {row[0] for row in rows}

    def create_enrollment(self, class_id: str, member_id: str) -> ClassEnrollment:
        """
        Insert an enrollment, exposing integrity errors for duplicate handling.

        Raises:
            IntegrityError: if the (class, member) pair already exists
        """
        try:
            enrollment = ClassEnrollment(class_id=class_id, member_id=member_id)
            self.db.add(enrollment)
            self.db.flush()
            return enrollment
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating enrollment: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to create enrollment: {str(e)}")

    def delete_enrollment(self, enrollment: ClassEnrollment) -> None:
        try:
            self.db.delete(enrollment)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting enrollment {enrollment.id}: {str(e)}")
            raise RepositoryException(f"Failed to delete enrollment: {str(e)}")

    def apply_changes(self, group_class: GroupClass, **changes: Any) -> GroupClass:
        try:
            for key, value in changes.items():
                setattr(group_class, key, value)
            self.db.flush()
            return group_class
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating class {group_class.id}: {str(e)}")
            raise RepositoryException(f"Failed to update class: {str(e)}")
