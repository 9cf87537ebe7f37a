# backend/gymschedule/services/capacity_guard.py
"""
Capacity Guard for group class enrollment.

Enrollment is a check-then-insert on a shared counter, so the count and the
insert run under the per-class lock and, on databases that support it, a
row lock on the class. With N seats and N+k concurrent attempts exactly N
are admitted.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    CapacityException,
    DuplicateBookingException,
    NotEnrolledException,
    NotFoundException,
)
from ..core.resource_lock import class_lock_key, resource_lock
from ..domain.conflicts import has_free_seat
from ..models.group_class import ClassEnrollment, GroupClass
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.group_class_repository import GroupClassRepository
from .base import BaseService, NowProvider

logger = logging.getLogger(__name__)


class CapacityGuard(BaseService):
    """Admits or rejects enrollments without ever exceeding a class's capacity."""

    def __init__(
        self,
        db: Session,
        repository: Optional[GroupClassRepository] = None,
        now_provider: Optional[NowProvider] = None,
    ):
        super().__init__(db, now_provider=now_provider)
        self.repository = repository or RepositoryFactory.create_group_class_repository(db)
        self.directory_repository = RepositoryFactory.create_directory_repository(db)

    def _load_class_for_update(self, class_id: str) -> GroupClass:
        group_class = self.repository.get_for_update(class_id)
        if group_class is None:
            raise NotFoundException(
                f"Class {class_id} not found",
                code="CLASS_NOT_FOUND",
                details={"class_id": class_id},
            )
        return group_class

    def _ensure_member(self, member_id: str) -> None:
        if self.directory_repository.get_member(member_id) is None:
            raise NotFoundException(
                f"Member {member_id} not found",
                code="MEMBER_NOT_FOUND",
                details={"member_id": member_id},
            )

    @BaseService.measure_operation("try_enroll")
    def try_enroll(self, class_id: str, member_id: str) -> ClassEnrollment:
        """
        Enroll a member if the class has a free seat.

        Raises:
            NotFoundException: If the class or member does not exist
            DuplicateBookingException: If the member is already enrolled
            CapacityException: If every seat is taken
        """
        self.log_operation("try_enroll", class_id=class_id, member_id=member_id)

        with resource_lock(class_lock_key(class_id)):
            with self.transaction():
                group_class = self._load_class_for_update(class_id)
                self._ensure_member(member_id)

                if self.repository.get_enrollment(class_id, member_id) is not None:
                    prometheus_metrics.record_enrollment("duplicate")
                    raise DuplicateBookingException(
                        "Already enrolled in this class",
                        details={"class_id": class_id, "member_id": member_id},
                    )

                enrolled = self.repository.count_enrollments(class_id)
                if not has_free_seat(enrolled, group_class.capacity):
                    prometheus_metrics.record_enrollment("full")
                    self.logger.info(
                        "Class %s is full (%d/%d); rejected member %s",
                        class_id,
                        enrolled,
                        group_class.capacity,
                        member_id,
                    )
                    raise CapacityException(class_id, group_class.capacity, enrolled)

                try:
                    enrollment = self.repository.create_enrollment(class_id, member_id)
                except IntegrityError as exc:
                    prometheus_metrics.record_enrollment("duplicate")
                    raise DuplicateBookingException(
                        "Already enrolled in this class",
                        details={"class_id": class_id, "member_id": member_id},
                    ) from exc

        prometheus_metrics.record_enrollment("admitted")
        self.logger.info("Member %s enrolled in class %s", member_id, class_id)
        return enrollment

    @BaseService.measure_operation("withdraw")
    def withdraw(self, class_id: str, member_id: str) -> None:
        """
        Remove a member's enrollment, freeing the seat.

        Raises:
            NotFoundException: If the class does not exist
            NotEnrolledException: If the member holds no enrollment in the class
        """
        self.log_operation("withdraw", class_id=class_id, member_id=member_id)

        with resource_lock(class_lock_key(class_id)):
            with self.transaction():
                self._load_class_for_update(class_id)
                enrollment = self.repository.get_enrollment(class_id, member_id)
                if enrollment is None:
                    raise NotEnrolledException(class_id, member_id)
                self.repository.delete_enrollment(enrollment)

        self.logger.info("Member %s withdrew from class %s", member_id, class_id)

    def enrolled_count(self, class_id: str) -> int:
        return self.repository.count_enrollments(class_id)
