# backend/gymschedule/services/group_class_service.py
"""
Group Class Service for the gym scheduling engine.

Classes hold a trainer and a room every week on one weekday, so they are
validated by the same conflict checker as personal sessions. Enrollment
itself is delegated to the capacity guard.
"""

import logging
from typing import Any, Dict, List, NamedTuple, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import CapacityException, NotFoundException, ServiceException
from ..core.resource_lock import class_lock_key, resource_locks, room_lock_key, trainer_lock_key
from ..domain.conflicts import BookingRef
from ..domain.intervals import TimeSlot
from ..domain.weekdays import Weekday
from ..models.group_class import ClassEnrollment, GroupClass
from ..repositories import RepositoryFactory
from ..repositories.group_class_repository import GroupClassRepository
from ..schemas.scheduling import GroupClassCreate, GroupClassSummary, GroupClassUpdate
from .base import BaseService, NowProvider
from .capacity_guard import CapacityGuard
from .conflict_checker import ConflictChecker

logger = logging.getLogger(__name__)

# Changing any of these moves the class onto other resources or another slot
SCHEDULE_FIELDS = ("trainer_id", "room_id", "weekday", "start_time", "end_time")

# A class moved by a concurrent edit between planning and locking is re-planned
MAX_UPDATE_ATTEMPTS = 3


class Placement(NamedTuple):
    """The trainer, room and weekly slot a class occupies."""

    trainer_id: str
    room_id: str
    weekday: Weekday
    slot: TimeSlot

    def lock_keys(self, class_id: str) -> List[str]:
        return sorted(
            [
                class_lock_key(class_id),
                trainer_lock_key(self.trainer_id, self.weekday.value),
                room_lock_key(self.room_id, self.weekday.value),
            ]
        )

    def as_columns(self) -> Dict[str, Any]:
        return {
            "trainer_id": self.trainer_id,
            "room_id": self.room_id,
            "weekday": self.weekday.value,
            "start_time": self.slot.start,
            "end_time": self.slot.end,
        }


class GroupClassService(BaseService):
    """Create, edit, delete and list group classes; route enrollments to the capacity guard."""

    def __init__(
        self,
        db: Session,
        repository: Optional[GroupClassRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        capacity_guard: Optional[CapacityGuard] = None,
        now_provider: Optional[NowProvider] = None,
    ):
        super().__init__(db, now_provider=now_provider)
        self.repository = repository or RepositoryFactory.create_group_class_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, now_provider=now_provider)
        self.capacity_guard = capacity_guard or CapacityGuard(
            db, repository=self.repository, now_provider=now_provider
        )
        self.directory_repository = RepositoryFactory.create_directory_repository(db)

    def _get_class_or_404(self, class_id: str, for_update: bool = False) -> GroupClass:
        group_class = (
            self.repository.get_for_update(class_id)
            if for_update
            else self.repository.get_by_id(class_id)
        )
        if group_class is None:
            raise NotFoundException(
                f"Class {class_id} not found",
                code="CLASS_NOT_FOUND",
                details={"class_id": class_id},
            )
        return group_class

    def _ensure_resources(self, trainer_id: str, room_id: str) -> None:
        if self.directory_repository.get_trainer(trainer_id) is None:
            raise NotFoundException(
                f"Trainer {trainer_id} not found",
                code="TRAINER_NOT_FOUND",
                details={"trainer_id": trainer_id},
            )
        if self.directory_repository.get_room(room_id) is None:
            raise NotFoundException(
                f"Room {room_id} not found",
                code="ROOM_NOT_FOUND",
                details={"room_id": room_id},
            )

    def _validate_placement(
        self,
        trainer_id: str,
        room_id: str,
        weekday: Weekday,
        slot: TimeSlot,
        exclude: Optional[BookingRef] = None,
    ) -> None:
        self.conflict_checker.check_trainer_availability(trainer_id, weekday, slot)
        self.conflict_checker.check_resources_free(
            weekday, slot, trainer_id, room_id, exclude=exclude
        )

    @staticmethod
    def _placement_keys(trainer_id: str, room_id: str, weekday: Weekday) -> List[str]:
        return [trainer_lock_key(trainer_id, weekday.value), room_lock_key(room_id, weekday.value)]

    @BaseService.measure_operation("create_group_class")
    def create_group_class(self, data: GroupClassCreate) -> GroupClass:
        """
        Schedule a weekly class.

        Raises:
            ValidationException: If the slot is malformed
            NotFoundException: If the trainer or room does not exist
            ResourceConflictException: If the trainer is unavailable or busy, or the room is busy
        """
        slot = TimeSlot.of(data.start_time, data.end_time)
        weekday = Weekday.parse(data.weekday)
        self.log_operation(
            "create_group_class",
            trainer_id=data.trainer_id,
            room_id=data.room_id,
            weekday=weekday.value,
            slot=str(slot),
            capacity=data.capacity,
        )
        self._ensure_resources(data.trainer_id, data.room_id)

        with resource_locks(*self._placement_keys(data.trainer_id, data.room_id, weekday)):
            with self.transaction():
                self._validate_placement(data.trainer_id, data.room_id, weekday, slot)
                group_class = self.repository.create(
                    name=data.name,
                    description=data.description,
                    trainer_id=data.trainer_id,
                    room_id=data.room_id,
                    weekday=weekday.value,
                    start_time=slot.start,
                    end_time=slot.end,
                    capacity=data.capacity,
                )

        self.logger.info("Class %s (%s) scheduled on %s %s", group_class.id, data.name, weekday, slot)
        return group_class

    @staticmethod
    def _plan_placement(group_class: GroupClass, changes: Dict[str, Any]) -> Placement:
        """Where the class ends up once the requested changes are applied to its stored row."""
        return Placement(
            trainer_id=changes.get("trainer_id", group_class.trainer_id),
            room_id=changes.get("room_id", group_class.room_id),
            weekday=Weekday.parse(changes.get("weekday", group_class.weekday)),
            slot=TimeSlot.of(
                changes.get("start_time", group_class.start_time),
                changes.get("end_time", group_class.end_time),
            ),
        )

    @staticmethod
    def _moves(group_class: GroupClass, placement: Placement) -> bool:
        return (
            placement.trainer_id != group_class.trainer_id
            or placement.room_id != group_class.room_id
            or placement.weekday != Weekday.parse(group_class.weekday)
            or placement.slot != TimeSlot(group_class.start_time, group_class.end_time)
        )

    def _check_capacity_change(self, class_id: str, capacity: Optional[int]) -> None:
        if capacity is None:
            return
        enrolled = self.repository.count_enrollments(class_id)
        if capacity < enrolled:
            raise CapacityException(
                class_id,
                capacity,
                enrolled,
                message=(
                    f"Capacity cannot be lowered to {capacity}: "
                    f"{enrolled} members are enrolled"
                ),
            )

    @BaseService.measure_operation("update_group_class")
    def update_group_class(self, class_id: str, data: GroupClassUpdate) -> GroupClass:
        """
        Edit a class. Placement changes are re-validated with the class excluded
        from its own conflict check.

        The placement that picks the locks is planned from an unlocked read. It
        is planned again from the row reloaded under those locks; if a
        concurrent edit moved the class onto other lock keys in between, the
        locks are released and the update starts over.

        Raises:
            NotFoundException: If the class, trainer or room does not exist
            CapacityException: If capacity would drop below current enrollment
            ResourceConflictException: If the new placement collides
            ServiceException: If the class keeps moving under concurrent edits
        """
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
        self.log_operation("update_group_class", class_id=class_id, fields=sorted(changes))

        for _attempt in range(MAX_UPDATE_ATTEMPTS):
            planned = self._plan_placement(self._get_class_or_404(class_id), changes)
            self._ensure_resources(planned.trainer_id, planned.room_id)
            keys = planned.lock_keys(class_id)

            with resource_locks(*keys):
                with self.transaction():
                    group_class = self._get_class_or_404(class_id, for_update=True)
                    placement = self._plan_placement(group_class, changes)
                    if placement.lock_keys(class_id) != keys:
                        self.logger.info(
                            "Class %s moved while waiting for locks; retrying", class_id
                        )
                        continue

                    self._check_capacity_change(class_id, changes.get("capacity"))
                    values = {
                        field: changes[field]
                        for field in changes
                        if field not in SCHEDULE_FIELDS
                    }
                    if self._moves(group_class, placement):
                        self._validate_placement(
                            placement.trainer_id,
                            placement.room_id,
                            placement.weekday,
                            placement.slot,
                            exclude=BookingRef.for_class(class_id),
                        )
                        values.update(placement.as_columns())
                    self.repository.apply_changes(group_class, **values)
            break
        else:
            raise ServiceException(
                f"Class {class_id} kept changing under concurrent edits",
                code="CONCURRENT_UPDATE",
                details={"class_id": class_id},
            )

        self.logger.info("Class %s updated: %s", class_id, ", ".join(sorted(values)) or "no changes")
        return group_class

    @BaseService.measure_operation("delete_group_class")
    def delete_group_class(self, class_id: str) -> None:
        """Delete a class together with all of its enrollments."""
        self.log_operation("delete_group_class", class_id=class_id)
        with resource_locks(class_lock_key(class_id)):
            with self.transaction():
                self._get_class_or_404(class_id, for_update=True)
                self.repository.delete(class_id)
        self.logger.info("Class %s deleted", class_id)

    def enroll(self, class_id: str, member_id: str) -> ClassEnrollment:
        return self.capacity_guard.try_enroll(class_id, member_id)

    def withdraw(self, class_id: str, member_id: str) -> None:
        self.capacity_guard.withdraw(class_id, member_id)

    # Reads

    @BaseService.measure_operation("get_group_class")
    def get_group_class(self, class_id: str, member_id: Optional[str] = None) -> GroupClassSummary:
        group_class = self._get_class_or_404(class_id)
        is_enrolled = (
            member_id is not None
            and self.repository.get_enrollment(class_id, member_id) is not None
        )
        return GroupClassSummary.model_validate(group_class).model_copy(
            update={
                "enrolled_count": self.repository.count_enrollments(class_id),
                "is_enrolled": is_enrolled,
            }
        )

    @BaseService.measure_operation("list_group_classes")
    def list_group_classes(self, member_id: Optional[str] = None) -> List[GroupClassSummary]:
        """Every class with its enrollment count, ordered by weekday then start time."""
        enrolled_ids = self.repository.get_enrolled_class_ids(member_id) if member_id else set()
        return [
            GroupClassSummary.model_validate(group_class).model_copy(
                update={"enrolled_count": count, "is_enrolled": group_class.id in enrolled_ids}
            )
            for group_class, count in self.repository.list_with_enrollment_counts()
        ]
