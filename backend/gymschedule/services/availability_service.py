# backend/gymschedule/services/availability_service.py
"""
Trainer Weekly Availability Service.

A trainer's availability is a set of weekly windows, replaced as a whole.
The new set is validated completely before anything is written, so a
rejected submission leaves the previous set untouched.
"""

import logging
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.exceptions import AvailabilityOverlapException, NotFoundException
from ..core.resource_lock import availability_lock_key, resource_lock
from ..domain.conflicts import find_overlapping_pair
from ..domain.intervals import RecurringSlot, TimeSlot
from ..domain.weekdays import Weekday
from ..repositories import RepositoryFactory
from ..repositories.availability_repository import AvailabilityRepository
from ..schemas.availability import AvailabilityWindowIn
from .base import BaseService, NowProvider

logger = logging.getLogger(__name__)

SlotInput = Union[AvailabilityWindowIn, RecurringSlot]


class AvailabilityService(BaseService):
    """Reads and whole-set replaces of trainer weekly availability."""

    def __init__(
        self,
        db: Session,
        repository: Optional[AvailabilityRepository] = None,
        now_provider: Optional[NowProvider] = None,
    ):
        super().__init__(db, now_provider=now_provider)
        self.repository = repository or RepositoryFactory.create_availability_repository(db)
        self.directory_repository = RepositoryFactory.create_directory_repository(db)

    @staticmethod
    def _to_recurring(entry: SlotInput) -> RecurringSlot:
        if isinstance(entry, RecurringSlot):
            return entry
        # TimeSlot construction rejects start >= end
        return RecurringSlot(Weekday.parse(entry.weekday), TimeSlot(entry.start_time, entry.end_time))

    def validate_slots(self, slots: Iterable[SlotInput]) -> List[RecurringSlot]:
        """
        Normalize and validate a submitted availability set.

        Raises:
            ValidationException: if a window has start >= end
            AvailabilityOverlapException: if two windows on one weekday overlap
        """
        normalized = [self._to_recurring(entry) for entry in slots]
        pair = find_overlapping_pair(normalized)
        if pair is not None:
            first, second = pair
            raise AvailabilityOverlapException(
                weekday=first.weekday.value,
                first_range=str(first.slot),
                second_range=str(second.slot),
            )
        return normalized

    @BaseService.measure_operation("set_availability")
    def set_availability(self, trainer_id: str, slots: Iterable[SlotInput]) -> List[RecurringSlot]:
        """
        Replace a trainer's weekly availability with the given windows.

        Args:
            trainer_id: The trainer whose windows are replaced
            slots: The complete new set (may be empty)

        Returns:
            The stored windows ordered by weekday, then start time

        Raises:
            NotFoundException: If the trainer does not exist
            ValidationException: If any window is invalid or two overlap
        """
        normalized = self.validate_slots(slots)
        self.log_operation("set_availability", trainer_id=trainer_id, slot_count=len(normalized))

        with resource_lock(availability_lock_key(trainer_id)):
            with self.transaction():
                if self.directory_repository.get_trainer(trainer_id) is None:
                    raise NotFoundException(
                        f"Trainer {trainer_id} not found",
                        code="TRAINER_NOT_FOUND",
                        details={"trainer_id": trainer_id},
                    )
                self.repository.replace_for_trainer(trainer_id, normalized)

        self.logger.info(
            "Availability replaced for trainer %s with %d windows", trainer_id, len(normalized)
        )
        return self.get_availability(trainer_id)

    @BaseService.measure_operation("get_availability")
    def get_availability(self, trainer_id: str) -> List[RecurringSlot]:
        """Weekly windows of a trainer, Monday first, then by start time."""
        return [row.to_recurring_slot() for row in self.repository.get_for_trainer(trainer_id)]

    def get_windows_on(self, trainer_id: str, weekday: Weekday) -> List[TimeSlot]:
        return [row.slot for row in self.repository.get_for_trainer_on(trainer_id, weekday)]
