# backend/gymschedule/repositories/availability_repository.py
"""
Availability Repository for the gym scheduling engine.

Stores each trainer's weekly windows. Writes are whole-set replacements;
the service validates the new set before calling replace_for_trainer().
"""

import logging
from typing import Iterable, List

from sqlalchemy import case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..domain.intervals import RecurringSlot
from ..domain.weekdays import Weekday
from ..models.availability import TrainerAvailability
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

# Monday first, matching Weekday.position
WEEKDAY_ORDER = case(
    {day.value: day.position for day in Weekday},
    value=TrainerAvailability.weekday,
)


class AvailabilityRepository(BaseRepository[TrainerAvailability]):
    """Repository for trainer weekly availability windows."""

    def __init__(self, db: Session):
        super().__init__(db, TrainerAvailability)
        self.logger = logging.getLogger(__name__)

    def get_for_trainer(self, trainer_id: str) -> List[TrainerAvailability]:
        """All windows of a trainer, ordered by weekday then start time."""
        return self._execute_query(
            self.db.query(TrainerAvailability)
            .filter(TrainerAvailability.trainer_id == trainer_id)
            .order_by(WEEKDAY_ORDER, TrainerAvailability.start_time)
        )

    def get_for_trainer_on(self, trainer_id: str, weekday: Weekday) -> List[TrainerAvailability]:
        return self._execute_query(
            self.db.query(TrainerAvailability)
            .filter(
                TrainerAvailability.trainer_id == trainer_id,
                TrainerAvailability.weekday == weekday.value,
            )
            .order_by(TrainerAvailability.start_time)
        )

    def replace_for_trainer(
        self, trainer_id: str, slots: Iterable[RecurringSlot]
    ) -> List[TrainerAvailability]:
        """
        Delete every window of the trainer and insert the given ones.

        Does NOT commit; the caller's transaction makes the swap atomic.
        """
        try:
            deleted = (
                self.db.query(TrainerAvailability)
                .filter(TrainerAvailability.trainer_id == trainer_id)
                .delete(synchronize_session=False)
            )
            rows = [
                TrainerAvailability(
                    trainer_id=trainer_id,
                    weekday=entry.weekday.value,
                    start_time=entry.slot.start,
                    end_time=entry.slot.end,
                )
                for entry in slots
            ]
            self.db.add_all(rows)
            self.db.flush()
            self.logger.debug(
                "Replaced availability for trainer %s: %d removed, %d added",
                trainer_id,
                deleted,
                len(rows),
            )
            return rows
        except SQLAlchemyError as e:
            self.logger.error(f"Error replacing availability for trainer {trainer_id}: {str(e)}")
            raise RepositoryException(f"Failed to replace availability: {str(e)}")
