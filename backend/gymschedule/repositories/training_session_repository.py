# backend/gymschedule/repositories/training_session_repository.py
"""
Training Session Repository for the gym scheduling engine.
"""

from datetime import date, time
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.training_session import TrainingSession, TrainingSessionStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TrainingSessionRepository(BaseRepository[TrainingSession]):
    """Repository for personal training session data access."""

    def __init__(self, db: Session):
        super().__init__(db, TrainingSession)
        self.logger = logging.getLogger(__name__)

    def get_for_update(self, session_id: str) -> Optional[TrainingSession]:
        return self.get_by_id(session_id, for_update=True)

    def find_identical_scheduled(
        self,
        member_id: str,
        trainer_id: str,
        room_id: str,
        session_date: date,
        start_time: time,
        end_time: time,
        exclude_session_id: Optional[str] = None,
    ) -> Optional[TrainingSession]:
        """A scheduled session for the same member with exactly the same booking data."""
        query = self.db.query(TrainingSession).filter(
            TrainingSession.member_id == member_id,
            TrainingSession.trainer_id == trainer_id,
            TrainingSession.room_id == room_id,
            TrainingSession.session_date == session_date,
            TrainingSession.start_time == start_time,
            TrainingSession.end_time == end_time,
            TrainingSession.status == TrainingSessionStatus.SCHEDULED.value,
        )
        if exclude_session_id:
            query = query.filter(TrainingSession.id != exclude_session_id)
        results = self._execute_query(query.limit(1))
        return results[0] if results else None

    def list_upcoming_for_member(self, member_id: str, from_date: date) -> List[TrainingSession]:
        return self._execute_query(
            self.db.query(TrainingSession)
            .filter(
                TrainingSession.member_id == member_id,
                TrainingSession.session_date >= from_date,
                TrainingSession.status == TrainingSessionStatus.SCHEDULED.value,
            )
            .order_by(TrainingSession.session_date, TrainingSession.start_time)
        )

    def list_upcoming_for_trainer(self, trainer_id: str, from_date: date) -> List[TrainingSession]:
        return self._execute_query(
            self.db.query(TrainingSession)
            .filter(
                TrainingSession.trainer_id == trainer_id,
                TrainingSession.session_date >= from_date,
                TrainingSession.status == TrainingSessionStatus.SCHEDULED.value,
            )
            .order_by(TrainingSession.session_date, TrainingSession.start_time)
        )
