# backend/gymschedule/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for the gym scheduling engine.

Collects the bookings that currently hold a trainer or a room: every group
class on the weekday, plus scheduled training sessions. Canceled and
completed sessions never block anything.

Queries reload rows (populate_existing) so a check running under a
resource lock sees what the previous lock holder committed, not a stale
copy from this session's identity map.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import ColumnElement, extract, func, or_
from sqlalchemy.orm import Query, Session

from ..domain.conflicts import ActiveBooking
from ..domain.weekdays import Weekday, weekday_of
from ..models.group_class import GroupClass
from ..models.training_session import TrainingSession, TrainingSessionStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[TrainingSession]):
    """
    Repository for conflict checking data access.

    Returns ActiveBooking snapshots; the decision itself is made by the
    pure functions in domain.conflicts.
    """

    def __init__(self, db: Session):
        super().__init__(db, TrainingSession)
        self.logger = logging.getLogger(__name__)

    def get_classes_on_weekday(
        self,
        weekday: Weekday,
        trainer_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> List[GroupClass]:
        """Classes on the weekday holding the trainer or the room."""
        query = self.db.query(GroupClass).filter(GroupClass.weekday == weekday.value)
        query = self._filter_resources(query, GroupClass, trainer_id, room_id)
        return self._execute_query(query.populate_existing().order_by(GroupClass.start_time))

    def get_sessions_on_date(
        self,
        session_date: date,
        trainer_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> List[TrainingSession]:
        """Scheduled sessions on one calendar date holding the trainer or the room."""
        query = self.db.query(TrainingSession).filter(
            TrainingSession.session_date == session_date,
            TrainingSession.status == TrainingSessionStatus.SCHEDULED.value,
        )
        query = self._filter_resources(query, TrainingSession, trainer_id, room_id)
        return self._execute_query(query.populate_existing().order_by(TrainingSession.start_time))

    def get_upcoming_sessions_on_weekday(
        self,
        weekday: Weekday,
        from_date: date,
        trainer_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> List[TrainingSession]:
        """
        Scheduled sessions from from_date onward whose date falls on the weekday.

        SQLite and PostgreSQL filter by day of week in SQL; on other
        dialects every upcoming session is loaded and filtered here.
        """
        query = self.db.query(TrainingSession).filter(
            TrainingSession.session_date >= from_date,
            TrainingSession.status == TrainingSessionStatus.SCHEDULED.value,
        )
        same_weekday = self._weekday_clause(weekday)
        if same_weekday is not None:
            query = query.filter(same_weekday)
        query = self._filter_resources(query, TrainingSession, trainer_id, room_id)
        sessions = self._execute_query(
            query.populate_existing().order_by(
                TrainingSession.session_date, TrainingSession.start_time
            )
        )
        return [s for s in sessions if weekday_of(s.session_date) == weekday]

    def _weekday_clause(self, weekday: Weekday) -> Optional[ColumnElement[bool]]:
        # Both dialects number days from Sunday = 0
        day_number = (weekday.position + 1) % 7
        dialect_name = self.db.bind.dialect.name if self.db.bind else ""
        if dialect_name == "sqlite":
            return func.strftime("%w", TrainingSession.session_date) == str(day_number)
        if dialect_name == "postgresql":
            return extract("dow", TrainingSession.session_date) == day_number
        return None

    def get_active_bookings(
        self,
        weekday: Weekday,
        session_date: Optional[date] = None,
        from_date: Optional[date] = None,
        trainer_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> List[ActiveBooking]:
        """
        Snapshot every booking that holds the trainer or the room on the day.

        With session_date, sessions on exactly that date are included; without
        it, upcoming sessions (from from_date) falling on the weekday are.
        """
        classes = self.get_classes_on_weekday(weekday, trainer_id, room_id)
        if session_date is not None:
            sessions = self.get_sessions_on_date(session_date, trainer_id, room_id)
        else:
            sessions = self.get_upcoming_sessions_on_weekday(
                weekday, from_date or date.min, trainer_id, room_id
            )
        return [c.to_active_booking() for c in classes] + [s.to_active_booking() for s in sessions]

    @staticmethod
    def _filter_resources(
        query: Query, model: type, trainer_id: Optional[str], room_id: Optional[str]
    ) -> Query:
        clauses = []
        if trainer_id:
            clauses.append(model.trainer_id == trainer_id)
        if room_id:
            clauses.append(model.room_id == room_id)
        if clauses:
            query = query.filter(or_(*clauses))
        return query
