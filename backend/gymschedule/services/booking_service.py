# backend/gymschedule/services/booking_service.py
"""
Booking Service for personal training sessions.

Handles the session lifecycle: create, reschedule, cancel and complete.
Every create and reschedule runs the same checks in the same order:

1. the slot is a valid interval
2. member, trainer and room exist
3. the slot starts in the future (gym timezone)
4. the member has no identical scheduled session
5. the trainer has declared availability covering the slot
6. the trainer is free
7. the room is free

Checks 4-7 and the write happen while holding the trainer and room locks
for the session's weekday, so two requests for the same slot cannot both
pass the checks.
"""

from datetime import date, datetime
import logging
from typing import List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BusinessRuleException,
    DuplicateBookingException,
    NotFoundException,
    PastDateException,
    ValidationException,
)
from ..core.resource_lock import resource_locks, room_lock_key, trainer_lock_key
from ..core.timezone_utils import localize_slot_start
from ..domain.conflicts import BookingRef
from ..domain.intervals import TimeSlot
from ..domain.weekdays import weekday_of
from ..models.training_session import TrainingSession
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.training_session_repository import TrainingSessionRepository
from ..schemas.scheduling import GroupClassSummary, TrainerSchedule, TrainingSessionOut
from .base import BaseService, NowProvider
from .conflict_checker import ConflictChecker, TimeLike

logger = logging.getLogger(__name__)

DateLike = Union[date, str]


def _coerce_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationException(
        f"Invalid session date: {value!r}",
        code="INVALID_DATE",
        details={"value": str(value)},
    )


class BookingService(BaseService):
    """
    Service layer for personal training session operations.

    Only the owning member may reschedule or cancel a session; anyone
    else is told the session does not exist.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[TrainingSessionRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        now_provider: Optional[NowProvider] = None,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            repository: Optional TrainingSessionRepository instance
            conflict_checker: Optional ConflictChecker sharing this session
            now_provider: Optional clock used for the past-date check
        """
        super().__init__(db, now_provider=now_provider)
        self.repository = repository or RepositoryFactory.create_training_session_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, now_provider=now_provider)
        self.directory_repository = RepositoryFactory.create_directory_repository(db)
        self.group_class_repository = RepositoryFactory.create_group_class_repository(db)

    # Validation helpers

    def _ensure_identities(
        self, member_id: Optional[str], trainer_id: str, room_id: str
    ) -> None:
        if member_id is not None and self.directory_repository.get_member(member_id) is None:
            raise NotFoundException(
                f"Member {member_id} not found",
                code="MEMBER_NOT_FOUND",
                details={"member_id": member_id},
            )
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

    def _ensure_future(self, session_date: date, slot: TimeSlot) -> None:
        starts_at = localize_slot_start(session_date, slot.start)
        now = self.now()
        if starts_at <= now:
            prometheus_metrics.record_booking_rejection("session", "past_date")
            raise PastDateException(requested=starts_at.isoformat(), now=now.isoformat())

    def _ensure_not_duplicate(
        self,
        member_id: str,
        trainer_id: str,
        room_id: str,
        session_date: date,
        slot: TimeSlot,
        exclude_session_id: Optional[str] = None,
    ) -> None:
        existing = self.repository.find_identical_scheduled(
            member_id,
            trainer_id,
            room_id,
            session_date,
            slot.start,
            slot.end,
            exclude_session_id=exclude_session_id,
        )
        if existing is not None:
            prometheus_metrics.record_booking_rejection("session", "duplicate")
            raise DuplicateBookingException(
                "An identical session is already booked",
                details={"session_id": existing.id},
            )

    def _check_slot(
        self,
        member_id: str,
        trainer_id: str,
        room_id: str,
        session_date: date,
        slot: TimeSlot,
        exclude: Optional[BookingRef] = None,
    ) -> None:
        """Checks 4-7; callers hold the resource locks."""
        self._ensure_not_duplicate(
            member_id,
            trainer_id,
            room_id,
            session_date,
            slot,
            exclude_session_id=exclude.id if exclude else None,
        )
        self.conflict_checker.check_trainer_availability(
            trainer_id, weekday_of(session_date), slot
        )
        self.conflict_checker.check_resources_free(
            session_date, slot, trainer_id, room_id, exclude=exclude
        )

    @staticmethod
    def _lock_keys(trainer_id: str, room_id: str, session_date: date) -> Tuple[str, str]:
        weekday = weekday_of(session_date).value
        return trainer_lock_key(trainer_id, weekday), room_lock_key(room_id, weekday)

    def _get_owned_session(
        self, session_id: str, member_id: Optional[str], for_update: bool = False
    ) -> TrainingSession:
        session = (
            self.repository.get_for_update(session_id)
            if for_update
            else self.repository.get_by_id(session_id)
        )
        if session is None or (member_id is not None and session.member_id != member_id):
            raise NotFoundException(
                "Training session not found",
                code="SESSION_NOT_FOUND",
                details={"session_id": session_id},
            )
        return session

    @staticmethod
    def _ensure_scheduled(session: TrainingSession, action: str) -> None:
        if not session.is_scheduled:
            raise BusinessRuleException(
                f"Cannot {action} a session that is {session.status}",
                code="INVALID_SESSION_STATE",
                details={"session_id": session.id, "status": session.status},
            )

    # Lifecycle

    @BaseService.measure_operation("create_session")
    def create_session(
        self,
        member_id: str,
        trainer_id: str,
        room_id: str,
        session_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
    ) -> TrainingSession:
        """
        Book a personal training session.

        Returns:
            The created session, status scheduled

        Raises:
            ValidationException: If the slot or date is malformed
            NotFoundException: If the member, trainer or room does not exist
            PastDateException: If the slot does not start in the future
            DuplicateBookingException: If the member already holds this exact session
            ResourceConflictException: If the trainer is unavailable or busy, or the room is busy
        """
        slot = TimeSlot.of(start_time, end_time)
        day = _coerce_date(session_date)
        self.log_operation(
            "create_session",
            member_id=member_id,
            trainer_id=trainer_id,
            room_id=room_id,
            session_date=day.isoformat(),
            slot=str(slot),
        )

        self._ensure_identities(member_id, trainer_id, room_id)
        self._ensure_future(day, slot)

        with resource_locks(*self._lock_keys(trainer_id, room_id, day)):
            with self.transaction():
                self._check_slot(member_id, trainer_id, room_id, day, slot)
                session = self.repository.create(
                    member_id=member_id,
                    trainer_id=trainer_id,
                    room_id=room_id,
                    session_date=day,
                    start_time=slot.start,
                    end_time=slot.end,
                )

        self.logger.info(
            "Session %s booked: member=%s trainer=%s room=%s %s %s",
            session.id,
            member_id,
            trainer_id,
            room_id,
            day,
            slot,
        )
        return session

    @BaseService.measure_operation("reschedule_session")
    def reschedule_session(
        self,
        session_id: str,
        member_id: str,
        session_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
        trainer_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> TrainingSession:
        """
        Move a scheduled session to a new date/slot, optionally changing trainer or room.

        The session's own current booking never conflicts with its new slot.

        Raises:
            NotFoundException: If the session does not exist or belongs to another member
            BusinessRuleException: If the session is canceled or completed
            (plus every create_session rejection)
        """
        slot = TimeSlot.of(start_time, end_time)
        day = _coerce_date(session_date)
        self.log_operation(
            "reschedule_session",
            session_id=session_id,
            member_id=member_id,
            session_date=day.isoformat(),
            slot=str(slot),
        )

        current = self._get_owned_session(session_id, member_id)
        self._ensure_scheduled(current, "reschedule")
        new_trainer_id = trainer_id or current.trainer_id
        new_room_id = room_id or current.room_id
        self._ensure_identities(None, new_trainer_id, new_room_id)
        self._ensure_future(day, slot)

        with resource_locks(*self._lock_keys(new_trainer_id, new_room_id, day)):
            with self.transaction():
                session = self._get_owned_session(session_id, member_id, for_update=True)
                self._ensure_scheduled(session, "reschedule")
                self._check_slot(
                    member_id,
                    new_trainer_id,
                    new_room_id,
                    day,
                    slot,
                    exclude=BookingRef.for_session(session_id),
                )
                session.trainer_id = new_trainer_id
                session.room_id = new_room_id
                session.session_date = day
                session.start_time = slot.start
                session.end_time = slot.end
                self.repository.flush()

        self.logger.info("Session %s rescheduled to %s %s", session_id, day, slot)
        return session

    def _transition(
        self, session_id: str, member_id: Optional[str], action: str
    ) -> TrainingSession:
        current = self._get_owned_session(session_id, member_id)
        keys = self._lock_keys(current.trainer_id, current.room_id, current.session_date)

        with resource_locks(*keys):
            with self.transaction():
                session = self._get_owned_session(session_id, member_id, for_update=True)
                self._ensure_scheduled(session, action)
                if action == "cancel":
                    session.cancel()
                else:
                    session.complete()
                self.repository.flush()
        return session

    @BaseService.measure_operation("cancel_session")
    def cancel_session(self, session_id: str, member_id: str) -> TrainingSession:
        """
        Cancel a scheduled session, releasing its trainer and room.

        Raises:
            NotFoundException: If the session does not exist or belongs to another member
            BusinessRuleException: If the session is already canceled or completed
        """
        self.log_operation("cancel_session", session_id=session_id, member_id=member_id)
        return self._transition(session_id, member_id, "cancel")

    @BaseService.measure_operation("complete_session")
    def complete_session(self, session_id: str) -> TrainingSession:
        """Mark a scheduled session as completed (trainer or system action)."""
        self.log_operation("complete_session", session_id=session_id)
        return self._transition(session_id, None, "complete")

    # Reads

    @BaseService.measure_operation("get_session")
    def get_session(self, session_id: str, member_id: Optional[str] = None) -> TrainingSession:
        return self._get_owned_session(session_id, member_id)

    @BaseService.measure_operation("list_upcoming_sessions_for_member")
    def list_upcoming_sessions_for_member(self, member_id: str) -> List[TrainingSession]:
        """Scheduled sessions of the member from today onward, soonest first."""
        return self.repository.list_upcoming_for_member(member_id, self.today())

    @BaseService.measure_operation("get_trainer_schedule")
    def get_trainer_schedule(self, trainer_id: str) -> TrainerSchedule:
        """Upcoming scheduled sessions plus the weekly classes a trainer leads."""
        if self.directory_repository.get_trainer(trainer_id) is None:
            raise NotFoundException(
                f"Trainer {trainer_id} not found",
                code="TRAINER_NOT_FOUND",
                details={"trainer_id": trainer_id},
            )
        sessions = self.repository.list_upcoming_for_trainer(trainer_id, self.today())
        classes = [
            GroupClassSummary.model_validate(group_class).model_copy(
                update={
                    "enrolled_count": self.group_class_repository.count_enrollments(group_class.id)
                }
            )
            for group_class in self.group_class_repository.list_for_trainer(trainer_id)
        ]
        return TrainerSchedule(
            trainer_id=trainer_id,
            sessions=[TrainingSessionOut.model_validate(s) for s in sessions],
            classes=classes,
        )
