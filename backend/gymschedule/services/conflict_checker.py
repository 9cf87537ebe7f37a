# backend/gymschedule/services/conflict_checker.py
"""
Conflict Checker Service for the gym scheduling engine.

Answers one question for every booking path: can this trainer and/or room
take this slot on this day? Group classes recur on weekdays and training
sessions sit on dates; both are reconciled to a weekday first and then
checked with the same overlap predicate, so a class and a session can
never double-book a resource between them.

Callers that go on to write must hold the trainer/room resource locks
across the check and the commit.
"""

from datetime import date, time
import logging
from typing import Collection, Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ResourceConflictException, ValidationException
from ..domain.conflicts import ActiveBooking, BookingRef, find_overlapping, fits_availability
from ..domain.intervals import TimeSlot
from ..domain.weekdays import Weekday, resolve_weekday
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..schemas.scheduling import AvailableRoom, AvailableTrainer
from .base import BaseService, NowProvider

logger = logging.getLogger(__name__)

DayLike = Union[date, Weekday, str]
TimeLike = Union[time, str]

TRAINER_CONFLICT_MESSAGE = "Trainer is already booked at this time"
ROOM_CONFLICT_MESSAGE = "Room is already booked at this time"
TRAINER_UNAVAILABLE_MESSAGE = "Trainer is not available at this time"


def _excluding(
    bookings: Iterable[ActiveBooking], excluded: Collection[Optional[BookingRef]]
) -> List[ActiveBooking]:
    skip = {ref for ref in excluded if ref is not None}
    return [booking for booking in bookings if booking.ref not in skip]


class ConflictChecker(BaseService):
    """
    Service for checking trainer and room conflicts.

    This service centralizes all conflict detection so classes and
    sessions are validated by exactly the same rules.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[ConflictCheckerRepository] = None,
        now_provider: Optional[NowProvider] = None,
    ):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional ConflictCheckerRepository instance
            now_provider: Optional clock; decides which sessions count as upcoming
        """
        super().__init__(db, now_provider=now_provider)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)
        self.directory_repository = RepositoryFactory.create_directory_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)

    # Input handling

    def _ensure_resources_exist(self, trainer_id: Optional[str], room_id: Optional[str]) -> None:
        if not trainer_id and not room_id:
            raise ValidationException(
                "A trainer or a room is required to check availability",
                code="RESOURCE_REQUIRED",
            )
        if trainer_id and self.directory_repository.get_trainer(trainer_id) is None:
            raise NotFoundException(
                f"Trainer {trainer_id} not found",
                code="TRAINER_NOT_FOUND",
                details={"trainer_id": trainer_id},
            )
        if room_id and self.directory_repository.get_room(room_id) is None:
            raise NotFoundException(
                f"Room {room_id} not found",
                code="ROOM_NOT_FOUND",
                details={"room_id": room_id},
            )

    def _collect(
        self,
        on: DayLike,
        trainer_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> List[ActiveBooking]:
        """
        Active bookings on the day for the given resources (all resources when neither is given).

        A date collects sessions on exactly that date; a weekday collects
        upcoming sessions falling on it. Classes on the weekday always count.
        """
        weekday = resolve_weekday(on)
        session_date = on if isinstance(on, date) else None
        return self.repository.get_active_bookings(
            weekday,
            session_date=session_date,
            from_date=self.today(),
            trainer_id=trainer_id,
            room_id=room_id,
        )

    # Resolver

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        on: DayLike,
        start_time: TimeLike,
        end_time: TimeLike,
        trainer_id: Optional[str] = None,
        room_id: Optional[str] = None,
        exclude: Optional[BookingRef] = None,
    ) -> List[ActiveBooking]:
        """
        Return every active booking of the trainer or room that overlaps the slot.

        Args:
            on: A calendar date (sessions) or a weekday (classes)
            start_time: Slot start
            end_time: Slot end
            trainer_id: Trainer to check, optional if room_id is given
            room_id: Room to check, optional if trainer_id is given
            exclude: Booking to ignore, normally the one being edited

        Raises:
            ValidationException: If the slot is malformed or no resource is given
            NotFoundException: If the trainer or room does not exist
        """
        slot = TimeSlot.of(start_time, end_time)
        resolve_weekday(on)
        self._ensure_resources_exist(trainer_id, room_id)

        bookings = self._collect(on, trainer_id=trainer_id, room_id=room_id)
        conflicts = find_overlapping(slot, bookings, exclude)
        if conflicts:
            self.logger.info(
                "Found %d conflicts for trainer=%s room=%s on %s %s",
                len(conflicts),
                trainer_id,
                room_id,
                on,
                slot,
            )
        return conflicts

    def is_resource_free(
        self,
        on: DayLike,
        start_time: TimeLike,
        end_time: TimeLike,
        trainer_id: Optional[str] = None,
        room_id: Optional[str] = None,
        exclude: Optional[BookingRef] = None,
    ) -> bool:
        """True when neither the trainer nor the room has an overlapping active booking."""
        return not self.find_conflicts(
            on, start_time, end_time, trainer_id=trainer_id, room_id=room_id, exclude=exclude
        )

    # Validation used by booking flows

    def check_trainer_availability(self, trainer_id: str, weekday: Weekday, slot: TimeSlot) -> None:
        """
        Require one declared weekly window of the trainer to contain the slot.

        Disabled by the require_trainer_availability setting.

        Raises:
            ResourceConflictException: scope "trainer_availability"
        """
        if not settings.require_trainer_availability:
            return
        windows = [
            row.slot for row in self.availability_repository.get_for_trainer_on(trainer_id, weekday)
        ]
        if fits_availability(slot, windows):
            return
        prometheus_metrics.record_booking_rejection("check_trainer_availability", "trainer_unavailable")
        raise ResourceConflictException(
            TRAINER_UNAVAILABLE_MESSAGE,
            conflict_scope="trainer_availability",
            details={
                "trainer_id": trainer_id,
                "weekday": weekday.value,
                "start_time": slot.start.isoformat(),
                "end_time": slot.end.isoformat(),
                "windows": [str(window) for window in windows],
            },
        )

    def check_resources_free(
        self,
        on: DayLike,
        slot: TimeSlot,
        trainer_id: str,
        room_id: str,
        exclude: Optional[BookingRef] = None,
    ) -> None:
        """
        Reject the slot if the trainer or the room is already held.

        The trainer is checked before the room so the reported scope is stable.

        Raises:
            ResourceConflictException: scope "trainer" or "room", with the colliding bookings
        """
        bookings = self._collect(on, trainer_id=trainer_id, room_id=room_id)
        overlapping = find_overlapping(slot, bookings, exclude)

        by_scope: Dict[str, List[ActiveBooking]] = {
            "trainer": [b for b in overlapping if b.trainer_id == trainer_id],
            "room": [b for b in overlapping if b.room_id == room_id],
        }
        for scope, message in (("trainer", TRAINER_CONFLICT_MESSAGE), ("room", ROOM_CONFLICT_MESSAGE)):
            hits = by_scope[scope]
            if hits:
                prometheus_metrics.record_booking_rejection("check_resources_free", f"{scope}_conflict")
                self.logger.warning(
                    "%s conflict on %s %s: %s",
                    scope.capitalize(),
                    on,
                    slot,
                    ", ".join(f"{b.ref.kind.value}:{b.ref.id}" for b in hits),
                )
                raise ResourceConflictException(
                    message,
                    conflict_scope=scope,
                    conflicts=[b.to_dict() for b in hits],
                    details={"trainer_id": trainer_id, "room_id": room_id},
                )

    @BaseService.measure_operation("check_room_availability")
    def check_room_availability(
        self,
        room_id: str,
        weekday: DayLike,
        start_time: TimeLike,
        end_time: TimeLike,
        exclude_class_id: Optional[str] = None,
    ) -> None:
        """
        Raise when the room is taken at the slot; used while editing a class.

        Raises:
            ResourceConflictException: scope "room"
        """
        exclude = BookingRef.for_class(exclude_class_id) if exclude_class_id else None
        conflicts = self.find_conflicts(
            weekday, start_time, end_time, room_id=room_id, exclude=exclude
        )
        if conflicts:
            prometheus_metrics.record_booking_rejection("check_room_availability", "room_conflict")
            raise ResourceConflictException(
                ROOM_CONFLICT_MESSAGE,
                conflict_scope="room",
                conflicts=[b.to_dict() for b in conflicts],
                details={"room_id": room_id},
            )

    # Candidate searches

    @BaseService.measure_operation("find_available_trainers")
    def find_available_trainers(
        self,
        weekday: DayLike,
        start_time: TimeLike,
        end_time: TimeLike,
        exclude_class_id: Optional[str] = None,
    ) -> List[AvailableTrainer]:
        """
        Trainers whose declared windows contain the slot and who hold no overlapping booking.

        Ordered by first name, then last name, ties by id. An empty list is
        a normal result.
        """
        slot = TimeSlot.of(start_time, end_time)
        day = resolve_weekday(weekday)
        exclude = BookingRef.for_class(exclude_class_id) if exclude_class_id else None

        bookings = find_overlapping(slot, self._collect(day), exclude)
        busy = {booking.trainer_id for booking in bookings}

        result: List[AvailableTrainer] = []
        for trainer in self.directory_repository.list_trainers_ordered():
            if trainer.id in busy:
                continue
            windows = [
                row.slot for row in self.availability_repository.get_for_trainer_on(trainer.id, day)
            ]
            if not fits_availability(slot, windows):
                continue
            result.append(
                AvailableTrainer(
                    trainer_id=trainer.id,
                    first_name=trainer.first_name,
                    last_name=trainer.last_name,
                )
            )
        return result

    @BaseService.measure_operation("find_available_rooms")
    def find_available_rooms(
        self,
        on: DayLike,
        start_time: TimeLike,
        end_time: TimeLike,
        exclude_session_id: Optional[str] = None,
        exclude_class_id: Optional[str] = None,
    ) -> List[AvailableRoom]:
        """
        Rooms with no overlapping class on the weekday and no overlapping session.

        Ordered by name, ties by id.
        """
        slot = TimeSlot.of(start_time, end_time)
        resolve_weekday(on)
        excluded = [
            BookingRef.for_session(exclude_session_id) if exclude_session_id else None,
            BookingRef.for_class(exclude_class_id) if exclude_class_id else None,
        ]

        bookings = find_overlapping(slot, _excluding(self._collect(on), excluded))
        busy = {booking.room_id for booking in bookings}

        return [
            AvailableRoom(room_id=room.id, name=room.name)
            for room in self.directory_repository.list_rooms_ordered()
            if room.id not in busy
        ]
