"""Service tests for the personal training session lifecycle."""

from datetime import date, time

import pytest

from gymschedule.core.exceptions import (
    BusinessRuleException,
    DuplicateBookingException,
    NotFoundException,
    PastDateException,
    ResourceConflictException,
    ValidationException,
)
from gymschedule.models import TrainingSessionStatus
from gymschedule.schemas.scheduling import GroupClassCreate, TrainerSchedule
from tests.utils.scheduling import FIXED_NOW, MONDAY, NEXT_MONDAY, PAST_MONDAY, TUESDAY


class TestCreateSession:
    def test_second_member_cannot_take_the_same_trainer(
        self, booking_service, make_member, trainer, make_room
    ):
        first = make_member("Ana", "One")
        second = make_member("Ben", "Two")
        room_a = make_room("Studio A")
        room_b = make_room("Studio B")

        session = booking_service.create_session(
            first.id, trainer.id, room_a.id, "2024-06-03", "10:00", "11:00"
        )
        assert session.status == TrainingSessionStatus.SCHEDULED.value
        assert session.session_date == MONDAY
        assert (session.start_time, session.end_time) == (time(10, 0), time(11, 0))

        with pytest.raises(ResourceConflictException) as exc_info:
            booking_service.create_session(
                second.id, trainer.id, room_b.id, MONDAY, "10:30", "11:30"
            )
        assert exc_info.value.conflict_scope == "trainer"
        assert [c["booking_id"] for c in exc_info.value.details["conflicts"]] == [session.id]

        later = booking_service.create_session(
            second.id, trainer.id, room_b.id, MONDAY, "11:00", "12:00"
        )
        assert later.id != session.id

    def test_room_conflict(self, booking_service, make_member, make_trainer, room):
        first_trainer = make_trainer("Ana", "Coach")
        second_trainer = make_trainer("Ben", "Coach")
        booking_service.create_session(
            make_member("Cai", "One").id, first_trainer.id, room.id, MONDAY, "10:00", "11:00"
        )

        with pytest.raises(ResourceConflictException) as exc_info:
            booking_service.create_session(
                make_member("Dee", "Two").id,
                second_trainer.id,
                room.id,
                MONDAY,
                "10:15",
                "10:45",
            )
        assert exc_info.value.conflict_scope == "room"

    def test_trainer_conflict_reported_before_room(self, booking_service, make_member, trainer, room):
        booking_service.create_session(
            make_member("Ana", "One").id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )

        with pytest.raises(ResourceConflictException) as exc_info:
            booking_service.create_session(
                make_member("Ben", "Two").id, trainer.id, room.id, MONDAY, "10:00", "11:00"
            )
        assert exc_info.value.conflict_scope == "trainer"

    def test_weekly_class_blocks_the_trainer_on_that_date(
        self, booking_service, group_class_service, member, trainer, make_room
    ):
        group_class_service.create_group_class(
            GroupClassCreate(
                name="Spin",
                trainer_id=trainer.id,
                room_id=make_room("Spin Room").id,
                weekday="Monday",
                start_time="09:00",
                end_time="10:00",
                capacity=10,
            )
        )

        with pytest.raises(ResourceConflictException) as exc_info:
            booking_service.create_session(
                member.id, trainer.id, make_room("Studio B").id, NEXT_MONDAY, "09:30", "10:30"
            )
        assert exc_info.value.conflict_scope == "trainer"
        assert exc_info.value.details["conflicts"][0]["booking_kind"] == "class"

        # Tuesday is unaffected
        booking_service.create_session(
            member.id, trainer.id, make_room("Studio C").id, TUESDAY, "09:30", "10:30"
        )

    def test_outside_trainer_availability(self, booking_service, member, make_trainer, room):
        trainer = make_trainer(windows=[("Monday", "09:00", "12:00")])

        with pytest.raises(ResourceConflictException) as exc_info:
            booking_service.create_session(member.id, trainer.id, room.id, MONDAY, "11:30", "12:30")
        assert exc_info.value.conflict_scope == "trainer_availability"
        assert exc_info.value.details["windows"] == ["09:00-12:00"]

        with pytest.raises(ResourceConflictException):
            booking_service.create_session(member.id, trainer.id, room.id, TUESDAY, "09:00", "10:00")

        session = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "09:00", "12:00"
        )
        assert session.slot.start == time(9, 0)

    def test_past_dates_are_rejected(self, booking_service, member, trainer, room):
        with pytest.raises(PastDateException):
            booking_service.create_session(
                member.id, trainer.id, room.id, PAST_MONDAY, "10:00", "11:00"
            )

        # Starting exactly now is not in the future
        today = FIXED_NOW.date()
        with pytest.raises(PastDateException) as exc_info:
            booking_service.create_session(member.id, trainer.id, room.id, today, "08:00", "09:00")
        assert exc_info.value.code == "PAST_DATE"

        session = booking_service.create_session(
            member.id, trainer.id, room.id, today, "08:30", "09:30"
        )
        assert session.session_date == today

    def test_identical_session_is_a_duplicate(self, booking_service, member, trainer, room):
        booking_service.create_session(member.id, trainer.id, room.id, MONDAY, "10:00", "11:00")

        with pytest.raises(DuplicateBookingException) as exc_info:
            booking_service.create_session(
                member.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
            )
        assert exc_info.value.code == "DUPLICATE_BOOKING"

    def test_unknown_identities(self, booking_service, member, trainer, room):
        for member_id, trainer_id, room_id, code in (
            ("nobody", trainer.id, room.id, "MEMBER_NOT_FOUND"),
            (member.id, "nobody", room.id, "TRAINER_NOT_FOUND"),
            (member.id, trainer.id, "nowhere", "ROOM_NOT_FOUND"),
        ):
            with pytest.raises(NotFoundException) as exc_info:
                booking_service.create_session(
                    member_id, trainer_id, room_id, MONDAY, "10:00", "11:00"
                )
            assert exc_info.value.code == code

    @pytest.mark.parametrize(
        "session_date,start,end",
        [
            ("2024-13-01", "10:00", "11:00"),
            ("next monday", "10:00", "11:00"),
            (MONDAY, "11:00", "10:00"),
            (MONDAY, "10:00", "10:00"),
            (MONDAY, "25:00", "26:00"),
        ],
    )
    def test_malformed_input(self, booking_service, member, trainer, room, session_date, start, end):
        with pytest.raises(ValidationException):
            booking_service.create_session(member.id, trainer.id, room.id, session_date, start, end)

    def test_nothing_is_written_on_rejection(self, booking_service, member, trainer, room):
        with pytest.raises(PastDateException):
            booking_service.create_session(
                member.id, trainer.id, room.id, PAST_MONDAY, "10:00", "11:00"
            )

        assert booking_service.list_upcoming_sessions_for_member(member.id) == []


class TestRescheduleSession:
    def test_reschedule_into_its_own_slot(self, booking_service, member, trainer, room):
        session = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )

        same = booking_service.reschedule_session(
            session.id, member.id, MONDAY, "10:00", "11:00"
        )
        shifted = booking_service.reschedule_session(
            session.id, member.id, MONDAY, "10:30", "11:30"
        )

        assert same.id == shifted.id == session.id
        assert shifted.start_time == time(10, 30)

    def test_reschedule_into_someone_elses_slot(
        self, booking_service, make_member, trainer, room
    ):
        first = make_member("Ana", "One")
        second = make_member("Ben", "Two")
        booking_service.create_session(first.id, trainer.id, room.id, MONDAY, "10:00", "11:00")
        session = booking_service.create_session(
            second.id, trainer.id, room.id, MONDAY, "12:00", "13:00"
        )

        with pytest.raises(ResourceConflictException):
            booking_service.reschedule_session(session.id, second.id, MONDAY, "10:30", "11:30")

        unchanged = booking_service.get_session(session.id)
        assert unchanged.start_time == time(12, 0)

    def test_reschedule_to_another_date_and_trainer(
        self, booking_service, member, make_trainer, room
    ):
        original = make_trainer("Ana", "Coach")
        replacement = make_trainer("Ben", "Coach")
        session = booking_service.create_session(
            member.id, original.id, room.id, MONDAY, "10:00", "11:00"
        )

        moved = booking_service.reschedule_session(
            session.id,
            member.id,
            TUESDAY.isoformat(),
            "07:00",
            "08:00",
            trainer_id=replacement.id,
        )

        assert moved.trainer_id == replacement.id
        assert moved.room_id == room.id
        assert moved.session_date == TUESDAY
        # The old Monday slot is free again
        booking_service.create_session(member.id, original.id, room.id, MONDAY, "10:00", "11:00")

    def test_only_the_owner_can_reschedule(self, booking_service, make_member, trainer, room):
        owner = make_member("Ana", "Owner")
        other = make_member("Ben", "Other")
        session = booking_service.create_session(
            owner.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )

        with pytest.raises(NotFoundException) as exc_info:
            booking_service.reschedule_session(session.id, other.id, MONDAY, "12:00", "13:00")
        assert exc_info.value.code == "SESSION_NOT_FOUND"

    def test_cannot_reschedule_into_the_past(self, booking_service, member, trainer, room):
        session = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )

        with pytest.raises(PastDateException):
            booking_service.reschedule_session(session.id, member.id, PAST_MONDAY, "10:00", "11:00")

    def test_canceled_session_cannot_be_rescheduled(self, booking_service, member, trainer, room):
        session = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )
        booking_service.cancel_session(session.id, member.id)

        with pytest.raises(BusinessRuleException) as exc_info:
            booking_service.reschedule_session(session.id, member.id, MONDAY, "12:00", "13:00")
        assert exc_info.value.code == "INVALID_SESSION_STATE"


class TestSessionTransitions:
    def test_cancel_frees_the_slot(self, booking_service, make_member, trainer, room):
        first = make_member("Ana", "One")
        second = make_member("Ben", "Two")
        session = booking_service.create_session(
            first.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )

        canceled = booking_service.cancel_session(session.id, first.id)
        assert canceled.status == TrainingSessionStatus.CANCELED.value
        assert canceled.canceled_at is not None

        replacement = booking_service.create_session(
            second.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )
        assert replacement.id != session.id

    def test_cancel_someone_elses_session(self, booking_service, make_member, trainer, room):
        owner = make_member("Ana", "Owner")
        session = booking_service.create_session(
            owner.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )

        with pytest.raises(NotFoundException):
            booking_service.cancel_session(session.id, make_member("Ben", "Other").id)
        assert booking_service.get_session(session.id).is_scheduled

    def test_cancel_unknown_session(self, booking_service, member):
        with pytest.raises(NotFoundException):
            booking_service.cancel_session("missing", member.id)

    def test_terminal_states_are_final(self, booking_service, member, trainer, room):
        session = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )
        completed = booking_service.complete_session(session.id)
        assert completed.status == TrainingSessionStatus.COMPLETED.value

        with pytest.raises(BusinessRuleException):
            booking_service.cancel_session(session.id, member.id)
        with pytest.raises(BusinessRuleException):
            booking_service.complete_session(session.id)

    def test_double_cancel(self, booking_service, member, trainer, room):
        session = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "10:00", "11:00"
        )
        booking_service.cancel_session(session.id, member.id)

        with pytest.raises(BusinessRuleException):
            booking_service.cancel_session(session.id, member.id)


class TestSessionReads:
    def test_upcoming_sessions_are_ordered(self, booking_service, member, trainer, room):
        later = booking_service.create_session(
            member.id, trainer.id, room.id, NEXT_MONDAY, "10:00", "11:00"
        )
        sooner = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "14:00", "15:00"
        )
        soonest = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "09:00", "10:00"
        )
        canceled = booking_service.create_session(
            member.id, trainer.id, room.id, TUESDAY, "09:00", "10:00"
        )
        booking_service.cancel_session(canceled.id, member.id)

        upcoming = booking_service.list_upcoming_sessions_for_member(member.id)

        assert [s.id for s in upcoming] == [soonest.id, sooner.id, later.id]

    def test_trainer_schedule(self, booking_service, group_class_service, member, trainer, room):
        session = booking_service.create_session(
            member.id, trainer.id, room.id, MONDAY, "12:00", "13:00"
        )
        group_class = group_class_service.create_group_class(
            GroupClassCreate(
                name="Core",
                trainer_id=trainer.id,
                room_id=room.id,
                weekday="Thursday",
                start_time="18:00",
                end_time="19:00",
                capacity=8,
            )
        )
        group_class_service.enroll(group_class.id, member.id)

        schedule = booking_service.get_trainer_schedule(trainer.id)

        assert isinstance(schedule, TrainerSchedule)
        assert [s.id for s in schedule.sessions] == [session.id]
        assert schedule.sessions[0].session_date == date(2024, 6, 3)
        assert [(c.id, c.enrolled_count) for c in schedule.classes] == [(group_class.id, 1)]

    def test_schedule_for_unknown_trainer(self, booking_service):
        with pytest.raises(NotFoundException):
            booking_service.get_trainer_schedule("nobody")
