"""Service tests for group class enrollment limits."""

import pytest

from gymschedule.core.exceptions import (
    CapacityException,
    DuplicateBookingException,
    NotEnrolledException,
    NotFoundException,
)
from gymschedule.monitoring.prometheus_metrics import REGISTRY
from gymschedule.schemas.scheduling import GroupClassCreate


def _enrollment_samples(outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "gymschedule_enrollment_attempts_total", {"outcome": outcome}
    )
    return value or 0.0


@pytest.fixture
def small_class(group_class_service, make_trainer, room):
    trainer = make_trainer(windows=[("Monday", "09:00", "17:00")])
    return group_class_service.create_group_class(
        GroupClassCreate(
            name="Yoga",
            trainer_id=trainer.id,
            room_id=room.id,
            weekday="Monday",
            start_time="10:00",
            end_time="11:00",
            capacity=2,
        )
    )


class TestTryEnroll:
    def test_fills_then_rejects_then_readmits(self, capacity_guard, small_class, make_member):
        first = make_member("Ana", "One")
        second = make_member("Ben", "Two")
        third = make_member("Cai", "Three")

        capacity_guard.try_enroll(small_class.id, first.id)
        capacity_guard.try_enroll(small_class.id, second.id)

        with pytest.raises(CapacityException) as exc_info:
            capacity_guard.try_enroll(small_class.id, third.id)
        assert exc_info.value.code == "CLASS_FULL"
        assert exc_info.value.details == {
            "class_id": small_class.id,
            "capacity": 2,
            "enrolled": 2,
        }
        assert capacity_guard.enrolled_count(small_class.id) == 2

        capacity_guard.withdraw(small_class.id, first.id)
        enrollment = capacity_guard.try_enroll(small_class.id, third.id)

        assert enrollment.member_id == third.id
        assert capacity_guard.enrolled_count(small_class.id) == 2

    def test_duplicate_enrollment(self, capacity_guard, small_class, member):
        capacity_guard.try_enroll(small_class.id, member.id)

        with pytest.raises(DuplicateBookingException):
            capacity_guard.try_enroll(small_class.id, member.id)
        assert capacity_guard.enrolled_count(small_class.id) == 1

    def test_duplicate_is_reported_before_full(self, capacity_guard, small_class, make_member):
        first = make_member("Ana", "One")
        capacity_guard.try_enroll(small_class.id, first.id)
        capacity_guard.try_enroll(small_class.id, make_member("Ben", "Two").id)

        with pytest.raises(DuplicateBookingException):
            capacity_guard.try_enroll(small_class.id, first.id)

    def test_unknown_class(self, capacity_guard, member):
        with pytest.raises(NotFoundException) as exc_info:
            capacity_guard.try_enroll("01J000000000000000000CLASS", member.id)
        assert exc_info.value.code == "CLASS_NOT_FOUND"

    def test_unknown_member(self, capacity_guard, small_class):
        with pytest.raises(NotFoundException) as exc_info:
            capacity_guard.try_enroll(small_class.id, "ghost")
        assert exc_info.value.code == "MEMBER_NOT_FOUND"
        assert capacity_guard.enrolled_count(small_class.id) == 0

    def test_outcomes_are_counted(self, capacity_guard, small_class, make_member):
        admitted_before = _enrollment_samples("admitted")
        full_before = _enrollment_samples("full")

        capacity_guard.try_enroll(small_class.id, make_member("Ana", "One").id)
        capacity_guard.try_enroll(small_class.id, make_member("Ben", "Two").id)
        with pytest.raises(CapacityException):
            capacity_guard.try_enroll(small_class.id, make_member("Cai", "Three").id)

        assert _enrollment_samples("admitted") - admitted_before == 2
        assert _enrollment_samples("full") - full_before == 1


class TestWithdraw:
    def test_withdraw_frees_the_seat(self, capacity_guard, small_class, member):
        capacity_guard.try_enroll(small_class.id, member.id)

        capacity_guard.withdraw(small_class.id, member.id)

        assert capacity_guard.enrolled_count(small_class.id) == 0

    def test_withdraw_without_enrollment(self, capacity_guard, small_class, member):
        with pytest.raises(NotEnrolledException) as exc_info:
            capacity_guard.withdraw(small_class.id, member.id)
        assert exc_info.value.code == "NOT_ENROLLED"

    def test_withdraw_twice(self, capacity_guard, small_class, member):
        capacity_guard.try_enroll(small_class.id, member.id)
        capacity_guard.withdraw(small_class.id, member.id)

        with pytest.raises(NotEnrolledException):
            capacity_guard.withdraw(small_class.id, member.id)

    def test_withdraw_from_unknown_class(self, capacity_guard, member):
        with pytest.raises(NotFoundException):
            capacity_guard.withdraw("missing", member.id)
