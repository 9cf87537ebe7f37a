"""Unit tests for the domain exception hierarchy."""

import pytest

from gymschedule.core.exceptions import (
    AvailabilityOverlapException,
    BusinessRuleException,
    CapacityException,
    ConflictException,
    DomainException,
    DuplicateBookingException,
    NotEnrolledException,
    NotFoundException,
    PastDateException,
    ResourceConflictException,
    ServiceException,
    ValidationException,
)


class TestHttpMapping:
    @pytest.mark.parametrize(
        "exc,status",
        [
            (ValidationException("bad"), 400),
            (AvailabilityOverlapException("Monday", "09:00-11:00", "10:00-12:00"), 400),
            (NotFoundException("missing"), 404),
            (NotEnrolledException("c1", "m1"), 404),
            (ResourceConflictException(conflict_scope="room"), 409),
            (CapacityException("c1", 2, 2), 409),
            (DuplicateBookingException("again"), 409),
            (PastDateException("2024-05-01T10:00:00", "2024-06-01T08:00:00"), 422),
            (BusinessRuleException("nope"), 422),
            (ServiceException("boom"), 500),
        ],
    )
    def test_status_codes(self, exc, status):
        http = exc.to_http_exception()
        assert http.status_code == status
        assert http.detail["code"] == exc.code
        assert http.detail["message"] == exc.message

    def test_all_business_rejections_are_domain_exceptions(self):
        for exc_type in (
            ValidationException,
            NotFoundException,
            ConflictException,
            BusinessRuleException,
            ServiceException,
        ):
            assert issubclass(exc_type, DomainException)


class TestSpecificExceptions:
    def test_code_defaults_to_class_name(self):
        assert ValidationException("bad").code == "ValidationException"

    def test_availability_overlap_names_day_and_ranges(self):
        exc = AvailabilityOverlapException("Monday", "09:00-11:00", "10:00-12:00")
        assert "Monday" in exc.message
        assert exc.details == {
            "weekday": "Monday",
            "first_slot": "09:00-11:00",
            "second_slot": "10:00-12:00",
        }

    def test_resource_conflict_carries_scope_and_conflicts(self):
        exc = ResourceConflictException(
            conflict_scope="trainer", conflicts=[{"booking_id": "s1"}], details={"trainer_id": "t1"}
        )
        assert exc.conflict_scope == "trainer"
        assert exc.details["conflicts"] == [{"booking_id": "s1"}]
        assert exc.details["trainer_id"] == "t1"
        assert exc.code == "RESOURCE_CONFLICT"

    def test_capacity_exception_reports_counts(self):
        exc = CapacityException("c1", capacity=10, enrolled=10)
        assert exc.code == "CLASS_FULL"
        assert exc.details == {"class_id": "c1", "capacity": 10, "enrolled": 10}
        assert isinstance(exc, ConflictException)

    def test_not_enrolled_is_not_found(self):
        assert isinstance(NotEnrolledException("c1", "m1"), NotFoundException)

    def test_past_date_is_business_rule(self):
        exc = PastDateException("a", "b")
        assert isinstance(exc, BusinessRuleException)
        assert exc.details == {"requested_start": "a", "now": "b"}
