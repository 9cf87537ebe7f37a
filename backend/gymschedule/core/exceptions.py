# backend/gymschedule/core/exceptions.py
"""
Domain-specific exceptions for the gym scheduling engine.

Every business-rule rejection is a DomainException subclass so callers can
tell "class is full" apart from "trainer unavailable at this time" and
render a specific message. Only storage failures surface as
ServiceException, which callers should treat as an internal error.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException for the request layer."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when a request is malformed (bad interval, missing resource, ...)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Raised when a service operation fails for infrastructure reasons."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class AvailabilityOverlapException(ValidationException):
    """Raised when two submitted availability windows overlap on the same weekday."""

    def __init__(self, weekday: str, first_range: str, second_range: str):
        super().__init__(
            message=(
                f"Overlapping availability on {weekday}: {first_range} conflicts with {second_range}"
            ),
            code="AVAILABILITY_OVERLAP",
            details={
                "weekday": weekday,
                "first_slot": first_range,
                "second_slot": second_range,
            },
        )


class ResourceConflictException(ConflictException):
    """Raised when a candidate slot collides with an active booking of a trainer or room."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        conflict_scope: Optional[str] = None,
        conflicts: Optional[List[Dict[str, Any]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged: Dict[str, Any] = dict(details or {})
        if conflict_scope:
            merged["conflict_scope"] = conflict_scope
        if conflicts is not None:
            merged["conflicts"] = conflicts
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="RESOURCE_CONFLICT",
            details=merged,
        )

    @property
    def conflict_scope(self) -> Optional[str]:
        return self.details.get("conflict_scope")


class CapacityException(ConflictException):
    """Raised when a class is at its enrollment ceiling."""

    def __init__(self, class_id: str, capacity: int, enrolled: int, message: Optional[str] = None):
        super().__init__(
            message=message or "Class is at full capacity. Cannot enroll more members.",
            code="CLASS_FULL",
            details={"class_id": class_id, "capacity": capacity, "enrolled": enrolled},
        )


class DuplicateBookingException(ConflictException):
    """Raised on a repeated enrollment or an identical double-submitted session."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="DUPLICATE_BOOKING", details=details or {})


class NotEnrolledException(NotFoundException):
    """Raised when withdrawing a member that holds no enrollment in the class."""

    def __init__(self, class_id: str, member_id: str):
        super().__init__(
            message="Enrollment not found",
            code="NOT_ENROLLED",
            details={"class_id": class_id, "member_id": member_id},
        )


class PastDateException(BusinessRuleException):
    """Raised when a candidate date/slot does not start in the future."""

    def __init__(self, requested: str, now: str):
        super().__init__(
            message="Bookings must be scheduled in the future",
            code="PAST_DATE",
            details={"requested_start": requested, "now": now},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
