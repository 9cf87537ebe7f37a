# backend/gymschedule/services/__init__.py
"""
Service layer for the gym scheduling engine.

Services own transactions and resource locks; repositories only query.
"""

from .availability_service import AvailabilityService
from .base import BaseService
from .booking_service import BookingService
from .capacity_guard import CapacityGuard
from .conflict_checker import ConflictChecker
from .group_class_service import GroupClassService

__all__ = [
    "AvailabilityService",
    "BaseService",
    "BookingService",
    "CapacityGuard",
    "ConflictChecker",
    "GroupClassService",
]
