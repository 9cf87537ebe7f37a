# backend/gymschedule/models/group_class.py
"""
Group classes and their enrollments.

A class recurs every week on one weekday and holds its trainer and room
for that slot. Enrollments belong to the class and disappear with it.
"""

from typing import Any, Dict

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..domain.conflicts import ActiveBooking, BookingRef
from ..domain.intervals import TimeSlot
from ..domain.weekdays import Weekday
from .availability import WEEKDAY_CHECK


class GroupClass(Base):
    """A weekly recurring class with a hard seat capacity."""

    __tablename__ = "group_classes"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    trainer_id = Column(String(26), ForeignKey("trainers.id"), nullable=False, index=True)
    room_id = Column(String(26), ForeignKey("rooms.id"), nullable=False, index=True)

    weekday = Column(String(10), nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    capacity = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    trainer = relationship("Trainer", backref="group_classes")
    room = relationship("Room", backref="group_classes")
    enrollments = relationship(
        "ClassEnrollment",
        back_populates="group_class",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(WEEKDAY_CHECK, name="ck_group_classes_weekday"),
        CheckConstraint("start_time < end_time", name="ck_group_classes_time_order"),
        CheckConstraint("capacity >= 1", name="ck_group_classes_capacity_positive"),
    )

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.start_time, self.end_time)

    def to_active_booking(self) -> ActiveBooking:
        return ActiveBooking(
            ref=BookingRef.for_class(self.id),
            weekday=Weekday.parse(self.weekday),
            slot=self.slot,
            trainer_id=self.trainer_id,
            room_id=self.room_id,
        )

    def __repr__(self) -> str:
        return (
            f"<GroupClass {self.id}: {self.name} {self.weekday} "
            f"{self.start_time}-{self.end_time} capacity={self.capacity}>"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "trainer_id": self.trainer_id,
            "room_id": self.room_id,
            "weekday": self.weekday,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "capacity": self.capacity,
        }


class ClassEnrollment(Base):
    """A member's seat in a group class."""

    __tablename__ = "class_enrollments"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    class_id = Column(
        String(26), ForeignKey("group_classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id = Column(
        String(26), ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enrolled_at = Column(DateTime(timezone=True), server_default=func.now())

    group_class = relationship("GroupClass", back_populates="enrollments")
    member = relationship("Member", backref="enrollments")

    __table_args__ = (
        UniqueConstraint("class_id", "member_id", name="uq_class_enrollments_class_member"),
    )

    def __repr__(self) -> str:
        return f"<ClassEnrollment class={self.class_id} member={self.member_id}>"
