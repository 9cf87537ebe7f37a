# backend/gymschedule/models/availability.py
"""
Trainer weekly availability.

Each row is one window on one weekday. A trainer's set of windows is always
replaced as a whole, so rows carry no identity beyond their content.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..domain.intervals import RecurringSlot, TimeSlot
from ..domain.weekdays import Weekday

WEEKDAY_CHECK = "weekday IN ({})".format(", ".join(f"'{day.value}'" for day in Weekday))


class TrainerAvailability(Base):
    __tablename__ = "trainer_availability"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    trainer_id = Column(
        String(26), ForeignKey("trainers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    weekday = Column(String(10), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    trainer = relationship("Trainer", backref="availability_windows")

    __table_args__ = (
        CheckConstraint(WEEKDAY_CHECK, name="ck_trainer_availability_weekday"),
        CheckConstraint("start_time < end_time", name="ck_trainer_availability_time_order"),
        Index("ix_trainer_availability_trainer_weekday", "trainer_id", "weekday"),
    )

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.start_time, self.end_time)

    def to_recurring_slot(self) -> RecurringSlot:
        return RecurringSlot(Weekday.parse(self.weekday), self.slot)

    def __repr__(self) -> str:
        return (
            f"<TrainerAvailability trainer={self.trainer_id} "
            f"{self.weekday} {self.start_time}-{self.end_time}>"
        )
