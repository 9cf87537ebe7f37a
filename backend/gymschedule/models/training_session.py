# backend/gymschedule/models/training_session.py
"""
Personal training session model.

A session is a one-off booking of a trainer and a room by one member on a
calendar date. Only scheduled sessions hold their trainer and room;
completed and canceled sessions are kept for history.
"""

from datetime import date, datetime, timezone
from enum import Enum
import logging
from typing import Any, Dict, cast

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, String, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..domain.conflicts import ActiveBooking, BookingRef
from ..domain.intervals import DatedSlot, TimeSlot

logger = logging.getLogger(__name__)


class TrainingSessionStatus(str, Enum):
    """Session lifecycle statuses."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"


class TrainingSession(Base):
    __tablename__ = "training_sessions"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    member_id = Column(String(26), ForeignKey("members.id"), nullable=False, index=True)
    trainer_id = Column(String(26), ForeignKey("trainers.id"), nullable=False)
    room_id = Column(String(26), ForeignKey("rooms.id"), nullable=False)

    session_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    status = Column(
        String(20), nullable=False, default=TrainingSessionStatus.SCHEDULED.value, index=True
    )

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    canceled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    member = relationship("Member", backref="training_sessions")
    trainer = relationship("Trainer", backref="training_sessions")
    room = relationship("Room", backref="training_sessions")

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'canceled')",
            name="ck_training_sessions_status",
        ),
        CheckConstraint("start_time < end_time", name="ck_training_sessions_time_order"),
        Index("ix_training_sessions_trainer_date", "trainer_id", "session_date"),
        Index("ix_training_sessions_room_date", "room_id", "session_date"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = TrainingSessionStatus.SCHEDULED.value

    def __repr__(self) -> str:
        return (
            f"<TrainingSession {self.id}: member={self.member_id}, "
            f"trainer={self.trainer_id}, room={self.room_id}, date={self.session_date}, "
            f"time={self.start_time}-{self.end_time}, status={self.status}>"
        )

    @property
    def is_scheduled(self) -> bool:
        return self.status == TrainingSessionStatus.SCHEDULED.value

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.start_time, self.end_time)

    def cancel(self) -> None:
        """Release the trainer and room held by this session."""
        self.status = TrainingSessionStatus.CANCELED.value
        self.canceled_at = datetime.now(timezone.utc)
        logger.info("Training session %s canceled", self.id)

    def complete(self) -> None:
        self.status = TrainingSessionStatus.COMPLETED.value
        self.completed_at = datetime.now(timezone.utc)
        logger.info("Training session %s marked as completed", self.id)

    @property
    def dated_slot(self) -> DatedSlot:
        return DatedSlot(cast(date, self.session_date), self.slot)

    def to_active_booking(self) -> ActiveBooking:
        dated = self.dated_slot
        return ActiveBooking(
            ref=BookingRef.for_session(self.id),
            weekday=dated.weekday,
            slot=dated.slot,
            trainer_id=self.trainer_id,
            room_id=self.room_id,
            session_date=dated.date,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "member_id": self.member_id,
            "trainer_id": self.trainer_id,
            "room_id": self.room_id,
            "session_date": self.session_date.isoformat() if self.session_date else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
        }
