# backend/gymschedule/models/directory.py
"""
Identity records the scheduling engine books against.

Members, trainers and rooms are owned by the wider gym system; the engine
only needs their ids for existence checks and their names for ordering
candidate lists.
"""

from typing import Any, Dict

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base


class Member(Base):
    """A gym member who books sessions and enrolls in classes."""

    __tablename__ = "members"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<Member {self.id}: {self.first_name} {self.last_name}>"


class Trainer(Base):
    """A trainer who leads group classes and personal sessions."""

    __tablename__ = "trainers"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    specialization = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Trainer {self.id}: {self.full_name}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "specialization": self.specialization,
        }


class Room(Base):
    """A physical room that holds at most one booking at a time."""

    __tablename__ = "rooms"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    name = Column(String(100), nullable=False)
    room_type = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<Room {self.id}: {self.name}>"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "room_type": self.room_type}
