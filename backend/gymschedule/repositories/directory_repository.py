# backend/gymschedule/repositories/directory_repository.py
"""
Directory Repository for the gym scheduling engine.

Identity lookups for members, trainers and rooms, plus the name-ordered
listings that candidate searches walk through.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.directory import Member, Room, Trainer
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class DirectoryRepository(BaseRepository[Trainer]):
    """Repository over the members, trainers and rooms tables."""

    def __init__(self, db: Session):
        super().__init__(db, Trainer)
        self.logger = logging.getLogger(__name__)

    def get_trainer(self, trainer_id: str) -> Optional[Trainer]:
        return self.get_by_id(trainer_id)

    def get_room(self, room_id: str) -> Optional[Room]:
        try:
            return self.db.query(Room).filter(Room.id == room_id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting room {room_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve room: {str(e)}")

    def get_member(self, member_id: str) -> Optional[Member]:
        try:
            return self.db.query(Member).filter(Member.id == member_id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting member {member_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve member: {str(e)}")

    def list_trainers_ordered(self) -> List[Trainer]:
        """All trainers ordered by first name, then last name, ties by id."""
        return self._execute_query(
            self.db.query(Trainer).order_by(Trainer.first_name, Trainer.last_name, Trainer.id)
        )

    def list_rooms_ordered(self) -> List[Room]:
        """All rooms ordered by name, ties by id."""
        return self._execute_query(self.db.query(Room).order_by(Room.name, Room.id))

    def create_member(self, **kwargs: Any) -> Member:
        return self._add(Member(**kwargs))

    def create_trainer(self, **kwargs: Any) -> Trainer:
        return self.create(**kwargs)

    def create_room(self, **kwargs: Any) -> Room:
        return self._add(Room(**kwargs))

    def _add(self, entity: Any) -> Any:
        try:
            self.db.add(entity)
            self.db.flush()
            return entity
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {type(entity).__name__}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to create {type(entity).__name__}: {str(e)}")
