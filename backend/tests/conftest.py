"""
Shared fixtures for the scheduling engine tests.

Every test gets its own in-memory SQLite database with the schema freshly
created, so services can commit and roll back freely and nothing a test
writes is visible to the next one.
"""

from datetime import datetime
from typing import Callable, Iterable, Iterator, Optional, Tuple

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gymschedule.database import build_engine, enable_sqlite_foreign_keys, init_db
from gymschedule.domain.intervals import RecurringSlot
from gymschedule.models import Member, Room, Trainer
from gymschedule.repositories import RepositoryFactory
from gymschedule.services import (
    AvailabilityService,
    BookingService,
    CapacityGuard,
    ConflictChecker,
    GroupClassService,
)
from tests.utils.scheduling import ALL_WEEK, fixed_clock

WindowSpec = Tuple[str, str, str]


@pytest.fixture
def memory_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(memory_engine: Engine) -> Iterator[Session]:
    """Session on the test's private database; dropped with the engine afterwards."""
    SessionLocal = sessionmaker(bind=memory_engine, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return fixed_clock


def _make_member(db: Session, first_name: str = "Alex", last_name: str = "Member") -> Member:
    member = RepositoryFactory.create_directory_repository(db).create_member(
        first_name=first_name, last_name=last_name
    )
    db.commit()
    return member


def _make_trainer(
    db: Session,
    first_name: str = "Taylor",
    last_name: str = "Trainer",
    windows: Optional[Iterable[WindowSpec]] = None,
) -> Trainer:
    trainer = RepositoryFactory.create_directory_repository(db).create_trainer(
        first_name=first_name, last_name=last_name
    )
    if windows is None:
        windows = [(day, "06:00", "22:00") for day in ALL_WEEK]
    RepositoryFactory.create_availability_repository(db).replace_for_trainer(
        trainer.id, [RecurringSlot.of(*window) for window in windows]
    )
    db.commit()
    return trainer


def _make_room(db: Session, name: str = "Studio A", room_type: str = "studio") -> Room:
    room = RepositoryFactory.create_directory_repository(db).create_room(
        name=name, room_type=room_type
    )
    db.commit()
    return room


@pytest.fixture
def make_member(db: Session) -> Callable[..., Member]:
    return lambda *args, **kwargs: _make_member(db, *args, **kwargs)


@pytest.fixture
def make_trainer(db: Session) -> Callable[..., Trainer]:
    """Trainers are available 06:00-22:00 every day unless windows are given."""
    return lambda *args, **kwargs: _make_trainer(db, *args, **kwargs)


@pytest.fixture
def make_room(db: Session) -> Callable[..., Room]:
    return lambda *args, **kwargs: _make_room(db, *args, **kwargs)


@pytest.fixture
def member(make_member) -> Member:
    return make_member()


@pytest.fixture
def trainer(make_trainer) -> Trainer:
    return make_trainer()


@pytest.fixture
def room(make_room) -> Room:
    return make_room()


@pytest.fixture
def availability_service(db: Session, clock) -> AvailabilityService:
    return AvailabilityService(db, now_provider=clock)


@pytest.fixture
def conflict_checker(db: Session, clock) -> ConflictChecker:
    return ConflictChecker(db, now_provider=clock)


@pytest.fixture
def booking_service(db: Session, clock) -> BookingService:
    return BookingService(db, now_provider=clock)


@pytest.fixture
def capacity_guard(db: Session, clock) -> CapacityGuard:
    return CapacityGuard(db, now_provider=clock)


@pytest.fixture
def group_class_service(db: Session, clock) -> GroupClassService:
    return GroupClassService(db, now_provider=clock)


@pytest.fixture
def file_engine(tmp_path) -> Iterator[Engine]:
    """A file-backed SQLite engine that several threads can open sessions on."""
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'concurrency.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_sessions(file_engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=file_engine, autoflush=False, expire_on_commit=False
    )

