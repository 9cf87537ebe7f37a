"""
Concurrency tests for class capacity enforcement.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import time
import threading

from sqlalchemy.orm import Session, sessionmaker

from gymschedule.core.exceptions import CapacityException, DuplicateBookingException
from gymschedule.models import ClassEnrollment, GroupClass
from gymschedule.repositories import RepositoryFactory
from gymschedule.services import CapacityGuard
from tests.utils.scheduling import fixed_clock


def _seed_class(db: Session, capacity: int) -> str:
    directory = RepositoryFactory.create_directory_repository(db)
    trainer = directory.create_trainer(first_name="Race", last_name="Coach")
    room = directory.create_room(name="Race Room", room_type="studio")
    group_class = RepositoryFactory.create_group_class_repository(db).create(
        name="Race Spin",
        trainer_id=trainer.id,
        room_id=room.id,
        weekday="Monday",
        start_time=time(9, 0),
        end_time=time(10, 0),
        capacity=capacity,
    )
    db.commit()
    return group_class.id


def _seed_members(db: Session, count: int) -> list[str]:
    directory = RepositoryFactory.create_directory_repository(db)
    member_ids = [
        directory.create_member(first_name=f"Racer{index}", last_name="Member").id
        for index in range(count)
    ]
    db.commit()
    return member_ids


def _race(file_sessions: sessionmaker, class_id: str, member_ids: list[str]) -> list[str]:
    barrier = threading.Barrier(len(member_ids))

    def _worker(member_id: str) -> str:
        session = file_sessions()
        try:
            guard = CapacityGuard(session, now_provider=fixed_clock)
            barrier.wait(timeout=5)
            try:
                guard.try_enroll(class_id, member_id)
            except CapacityException:
                return "full"
            except DuplicateBookingException:
                return "duplicate"
            return "admitted"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(member_ids)) as executor:
        return list(executor.map(_worker, member_ids))


def test_concurrent_enrollment_never_exceeds_capacity(file_sessions: sessionmaker) -> None:
    seed = file_sessions()
    try:
        class_id = _seed_class(seed, capacity=3)
        member_ids = _seed_members(seed, 8)
    finally:
        seed.close()

    results = _race(file_sessions, class_id, member_ids)

    assert results.count("admitted") == 3
    assert results.count("full") == 5

    check = file_sessions()
    try:
        enrolled = check.query(ClassEnrollment).filter(ClassEnrollment.class_id == class_id).count()
        assert enrolled == 3
        assert check.get(GroupClass, class_id).capacity == 3
    finally:
        check.close()


def test_same_member_racing_itself_enrolls_once(file_sessions: sessionmaker) -> None:
    seed = file_sessions()
    try:
        class_id = _seed_class(seed, capacity=5)
        (member_id,) = _seed_members(seed, 1)
    finally:
        seed.close()

    results = _race(file_sessions, class_id, [member_id] * 4)

    assert results.count("admitted") == 1
    assert results.count("duplicate") == 3
