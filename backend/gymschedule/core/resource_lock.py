"""
Named locks that serialize check-then-book sequences per resource.

Keys are scoped to what a booking contends on: a trainer or room on a
weekday (sessions lock the weekday of their date, so dated sessions and
weekly classes serialize against each other), a class for enrollment,
and a trainer's availability set. Locks must be held until the booking's
transaction has committed.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
from typing import Callable, Dict, Iterator, List, Optional

from redis import Redis
from redis.exceptions import LockError, RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import ServiceException

logger = logging.getLogger(__name__)

_LOCAL_LOCKS: Dict[str, threading.RLock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

Release = Callable[[], None]


def trainer_lock_key(trainer_id: str, weekday: str) -> str:
    return f"trainer:{trainer_id}:{weekday}"


def room_lock_key(room_id: str, weekday: str) -> str:
    return f"room:{room_id}:{weekday}"


def class_lock_key(class_id: str) -> str:
    return f"class:{class_id}"


def availability_lock_key(trainer_id: str) -> str:
    return f"availability:trainer:{trainer_id}"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_local_lock(key: str) -> threading.RLock:
    with _LOCAL_LOCKS_GUARD:
        lock = _LOCAL_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _LOCAL_LOCKS[key] = lock
        return lock


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except RedisError as exc:
            logger.warning("resource_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _acquire_local(key: str, wait_s: float) -> Release:
    lock = _get_local_lock(key)
    if not lock.acquire(timeout=wait_s):
        prometheus_metrics.record_resource_lock("acquire", "timeout", "local")
        logger.warning("resource_lock_timeout", extra={"lock_key": key, "wait_s": wait_s})
        raise ServiceException(
            "Timed out waiting for a concurrent booking to finish",
            code="LOCK_TIMEOUT",
            details={"lock_key": key},
        )
    prometheus_metrics.record_resource_lock("acquire", "success", "local")

    def release() -> None:
        lock.release()
        prometheus_metrics.record_resource_lock("release", "success", "local")

    return release


def _acquire_redis(client: Redis, key: str, wait_s: float, ttl_s: int) -> Release:
    redis_lock = client.lock(
        _namespaced_key(key),
        timeout=ttl_s,
        blocking_timeout=wait_s,
        thread_local=False,
    )
    if not redis_lock.acquire(blocking=True):
        prometheus_metrics.record_resource_lock("acquire", "timeout", "redis")
        logger.warning("resource_lock_timeout", extra={"lock_key": key, "wait_s": wait_s})
        raise ServiceException(
            "Timed out waiting for a concurrent booking to finish",
            code="LOCK_TIMEOUT",
            details={"lock_key": key},
        )
    prometheus_metrics.record_resource_lock("acquire", "success", "redis")

    def release() -> None:
        try:
            redis_lock.release()
            prometheus_metrics.record_resource_lock("release", "success", "redis")
        except LockError as exc:
            # TTL expired before release; another holder may already own the key
            prometheus_metrics.record_resource_lock("release", "expired", "redis")
            logger.warning(
                "resource_lock_release_failed",
                extra={"lock_key": key, "error": str(exc)},
            )

    return release


def acquire_resource_lock(
    key: str, *, wait_s: Optional[float] = None, ttl_s: Optional[int] = None
) -> Release:
    """
    Acquire a single named lock and return its release callable.

    With the redis backend several processes share the store, so a
    process-local lock would not exclude them: an unreachable redis refuses
    the operation instead.

    Raises:
        ServiceException: LOCK_TIMEOUT if the lock could not be obtained
            within wait_s, LOCK_UNAVAILABLE if redis cannot be reached
    """
    wait = settings.lock_wait_seconds if wait_s is None else wait_s
    ttl = settings.lock_ttl_seconds if ttl_s is None else ttl_s

    if settings.lock_backend != "redis":
        return _acquire_local(key, wait)

    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_resource_lock("acquire", "redis_unavailable", "redis")
        raise _lock_unavailable(key, "redis unreachable")
    try:
        return _acquire_redis(client, key, wait, ttl)
    except RedisError as exc:
        prometheus_metrics.record_resource_lock("acquire", "error", "redis")
        raise _lock_unavailable(key, str(exc)) from exc


def _lock_unavailable(key: str, reason: str) -> ServiceException:
    logger.error("resource_lock_unavailable", extra={"lock_key": key, "error": reason})
    return ServiceException(
        "Booking locks are unavailable; try again later",
        code="LOCK_UNAVAILABLE",
        details={"lock_key": key},
    )


@contextmanager
def resource_locks(
    *keys: Optional[str], wait_s: Optional[float] = None, ttl_s: Optional[int] = None
) -> Iterator[List[str]]:
    """
    Hold every named lock for the duration of the block.

    Keys are de-duplicated and acquired in sorted order so two callers
    asking for overlapping key sets can never deadlock.
    """
    ordered = sorted({key for key in keys if key})
    releases: List[Release] = []
    try:
        for key in ordered:
            releases.append(acquire_resource_lock(key, wait_s=wait_s, ttl_s=ttl_s))
        yield ordered
    finally:
        for release in reversed(releases):
            release()


@contextmanager
def resource_lock(
    key: str, *, wait_s: Optional[float] = None, ttl_s: Optional[int] = None
) -> Iterator[str]:
    with resource_locks(key, wait_s=wait_s, ttl_s=ttl_s):
        yield key
