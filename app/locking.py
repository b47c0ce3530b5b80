"""
Per-event mutual exclusion for invitation transitions.
In-memory locks serve a single process; the Redis backend serializes
transitions across API workers sharing one database.
"""

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator, Optional

import redis
from redis.exceptions import LockError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .config import (
    EVENT_LOCK_BACKEND,
    EVENT_LOCK_TTL_SECONDS,
    EVENT_LOCK_WAIT_SECONDS,
    REDIS_URL,
)
from .shared.exceptions import Conflict

logger = logging.getLogger(__name__)

# Redis connection
redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get or create the Redis client used for distributed event locks"""
    global redis_client

    if redis_client is None:
        if not REDIS_URL:
            raise RuntimeError("REDIS_URL is required for the redis lock backend")

        logger.info("🔄 Initializing Redis connection for event locks...")
        # Mask password in URL for logging
        if "@" in REDIS_URL:
            url_parts = REDIS_URL.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection: {masked_url}")

        try:
            redis_client = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
            redis_client.ping()
            logger.info("Redis connected successfully via URL")
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis via URL: {str(e)}")
            redis_client = None
            raise

    return redis_client


class EventLockManager:
    """Hands out one lock per event id"""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        wait_seconds: float = EVENT_LOCK_WAIT_SECONDS,
        ttl_seconds: float = EVENT_LOCK_TTL_SECONDS,
    ):
        self.client = client
        self.wait_seconds = wait_seconds
        self.ttl_seconds = ttl_seconds
        # event id -> [lock, holders and waiters]; dropped when the count hits zero
        self._locks: dict[str, list] = {}
        self._locks_guard = Lock()

    @property
    def backend(self) -> str:
        return "redis" if self.client is not None else "memory"

    def _claim(self, event_id: str) -> Lock:
        with self._locks_guard:
            entry = self._locks.setdefault(event_id, [Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _unclaim(self, event_id: str) -> None:
        with self._locks_guard:
            entry = self._locks[event_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[event_id]

    @contextmanager
    def hold(self, event_id: str) -> Iterator[None]:
        """Hold the event's lock; raise Conflict if it cannot be obtained in time"""
        if self.client is not None:
            with self._hold_redis(event_id):
                yield
            return

        lock = self._claim(event_id)
        try:
            if not lock.acquire(timeout=self.wait_seconds):
                logger.warning(f"⚠️ Timed out waiting for lock on event {event_id}")
                raise Conflict(f"Event {event_id} is being modified, retry later")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._unclaim(event_id)

    @contextmanager
    def _hold_redis(self, event_id: str) -> Iterator[None]:
        lock = self.client.lock(
            f"event-lock:{event_id}",
            timeout=self.ttl_seconds,
            blocking_timeout=self.wait_seconds,
        )
        if not lock.acquire():
            logger.warning(f"⚠️ Timed out waiting for redis lock on event {event_id}")
            raise Conflict(f"Event {event_id} is being modified, retry later")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # TTL elapsed while held; the commit itself is still guarded by row versions
                logger.warning(f"⚠️ Redis lock for event {event_id} expired before release")


_lock_manager: Optional[EventLockManager] = None
_lock_manager_guard = Lock()


def get_event_lock_manager() -> EventLockManager:
    global _lock_manager
    with _lock_manager_guard:
        if _lock_manager is None:
            client = get_redis_client() if EVENT_LOCK_BACKEND == "redis" else None
            _lock_manager = EventLockManager(client=client)
            logger.info(f"🔒 Event locks using {_lock_manager.backend} backend")
    return _lock_manager


@contextmanager
def event_transaction(db: Session, lock_manager: EventLockManager, event_id: str) -> Iterator[None]:
    """
    Per-event critical section. State is re-read inside the lock and the
    commit is checked against row versions, so concurrent writers either
    observe each other or fail with Conflict.
    """
    with lock_manager.hold(event_id):
        db.expire_all()
        try:
            yield
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(f"⚠️ Concurrent modification detected on event {event_id}")
            raise Conflict("Event was modified concurrently, retry against fresh state") from None
        except Exception:
            db.rollback()
            raise
