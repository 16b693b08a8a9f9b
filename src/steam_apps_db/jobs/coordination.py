"""
Shared coordination state for the job layer.

Holds the uniqueness locks keyed by (job kind, app id) and the decay
windows of the rate limiter. The in-memory store serves one process;
the SQL store is shared by every worker using the same database.

A lock taken without a TTL never expires: it is held until its owner
releases it.
"""

import threading
import time
from collections.abc import Callable
from typing import Protocol

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError

from steam_apps_db.persistence.database import Database
from steam_apps_db.persistence.models import JobLock, RateLimitWindow

Clock = Callable[[], float]


class CoordinationStore(Protocol):
    """Locks with optional expiry plus decay windows."""

    def acquire_lock(self, key: str, owner: str, ttl_seconds: float | None) -> bool:
        """Take the lock unless someone holds an unexpired one."""
        ...

    def refresh_lock(self, key: str, owner: str, ttl_seconds: float | None) -> bool:
        """Push the owner's lock expiry out again. False if owner lost it."""
        ...

    def release_lock(self, key: str, owner: str | None = None) -> None:
        """Drop the lock. With owner set, only if that owner holds it."""
        ...

    def try_acquire_slot(self, key: str, decay_seconds: float) -> bool:
        """Claim the window for key if it has elapsed, opening the next one."""
        ...


def _expiry(now: float, ttl_seconds: float | None) -> float | None:
    return None if ttl_seconds is None else now + ttl_seconds


def _held(expires_at: float | None, now: float) -> bool:
    return expires_at is None or expires_at > now


class InMemoryCoordinationStore:
    """Thread-safe store for single-process runs and tests."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._mutex = threading.Lock()
        self._locks: dict[str, tuple[str, float | None]] = {}
        self._windows: dict[str, float] = {}

    def acquire_lock(self, key: str, owner: str, ttl_seconds: float | None) -> bool:
        with self._mutex:
            now = self._clock()
            held = self._locks.get(key)
            if held is not None and _held(held[1], now):
                return False
            self._locks[key] = (owner, _expiry(now, ttl_seconds))
            return True

    def refresh_lock(self, key: str, owner: str, ttl_seconds: float | None) -> bool:
        with self._mutex:
            held = self._locks.get(key)
            if held is None or held[0] != owner:
                return False
            self._locks[key] = (owner, _expiry(self._clock(), ttl_seconds))
            return True

    def release_lock(self, key: str, owner: str | None = None) -> None:
        with self._mutex:
            held = self._locks.get(key)
            if held is not None and (owner is None or held[0] == owner):
                del self._locks[key]

    def try_acquire_slot(self, key: str, decay_seconds: float) -> bool:
        with self._mutex:
            now = self._clock()
            if self._windows.get(key, now) > now:
                return False
            self._windows[key] = now + decay_seconds
            return True

    def is_locked(self, key: str) -> bool:
        with self._mutex:
            held = self._locks.get(key)
            return held is not None and _held(held[1], self._clock())


class SqlCoordinationStore:
    """
    Store backed by the job_locks and rate_limit_windows tables.

    Every operation is a single conditional write in its own
    transaction, so concurrent workers never both win the same lock or
    the same window.
    """

    def __init__(self, database: Database, clock: Clock = time.time) -> None:
        self._db = database
        self._clock = clock

    def acquire_lock(self, key: str, owner: str, ttl_seconds: float | None) -> bool:
        now = self._clock()
        expires_at = _expiry(now, ttl_seconds)
        try:
            with self._db.transaction() as session:
                session.add(JobLock(key=key, owner=owner, expires_at=expires_at))
            return True
        except IntegrityError:
            pass

        # Row exists: take it over only if it has expired
        with self._db.transaction() as session:
            result = session.execute(
                update(JobLock)
                .where(
                    JobLock.key == key,
                    JobLock.expires_at.is_not(None),
                    JobLock.expires_at <= now,
                )
                .values(owner=owner, expires_at=expires_at)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1  # type: ignore[attr-defined]

    def refresh_lock(self, key: str, owner: str, ttl_seconds: float | None) -> bool:
        with self._db.transaction() as session:
            result = session.execute(
                update(JobLock)
                .where(JobLock.key == key, JobLock.owner == owner)
                .values(expires_at=_expiry(self._clock(), ttl_seconds))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1  # type: ignore[attr-defined]

    def release_lock(self, key: str, owner: str | None = None) -> None:
        statement = delete(JobLock).where(JobLock.key == key)
        if owner is not None:
            statement = statement.where(JobLock.owner == owner)
        with self._db.transaction() as session:
            session.execute(statement.execution_options(synchronize_session=False))

    def try_acquire_slot(self, key: str, decay_seconds: float) -> bool:
        now = self._clock()
        with self._db.transaction() as session:
            result = session.execute(
                update(RateLimitWindow)
                .where(RateLimitWindow.key == key, RateLimitWindow.available_at <= now)
                .values(available_at=now + decay_seconds)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:  # type: ignore[attr-defined]
                return True
            if session.get(RateLimitWindow, key) is not None:
                return False

        try:
            with self._db.transaction() as session:
                session.add(RateLimitWindow(key=key, available_at=now + decay_seconds))
            return True
        except IntegrityError:
            return False

    def is_locked(self, key: str) -> bool:
        with self._db.session() as session:
            lock = session.get(JobLock, key)
            return lock is not None and _held(lock.expires_at, self._clock())
