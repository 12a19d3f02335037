"""
Per-user critical sections.

Streak, score and tone updates all read-then-write the same profile, so
every mutating operation for one user runs under that user's lock and
commits exactly once. Different users never contend.

The in-process lock covers threads inside one worker (FastAPI runs sync
endpoints in a thread pool); the profile row lock taken by
`coaching.load_profile_for_update` covers separate gunicorn workers on
databases that support SELECT ... FOR UPDATE.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class KeyedLocks:
    """One lock per key, kept only while someone holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}
        self._users: dict[int, int] = {}

    def _acquire_ref(self, key: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _release_ref(self, key: int) -> None:
        with self._guard:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: int) -> Iterator[None]:
        lock = self._acquire_ref(key)
        try:
            with lock:
                yield
        finally:
            self._release_ref(key)


user_locks = KeyedLocks()


@contextmanager
def unit_of_work(db: Session, user_id: int) -> Iterator[Session]:
    """
    Serialize on `user_id`, then commit once on success or roll back
    everything on any exception. No partial writes.
    """
    with user_locks.hold(user_id):
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            logger.debug("Rolled back unit of work for user %s", user_id)
            raise
