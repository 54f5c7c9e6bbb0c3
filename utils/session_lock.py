from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class SessionLockRegistry:
    """
    One mutex per trading session.

    On-chain nonces for a delegated wallet are sequential, so two iterations of
    the same session must never submit transactions at the same time.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def _lock_for(self, session_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[session_id] = lock
            return lock

    @contextmanager
    def hold(self, session_id: int, blocking: bool = False) -> Iterator[bool]:
        """Yield True when the lock was acquired, False when the session is busy."""
        lock = self._lock_for(session_id)
        acquired = lock.acquire(blocking=blocking)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()


session_locks = SessionLockRegistry()
