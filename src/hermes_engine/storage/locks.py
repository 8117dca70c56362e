"""Per-lead mutual exclusion for compound lead mutations."""

import threading
from contextlib import contextmanager
from typing import Dict, Generator


class LeadLockRegistry:
    """Hands out one re-entrant lock per lead id.

    Locks are created on first use and dropped once nobody holds or waits
    on them, so the registry does not grow with the number of leads.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._waiters: Dict[str, int] = {}

    @contextmanager
    def hold(self, lead_id: str) -> Generator[None, None, None]:
        with self._guard:
            lock = self._locks.setdefault(lead_id, threading.RLock())
            self._waiters[lead_id] = self._waiters.get(lead_id, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[lead_id] -= 1
                if self._waiters[lead_id] == 0:
                    del self._waiters[lead_id]
                    del self._locks[lead_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
