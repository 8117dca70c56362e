"""Best-effort background work for bookkeeping side effects."""

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_STOP = object()


class BackgroundWorker:
    """Daemon thread draining a queue of fire-and-forget jobs.

    ``submit`` never raises and never blocks the caller. A job that fails
    is logged and dropped.
    """

    def __init__(self, name: str = "hermes-bookkeeping", max_pending: int = 1000):
        self.name = name
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self.processed = 0
        self.failed = 0
        self._queue: "queue.Queue" = queue.Queue(maxsize=max_pending)
        self._start_lock = threading.Lock()

    def start(self):
        with self._start_lock:
            if self.running:
                return
            self.running = True
            self.thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
            self.thread.start()
        logger.info(f"Background worker {self.name} started")

    def stop(self, timeout: float = 5):
        with self._start_lock:
            if not self.running:
                return
            self.running = False
        self._queue.put(_STOP)
        if self.thread:
            self.thread.join(timeout=timeout)
        logger.info(f"Background worker {self.name} stopped")

    def submit(self, func: Callable[..., Any], *args, **kwargs) -> bool:
        """Queue a job. Returns False if it had to be dropped."""
        if not self.running:
            self.start()
        try:
            self._queue.put_nowait((func, args, kwargs))
        except queue.Full:
            logger.warning(f"Background queue full, dropping {getattr(func, '__name__', func)}")
            return False
        return True

    def drain(self, timeout: float = 5) -> bool:
        """Wait until every queued job has run. Returns False on timeout."""
        deadline = time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def _run_loop(self):
        while True:
            job = self._queue.get()
            try:
                if job is _STOP:
                    return
                func, args, kwargs = job
                try:
                    func(*args, **kwargs)
                    self.processed += 1
                except Exception as e:
                    self.failed += 1
                    logger.exception(f"Background job {getattr(func, '__name__', func)} failed: {e}")
            finally:
                self._queue.task_done()
