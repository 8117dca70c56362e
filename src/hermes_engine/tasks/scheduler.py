"""Background runner for the periodic daily-stats recompute."""

import logging
import threading

logger = logging.getLogger(__name__)


class DailyStatsRunner:
    """Recomputes today's stats every interval.

    A failed run is logged and simply retried on the next tick; the
    recompute is idempotent so overlapping or repeated runs are harmless.
    """

    def __init__(self, recorder, interval_seconds: int = 3600):
        self.recorder = recorder
        self.interval = interval_seconds
        self.running = False
        self.thread = None
        self.runs = 0
        self._wake = threading.Event()

    def start(self):
        if self.running:
            return
        self.running = True
        self._wake.clear()
        self.thread = threading.Thread(target=self._run_loop, name="hermes-daily-stats", daemon=True)
        self.thread.start()
        logger.info(f"Daily stats runner started (interval: {self.interval}s)")

    def stop(self):
        self.running = False
        self._wake.set()
        if self.thread:
            self.thread.join(timeout=5)

    def run_once(self) -> bool:
        try:
            self.recorder.record()
            return True
        except Exception as e:
            logger.exception(f"Daily stats run failed: {e}")
            return False
        finally:
            self.runs += 1

    def _run_loop(self):
        while self.running:
            self.run_once()
            self._wake.wait(self.interval)
