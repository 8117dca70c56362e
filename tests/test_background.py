"""Tests for the background worker and the periodic stats runner."""

import threading
from unittest.mock import Mock

from hermes_engine.tasks import BackgroundWorker, DailyStatsRunner


class TestBackgroundWorker:
    """Tests for BackgroundWorker."""

    def test_runs_submitted_jobs(self):
        worker = BackgroundWorker()
        results = []
        try:
            assert worker.submit(results.append, 1)
            assert worker.submit(results.append, 2)
            assert worker.drain()
        finally:
            worker.stop()

        assert results == [1, 2]
        assert worker.processed == 2

    def test_failed_job_does_not_stop_worker(self):
        worker = BackgroundWorker()
        results = []

        def boom():
            raise RuntimeError("boom")

        try:
            worker.submit(boom)
            worker.submit(results.append, "after")
            worker.drain()
        finally:
            worker.stop()

        assert worker.failed == 1
        assert results == ["after"]

    def test_full_queue_drops(self):
        worker = BackgroundWorker(max_pending=1)
        started = threading.Event()
        release = threading.Event()

        def blocker():
            started.set()
            release.wait(5)

        try:
            worker.submit(blocker)
            assert started.wait(5)
            assert worker.submit(lambda: None) is True
            assert worker.submit(lambda: None) is False
        finally:
            release.set()
            worker.drain()
            worker.stop()

    def test_drain_without_jobs(self):
        assert BackgroundWorker().drain(timeout=0.1)


class TestDailyStatsRunner:
    """Tests for DailyStatsRunner."""

    def test_run_once(self):
        recorder = Mock()
        runner = DailyStatsRunner(recorder, interval_seconds=60)

        assert runner.run_once() is True
        recorder.record.assert_called_once_with()

    def test_failure_is_contained(self):
        recorder = Mock()
        recorder.record.side_effect = RuntimeError("db locked")
        runner = DailyStatsRunner(recorder)

        assert runner.run_once() is False
        assert runner.runs == 1

    def test_start_and_stop(self):
        recorded = threading.Event()
        recorder = Mock()
        recorder.record.side_effect = lambda: recorded.set()
        runner = DailyStatsRunner(recorder, interval_seconds=3600)
        runner.start()
        assert recorded.wait(5)
        runner.stop()

        assert not runner.running
        assert recorder.record.call_count == 1
