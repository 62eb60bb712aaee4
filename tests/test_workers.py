import threading
import time
from datetime import datetime, timedelta

import pytest

from src.devicemonitoring.application.services import ReadingRetentionService
from src.devicemonitoring.application.workers import ReadingRetentionWorker
from src.devicemonitoring.domain.model.aggregates import Reading
from src.shared.infrastructure.workers import TaskScheduler


class TestTaskScheduler:

    def test_runs_after_delay(self):
        scheduler = TaskScheduler(name="test")
        done = threading.Event()

        scheduler.schedule(0.01, done.set)

        assert done.wait(2)

    def test_cancel_prevents_run(self):
        scheduler = TaskScheduler(name="test")
        done = threading.Event()

        task = scheduler.schedule(0.5, done.set)
        task.cancel()
        task.cancel()

        assert not done.wait(0.8)

    def test_failures_are_contained(self):
        scheduler = TaskScheduler(name="test")
        done = threading.Event()

        def explode():
            raise RuntimeError("boom")

        scheduler.schedule(0, explode)
        scheduler.schedule(0.05, done.set)

        assert done.wait(2)


class TestReadingRetentionService:

    def test_rejects_negative_window(self, reading_repository):
        with pytest.raises(ValueError):
            ReadingRetentionService(reading_repository, older_than_days=-1)

    def test_zero_days_deletes_everything_before_now(self, reading_repository):
        reading_repository.save(Reading.record("D1", 1, "1", datetime.now() - timedelta(minutes=1)))
        service = ReadingRetentionService(reading_repository, older_than_days=2)

        assert service.cleanup(0) == 1


class TestReadingRetentionWorker:

    @pytest.fixture
    def worker(self, reading_repository):
        service = ReadingRetentionService(reading_repository, older_than_days=2)
        return ReadingRetentionWorker(service, interval_seconds=86400)

    def test_run_once_records_outcome(self, worker, reading_repository):
        reading_repository.save(Reading.record("D1", 1, "1", datetime.now() - timedelta(days=5)))
        reading_repository.save(Reading.record("D1", 2, "2"))

        worker.run_once()

        assert worker.last_deleted_count == 1
        assert worker.last_run_at is not None
        assert reading_repository.count() == 1

    def test_status_before_start(self, worker):
        assert worker.status() == {
            'intervalDays': 1,
            'olderThanDays': 2,
            'isRunning': False,
            'lastCleanup': None,
            'lastDeletedCount': None,
            'nextCleanup': None
        }

    def test_start_runs_immediately_then_stops(self, worker):
        worker.start()
        try:
            deadline = time.monotonic() + 2
            while worker.last_run_at is None and time.monotonic() < deadline:
                time.sleep(0.01)

            status = worker.status()
            assert status['isRunning'] is True
            assert status['lastDeletedCount'] == 0
            next_run = datetime.fromisoformat(status['nextCleanup'])
            assert next_run - worker.last_run_at == timedelta(days=1)
        finally:
            worker.stop()

        assert not worker.is_running()
