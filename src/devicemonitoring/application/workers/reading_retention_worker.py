import logging
from datetime import datetime, timedelta
from typing import Optional

from config.retention_config import RetentionConfig
from src.shared.infrastructure.workers import BackgroundWorker
from src.devicemonitoring.application.services import ReadingRetentionService

logger = logging.getLogger(__name__)


class ReadingRetentionWorker(BackgroundWorker):
    """
    Background worker deleting old readings

    Runs once right after start, then every interval (default: 2 days).
    """

    def __init__(
            self,
            retention_service: ReadingRetentionService,
            interval_seconds: int = RetentionConfig.interval_seconds()
    ):
        """
        Initialize retention worker

        Args:
            retention_service: Service performing the cleanup
            interval_seconds: Seconds between cleanups
        """
        super().__init__(
            name="ReadingRetentionWorker",
            interval_seconds=interval_seconds
        )

        self.retention_service = retention_service
        self.last_deleted_count: Optional[int] = None

    def do_work(self):
        """Delete readings older than the retention window"""
        logger.info("=== Reading Retention Worker Started ===")

        self.last_deleted_count = self.retention_service.cleanup()

        logger.info("=== Reading Retention Worker Completed ===")

    def next_run_at(self) -> Optional[datetime]:
        if not self.running or self.last_run_at is None:
            return None
        return self.last_run_at + timedelta(seconds=self.interval_seconds)

    def status(self) -> dict:
        """Worker configuration and state, as exposed by the cleanup API"""
        next_run = self.next_run_at()
        return {
            'intervalDays': self.interval_seconds / 86400,
            'olderThanDays': self.retention_service.older_than_days,
            'isRunning': self.is_running(),
            'lastCleanup': self.last_run_at.isoformat() if self.last_run_at else None,
            'lastDeletedCount': self.last_deleted_count,
            'nextCleanup': next_run.isoformat() if next_run else None
        }
