import logging
from datetime import datetime, timedelta

from config.retention_config import RetentionConfig
from src.devicemonitoring.infrastructure.persistence import ReadingRepository

logger = logging.getLogger(__name__)


class ReadingRetentionService:
    """
    Application Service for reading cleanup

    Deletes readings older than a configurable number of days, on demand
    or from ReadingRetentionWorker.
    """

    def __init__(self, reading_repository: ReadingRepository,
                 older_than_days: int = RetentionConfig.OLDER_THAN_DAYS):
        if older_than_days < 0:
            raise ValueError("older_than_days cannot be negative")

        self.reading_repository = reading_repository
        self.older_than_days = older_than_days

    def cleanup(self, older_than_days: int = None) -> int:
        """
        Delete readings older than the retention window

        Args:
            older_than_days: Override of the configured window

        Returns:
            Number of deleted readings
        """
        days = self.older_than_days if older_than_days is None else older_than_days
        if days < 0:
            raise ValueError("older_than_days cannot be negative")

        cutoff = datetime.now() - timedelta(days=days)
        logger.info(f"Cleaning up readings older than {days} day(s) (before {cutoff.isoformat()})")

        deleted = self.reading_repository.delete_older_than(cutoff)

        logger.info(f"✅ Retention cleanup removed {deleted} reading(s)")
        return deleted

    def clear_all(self) -> int:
        """Delete every stored reading"""
        return self.reading_repository.delete_all()
