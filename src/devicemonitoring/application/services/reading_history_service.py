import logging
import math
from datetime import datetime
from typing import List, Optional

from src.devicemonitoring.domain.exceptions import DeviceNotFoundError
from src.devicemonitoring.domain.model.aggregates import Reading
from src.devicemonitoring.infrastructure.persistence import DeviceRepository, ReadingRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000


class ReadingHistoryService:
    """
    Application Service for reading queries

    Read-only: recent readings, latest reading, paginated history and
    dashboard statistics.
    """

    def __init__(self, device_repository: DeviceRepository, reading_repository: ReadingRepository):
        self.device_repository = device_repository
        self.reading_repository = reading_repository

    def recent_readings(self, device_id: str, limit: int = 100) -> List[Reading]:
        """Most recent readings of a device, newest first"""
        self._validate_limit(limit)
        return self.reading_repository.find_by_device(device_id, limit)

    def latest_reading(self, device_id: str) -> Optional[Reading]:
        return self.reading_repository.find_latest(device_id)

    def history(self, device_id: str, page: int = 1, limit: int = 50,
                start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        """
        Paginated history of a registered device

        Args:
            device_id: External deviceId
            page: 1-based page number
            limit: Page size
            start: Inclusive lower bound on timestamp
            end: Inclusive upper bound on timestamp

        Returns:
            {"data": [...], "device": {...}, "pagination": {page, limit, total, pages}}

        Raises:
            ValueError: If paging arguments or the date range are invalid
            DeviceNotFoundError: If device_id is not registered
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        self._validate_limit(limit)
        if start is not None and end is not None and start > end:
            raise ValueError("startDate must be before endDate")

        device = self.device_repository.find_by_device_id(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)

        total = self.reading_repository.count_filtered(device_id, start, end)
        readings = self.reading_repository.find_filtered(
            device_id, start, end, offset=(page - 1) * limit, limit=limit
        )

        return {
            'data': [reading.to_dict() for reading in readings],
            'device': device.to_dict(),
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'pages': math.ceil(total / limit) if total else 0
            }
        }

    def dashboard_stats(self) -> dict:
        """Device counts per status plus the number of stored readings"""
        counts = self.device_repository.count_by_status()

        return {
            'totalDevices': sum(counts.values()),
            'onlineDevices': counts.get('online', 0),
            'waitingDevices': counts.get('waiting', 0),
            'offlineDevices': counts.get('offline', 0),
            'totalMessages': self.reading_repository.count()
        }

    @staticmethod
    def _validate_limit(limit: int):
        if not (1 <= limit <= MAX_PAGE_SIZE):
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
