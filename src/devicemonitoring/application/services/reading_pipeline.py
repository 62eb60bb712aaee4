import logging
from datetime import datetime
from typing import Optional

from src.devicemonitoring.domain.model.aggregates import Device, Reading
from src.devicemonitoring.domain.model.valueobjects import NormalizedPayload
from src.devicemonitoring.infrastructure.persistence import ReadingRepository
from .device_lifecycle_service import DeviceLifecycleService
from .device_update_notifier import DeviceUpdateNotifier

logger = logging.getLogger(__name__)


class ReadingPipeline:
    """
    Shared path for every accepted reading, whatever its source

    Order:
    1. sensor_data notification (live chart first, storage is off the
       critical path)
    2. Persist the reading (best effort)
    3. Mark the device online, which notifies device_update
    """

    def __init__(
            self,
            reading_repository: ReadingRepository,
            lifecycle_service: DeviceLifecycleService,
            notifier: DeviceUpdateNotifier
    ):
        self.reading_repository = reading_repository
        self.lifecycle_service = lifecycle_service
        self.notifier = notifier

    def process(self, device: Device, normalized: NormalizedPayload,
                recorded_at: Optional[datetime] = None) -> Optional[Reading]:
        """
        Run a normalized payload through notify -> persist -> status update

        Args:
            device: Device the reading belongs to
            normalized: Value and raw text from the normalizer
            recorded_at: Explicit timestamp, server time when omitted

        Returns:
            Persisted Reading, or None if storage failed
        """
        reading = Reading.record(
            device_id=device.device_id,
            value=normalized.value,
            raw_payload=normalized.raw,
            timestamp=recorded_at
        )

        try:
            self.notifier.notify_reading(device.device_id, reading)
        except Exception as e:
            logger.error(f"Error notifying reading of {device.device_id}: {e}", exc_info=True)

        saved = None
        try:
            saved = self.reading_repository.save(reading)
            logger.info(f"Reading stored: device={device.device_id}, value={reading.value}")
        except Exception as e:
            logger.error(f"Error storing reading of {device.device_id}: {e}", exc_info=True)

        self.lifecycle_service.mark_online(device)

        return saved
