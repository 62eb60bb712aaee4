import json
import logging
import math
from datetime import datetime
from typing import Optional

from src.devicemonitoring.domain.exceptions import DeviceNotFoundError, ReadingNotStoredError
from src.devicemonitoring.domain.model.aggregates import Reading
from src.devicemonitoring.domain.model.valueobjects import NormalizedPayload
from src.devicemonitoring.domain.services import PRIMARY_VALUE_FIELD
from src.devicemonitoring.infrastructure.persistence import DeviceRepository
from .reading_pipeline import ReadingPipeline

logger = logging.getLogger(__name__)


class ReadingIngestionService:
    """
    Application Service for readings pushed over HTTP instead of MQTT

    Validates the request, then reuses ReadingPipeline so pushed readings
    get the same sensor_data / persist / online / device_update sequence
    as broker messages.
    """

    def __init__(self, device_repository: DeviceRepository, pipeline: ReadingPipeline):
        self.device_repository = device_repository
        self.pipeline = pipeline

    def ingest(self, device_id: str, value, recorded_at: Optional[datetime] = None) -> Reading:
        """
        Ingest one pushed reading

        Args:
            device_id: External deviceId
            value: Numeric reading value (required)
            recorded_at: Optional explicit timestamp

        Returns:
            Persisted Reading

        Raises:
            ValueError: If value is missing or not a finite number
            DeviceNotFoundError: If device_id is not registered
            ReadingNotStoredError: If the reading could not be persisted
        """
        numeric_value = self._validate_value(value)

        device = self.device_repository.find_by_device_id(device_id)
        if device is None:
            logger.warning(f"Reading pushed for unknown device: {device_id}")
            raise DeviceNotFoundError(device_id)

        timestamp = recorded_at or datetime.now()
        raw_payload = json.dumps({
            PRIMARY_VALUE_FIELD: numeric_value,
            'timestamp': timestamp.isoformat(),
            'device_id': device_id
        })

        saved = self.pipeline.process(
            device,
            NormalizedPayload(value=numeric_value, raw=raw_payload),
            recorded_at=timestamp
        )

        if saved is None:
            raise ReadingNotStoredError(f"Reading for {device_id} could not be stored")

        return saved

    @staticmethod
    def _validate_value(value) -> float:
        if value is None:
            raise ValueError("value is required")

        if isinstance(value, bool):
            raise ValueError("value must be a number")

        try:
            numeric_value = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"value must be a number, got {value!r}")

        if not math.isfinite(numeric_value):
            raise ValueError("value must be a finite number")

        return numeric_value
