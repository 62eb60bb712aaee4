import logging
from typing import Union

from src.devicemonitoring.domain.model.aggregates import Device
from src.devicemonitoring.domain.services import PayloadNormalizer
from src.devicemonitoring.application.services import ReadingPipeline

logger = logging.getLogger(__name__)


class BrokerMessageHandler:
    """
    Handler for messages received on a device topic

    Normalizes the payload and, unless it is discarded, hands it to the
    reading pipeline. Malformed payloads are dropped without a reading,
    a broadcast or a status change.
    """

    def __init__(self, normalizer: PayloadNormalizer, pipeline: ReadingPipeline):
        """
        Initialize handler

        Args:
            normalizer: Payload normalizer
            pipeline: Shared notify/persist/status pipeline
        """
        self.normalizer = normalizer
        self.pipeline = pipeline

    def handle(self, device: Device, payload: Union[bytes, str]):
        """
        Handle one broker message

        Args:
            device: Device owning the subscription
            payload: Raw message payload
        """
        normalized = self.normalizer.normalize(payload)

        if normalized is None:
            logger.warning(f"❌ Discarded message from {device.device_id}")
            return

        logger.debug(f"Received value {normalized.value} from {device.device_id}")
        self.pipeline.process(device, normalized)
