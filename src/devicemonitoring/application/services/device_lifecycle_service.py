import logging
from datetime import datetime
from typing import Optional

from src.devicemonitoring.domain.model.aggregates import Device, DeviceStatus
from src.devicemonitoring.infrastructure.persistence import DeviceRepository
from .device_update_notifier import DeviceUpdateNotifier

logger = logging.getLogger(__name__)


class DeviceLifecycleService:
    """
    Application Service owning the online/waiting/offline status machine

    Every transition stamps last_seen, is persisted, and is followed by a
    device_update notification. Transitions are fire-and-forget: storage
    or notification failures are logged and never raised, so they cannot
    block message ingestion or the broker callbacks.

    Concurrent transitions for the same device are last-writer-wins.
    """

    def __init__(self, device_repository: DeviceRepository, notifier: DeviceUpdateNotifier):
        """
        Initialize service with dependencies

        Args:
            device_repository: Repository for device persistence
            notifier: Receives the updated device after each transition
        """
        self.device_repository = device_repository
        self.notifier = notifier

    def mark_online(self, device: Device) -> Optional[Device]:
        return self.transition(device, DeviceStatus.ONLINE)

    def mark_waiting(self, device: Device) -> Optional[Device]:
        return self.transition(device, DeviceStatus.WAITING)

    def mark_offline(self, device: Device) -> Optional[Device]:
        return self.transition(device, DeviceStatus.OFFLINE)

    def transition(self, device: Device, status: DeviceStatus) -> Optional[Device]:
        """
        Persist a status transition and notify it

        Args:
            device: Device whose status changes
            status: Target status

        Returns:
            Updated Device, or None if it could not be persisted
        """
        now = datetime.now()

        try:
            updated = self.device_repository.update_status(device.id, status, now)
        except Exception as e:
            logger.error(
                f"Error persisting status {status.value} for {device.device_id}: {e}",
                exc_info=True
            )
            return None

        if updated is None:
            logger.warning(f"Device {device.device_id} no longer exists, status {status.value} dropped")
            return None

        if device.status is not status:
            logger.info(f"Device {device.device_id}: {device.status.value} -> {status.value}")

        try:
            self.notifier.notify_device_changed(updated)
        except Exception as e:
            logger.error(f"Error notifying update of {device.device_id}: {e}", exc_info=True)

        return updated
