from abc import ABC, abstractmethod

from src.devicemonitoring.domain.model.aggregates import Device, Reading


class DeviceUpdateNotifier(ABC):
    """
    Port used by the application layer to push live updates

    Implemented by the dashboard broadcaster; injected into the lifecycle
    service and the reading pipeline.
    """

    @abstractmethod
    def notify_device_changed(self, device: Device):
        """A device record changed (status transition or administrative edit)"""

    @abstractmethod
    def notify_reading(self, device_id: str, reading: Reading):
        """A reading arrived for device_id (it may not be persisted yet)"""
