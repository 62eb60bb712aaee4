import logging
import threading
from typing import Set

from src.devicemonitoring.application.services.device_update_notifier import DeviceUpdateNotifier
from src.devicemonitoring.domain.model.aggregates import Device, Reading
from src.devicemonitoring.domain.model.events import (
    DevicesListEvent,
    DeviceUpdatedEvent,
    DeviceDeletedEvent,
    SensorDataEvent
)
from .dashboard_session import DashboardSession

logger = logging.getLogger(__name__)


class DashboardBroadcaster(DeviceUpdateNotifier):
    """
    Fan-out of live events to every connected dashboard session

    Envelopes:
    - devices_list   (once per session, right after it connects)
    - device_update  (every status transition and administrative edit)
    - device_deleted (before the storage delete is issued)
    - sensor_data    (before the reading is persisted)

    Sessions that are not open are skipped silently; they leave the set
    through their own disconnect, never from here.
    """

    def __init__(self, device_repository, scheduler):
        """
        Initialize broadcaster

        Args:
            device_repository: Source of the snapshot sent to new sessions
            scheduler: TaskScheduler used to send the snapshot off the
                connect path
        """
        self.device_repository = device_repository
        self.scheduler = scheduler

        self._sessions: Set[DashboardSession] = set()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Session membership
    # ------------------------------------------------------------------

    def register_session(self, session: DashboardSession):
        """Add a session and schedule its initial devices_list"""
        with self._lock:
            self._sessions.add(session)
            total = len(self._sessions)

        logger.info(f"Dashboard session connected ({total} active)")
        self.scheduler.schedule(0, lambda: self.send_devices_snapshot(session))

    def unregister_session(self, session: DashboardSession):
        with self._lock:
            self._sessions.discard(session)
            total = len(self._sessions)

        logger.info(f"Dashboard session disconnected ({total} active)")

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ------------------------------------------------------------------
    # Broadcasts
    # ------------------------------------------------------------------

    def send_devices_snapshot(self, session: DashboardSession):
        """Send the current device list to a single session (best effort)"""
        try:
            devices = self.device_repository.find_all()
        except Exception as e:
            logger.error(f"Could not load devices for dashboard snapshot: {e}", exc_info=True)
            return

        self._send(session, DevicesListEvent(devices=devices).to_message())

    def broadcast_device_update(self, device: Device) -> int:
        return self._broadcast(DeviceUpdatedEvent(device=device).to_message())

    def broadcast_device_deleted(self, device: Device) -> int:
        event = DeviceDeletedEvent(device_id=device.device_id, id=device.id)
        return self._broadcast(event.to_message())

    def broadcast_sensor_data(self, device_id: str, reading: Reading) -> int:
        event = SensorDataEvent(
            device_id=device_id,
            value=reading.value,
            recorded_at=reading.timestamp,
            raw_payload=reading.raw_payload
        )
        return self._broadcast(event.to_message())

    # DeviceUpdateNotifier

    def notify_device_changed(self, device: Device):
        self.broadcast_device_update(device)

    def notify_reading(self, device_id: str, reading: Reading):
        self.broadcast_sensor_data(device_id, reading)

    # ------------------------------------------------------------------

    def _broadcast(self, message: dict) -> int:
        """
        Send message to every open session

        Returns:
            Number of sessions the message was delivered to
        """
        with self._lock:
            sessions = list(self._sessions)

        delivered = 0
        for session in sessions:
            if self._send(session, message):
                delivered += 1

        logger.debug(f"Broadcast {message.get('type')} to {delivered}/{len(sessions)} session(s)")
        return delivered

    def _send(self, session: DashboardSession, message: dict) -> bool:
        if not session.is_open():
            return False

        try:
            session.send(message)
            return True
        except Exception as e:
            logger.warning(f"Failed to send {message.get('type')} to dashboard session: {e}")
            return False
