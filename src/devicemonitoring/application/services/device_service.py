import logging
from dataclasses import replace
from datetime import datetime
from typing import List

from peewee import IntegrityError

from src.devicemonitoring.domain.exceptions import DeviceNotFoundError, DuplicateDeviceError
from src.devicemonitoring.domain.model.aggregates import Device, DeviceStatus, BrokerProtocol
from src.devicemonitoring.infrastructure.persistence import DeviceRepository

logger = logging.getLogger(__name__)

# Request field (camelCase) -> aggregate attribute
_EDITABLE_FIELDS = {
    'deviceId': 'device_id',
    'name': 'name',
    'mqttBroker': 'mqtt_broker',
    'mqttTopic': 'mqtt_topic',
    'protocol': 'protocol',
    'username': 'username',
    'password': 'password',
    'isActive': 'is_active',
}


class DeviceService:
    """
    Application Service for device administration

    Responsibilities:
    - Register, edit and deregister devices
    - Keep the broker connection manager in step with every change
    - Notify dashboards of every change

    Create and update force the device online with a fresh last_seen,
    assuming it is about to connect. Delete notifies dashboards and drops
    the broker connection before the storage delete is issued.
    """

    def __init__(
            self,
            device_repository: DeviceRepository,
            connection_manager,
            broadcaster,
            scheduler
    ):
        """
        Initialize service with dependencies

        Args:
            device_repository: Repository for device persistence
            connection_manager: BrokerConnectionManager
            broadcaster: DashboardBroadcaster
            scheduler: TaskScheduler running deferred storage deletes
        """
        self.device_repository = device_repository
        self.connection_manager = connection_manager
        self.broadcaster = broadcaster
        self.scheduler = scheduler

    def list_devices(self) -> List[Device]:
        return self.device_repository.find_all()

    def get_device(self, id: int) -> Device:
        """
        Get device by internal ID

        Raises:
            DeviceNotFoundError: If no device has this ID
        """
        device = self.device_repository.find_by_id(id)
        if device is None:
            raise DeviceNotFoundError(id)
        return device

    def get_device_by_device_id(self, device_id: str) -> Device:
        device = self.device_repository.find_by_device_id(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)
        return device

    def create_device(self, payload: dict) -> Device:
        """
        Register a new device

        Args:
            payload: camelCase request body

        Returns:
            Created Device

        Raises:
            ValueError: If the payload is invalid
            DuplicateDeviceError: If deviceId is already registered
        """
        device = Device.from_registration(payload)

        if self.device_repository.find_by_device_id(device.device_id) is not None:
            raise DuplicateDeviceError(device.device_id)

        try:
            created = self.device_repository.create(device)
        except IntegrityError:
            raise DuplicateDeviceError(device.device_id)

        logger.info(f"Device registered: {created.device_id} ({created.broker_url()})")

        self.broadcaster.broadcast_device_update(created)
        self.connection_manager.add_device(created)

        return created

    def update_device(self, id: int, payload: dict) -> Device:
        """
        Edit a device and restart its broker connection

        Args:
            id: Internal numeric ID
            payload: camelCase fields to change

        Returns:
            Updated Device

        Raises:
            ValueError: If the payload is invalid
            DeviceNotFoundError: If no device has this ID
            DuplicateDeviceError: If deviceId is changed to one already taken
        """
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")

        existing = self.get_device(id)
        changes = self._extract_changes(payload)

        # Runs aggregate validation on the merged record
        candidate = replace(existing, **changes)

        new_device_id = changes.get('device_id')
        if new_device_id is not None and new_device_id != existing.device_id:
            if self.device_repository.find_by_device_id(new_device_id) is not None:
                raise DuplicateDeviceError(new_device_id)

        changes['status'] = DeviceStatus.ONLINE
        changes['last_seen'] = datetime.now()

        try:
            updated = self.device_repository.update(id, changes)
        except IntegrityError:
            raise DuplicateDeviceError(candidate.device_id)

        if updated is None:
            raise DeviceNotFoundError(id)

        logger.info(f"Device updated: {updated.device_id}")

        self.broadcaster.broadcast_device_update(updated)

        if updated.device_id != existing.device_id:
            self.connection_manager.remove_device(existing.device_id)
        self.connection_manager.refresh_device(updated)

        return updated

    def delete_device(self, id: int) -> Device:
        """
        Deregister a device

        The device_deleted notification and the broker disconnect happen
        before the storage delete, which runs on the scheduler.

        Args:
            id: Internal numeric ID

        Returns:
            The device that was removed

        Raises:
            DeviceNotFoundError: If no device has this ID
        """
        device = self.get_device(id)

        self.broadcaster.broadcast_device_deleted(device)
        self.connection_manager.remove_device(device.device_id)
        self.scheduler.schedule(0, lambda: self._delete_from_storage(device))

        logger.info(f"Device deregistered: {device.device_id}")
        return device

    def _delete_from_storage(self, device: Device):
        try:
            self.device_repository.delete(device.id)
        except Exception as e:
            logger.error(f"Error deleting {device.device_id} from storage: {e}", exc_info=True)

    @staticmethod
    def _extract_changes(payload: dict) -> dict:
        changes = {}
        for field, attribute in _EDITABLE_FIELDS.items():
            if field not in payload:
                continue

            value = payload[field]
            if attribute == 'password' and not value:
                # Blank password keeps the stored one
                continue
            if attribute == 'protocol':
                value = BrokerProtocol.parse(value)
            elif attribute == 'is_active':
                value = Device.parse_active_flag(value)
            elif attribute == 'username':
                value = value or None
            elif isinstance(value, str):
                value = value.strip()

            changes[attribute] = value

        return changes
