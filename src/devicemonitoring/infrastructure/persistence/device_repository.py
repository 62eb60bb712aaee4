import logging
from typing import Optional, List, Dict
from datetime import datetime
from peewee import AutoField, CharField, DateTimeField, BooleanField, fn
from src.shared.infrastructure.database import BaseModel, database
from src.devicemonitoring.domain.model.aggregates import Device, DeviceStatus, BrokerProtocol

logger = logging.getLogger(__name__)


class DeviceModel(BaseModel):
    """
    Peewee ORM model for devices table

    Stores registered devices and their broker connection settings
    """

    id = AutoField(primary_key=True)
    device_id = CharField(unique=True, max_length=100, index=True)
    name = CharField(max_length=200)
    mqtt_broker = CharField(max_length=255)
    mqtt_topic = CharField(max_length=255)
    protocol = CharField(max_length=10, default=BrokerProtocol.MQTT.value)
    username = CharField(max_length=255, null=True)
    password = CharField(max_length=255, null=True)
    status = CharField(max_length=10, default=DeviceStatus.OFFLINE.value, index=True)
    last_seen = DateTimeField(null=True)
    is_active = BooleanField(default=True, index=True)
    created_at = DateTimeField(default=datetime.now)

    class Meta:
        table_name = 'devices'


# Aggregate attribute -> column, for partial updates
_UPDATABLE_FIELDS = {
    'device_id': DeviceModel.device_id,
    'name': DeviceModel.name,
    'mqtt_broker': DeviceModel.mqtt_broker,
    'mqtt_topic': DeviceModel.mqtt_topic,
    'protocol': DeviceModel.protocol,
    'username': DeviceModel.username,
    'password': DeviceModel.password,
    'status': DeviceModel.status,
    'last_seen': DeviceModel.last_seen,
    'is_active': DeviceModel.is_active,
}


class DeviceRepository:
    """
    Repository for Device aggregate

    Handles persistence operations for devices in SQLite
    """

    def __init__(self):
        self._ensure_table_exists()

    def _ensure_table_exists(self):
        """Create table if it doesn't exist"""
        with database:
            database.create_tables([DeviceModel], safe=True)
        logger.info("DeviceModel table verified/created")

    def create(self, device: Device) -> Device:
        """
        Insert a new device

        Args:
            device: Device aggregate without id

        Returns:
            Device with ID populated
        """
        try:
            model = DeviceModel.create(
                device_id=device.device_id,
                name=device.name,
                mqtt_broker=device.mqtt_broker,
                mqtt_topic=device.mqtt_topic,
                protocol=device.protocol.value,
                username=device.username,
                password=device.password,
                status=device.status.value,
                last_seen=device.last_seen,
                is_active=device.is_active
            )

            logger.info(f"Device created: {device.device_id} (ID: {model.id})")
            return self._to_aggregate(model)

        except Exception as e:
            logger.error(f"Error creating device {device.device_id}: {e}", exc_info=True)
            raise

    def update(self, id: int, changes: Dict) -> Optional[Device]:
        """
        Partially update a device

        Args:
            id: Internal numeric ID
            changes: Aggregate attribute names mapped to new values

        Returns:
            Updated Device, or None if not found
        """
        values = {}
        for attribute, value in changes.items():
            column = _UPDATABLE_FIELDS.get(attribute)
            if column is None:
                raise ValueError(f"Field '{attribute}' cannot be updated")
            if isinstance(value, (DeviceStatus, BrokerProtocol)):
                value = value.value
            values[column] = value

        try:
            if values:
                DeviceModel.update(values).where(DeviceModel.id == id).execute()

            return self.find_by_id(id)

        except Exception as e:
            logger.error(f"Error updating device {id}: {e}", exc_info=True)
            raise

    def update_status(self, id: int, status: DeviceStatus,
                      last_seen: Optional[datetime]) -> Optional[Device]:
        """
        Update the runtime status of a device

        Args:
            id: Internal numeric ID
            status: New status
            last_seen: Timestamp of the transition

        Returns:
            Updated Device, or None if it no longer exists
        """
        return self.update(id, {'status': status, 'last_seen': last_seen})

    def find_by_id(self, id: int) -> Optional[Device]:
        """
        Find device by internal ID

        Args:
            id: Internal numeric ID

        Returns:
            Device aggregate or None if not found
        """
        try:
            model = DeviceModel.get_or_none(DeviceModel.id == id)

            if model is None:
                return None

            return self._to_aggregate(model)

        except Exception as e:
            logger.error(f"Error finding device by ID {id}: {e}", exc_info=True)
            raise

    def find_by_device_id(self, device_id: str) -> Optional[Device]:
        """
        Find device by its external deviceId

        Args:
            device_id: Unique external identifier (e.g., "D1")

        Returns:
            Device aggregate or None if not found
        """
        try:
            model = DeviceModel.get_or_none(DeviceModel.device_id == device_id)

            if model is None:
                logger.debug(f"Device not found: {device_id}")
                return None

            return self._to_aggregate(model)

        except Exception as e:
            logger.error(f"Error finding device {device_id}: {e}", exc_info=True)
            raise

    def find_all(self) -> List[Device]:
        """
        Find all devices, oldest registration first

        Returns:
            List of Device aggregates
        """
        try:
            models = DeviceModel.select().order_by(DeviceModel.id)
            return [self._to_aggregate(model) for model in models]

        except Exception as e:
            logger.error(f"Error finding all devices: {e}", exc_info=True)
            raise

    def find_active(self) -> List[Device]:
        """
        Find devices the connection manager must keep connected

        Returns:
            List of active Device aggregates
        """
        try:
            models = (DeviceModel
                      .select()
                      .where(DeviceModel.is_active == True)  # noqa: E712
                      .order_by(DeviceModel.id))
            return [self._to_aggregate(model) for model in models]

        except Exception as e:
            logger.error(f"Error finding active devices: {e}", exc_info=True)
            raise

    def delete(self, id: int) -> bool:
        """
        Delete device by internal ID

        Args:
            id: Internal numeric ID

        Returns:
            True if deleted, False if not found
        """
        try:
            deleted = DeviceModel.delete().where(DeviceModel.id == id).execute()

            if deleted > 0:
                logger.info(f"Device deleted: {id}")
                return True
            else:
                logger.warning(f"Device not found for deletion: {id}")
                return False

        except Exception as e:
            logger.error(f"Error deleting device {id}: {e}", exc_info=True)
            raise

    def count(self) -> int:
        """
        Count total devices

        Returns:
            Total number of devices
        """
        try:
            return DeviceModel.select().count()
        except Exception as e:
            logger.error(f"Error counting devices: {e}", exc_info=True)
            raise

    def count_by_status(self) -> Dict[str, int]:
        """
        Count devices per status

        Returns:
            Dictionary with a key for every DeviceStatus value
        """
        try:
            counts = {status.value: 0 for status in DeviceStatus}
            query = (DeviceModel
                     .select(DeviceModel.status, fn.COUNT(DeviceModel.id).alias('total'))
                     .group_by(DeviceModel.status))
            for row in query:
                counts[row.status] = row.total
            return counts

        except Exception as e:
            logger.error(f"Error counting devices by status: {e}", exc_info=True)
            raise

    def _to_aggregate(self, model: DeviceModel) -> Device:
        """
        Convert Peewee model to Domain aggregate

        Args:
            model: DeviceModel instance

        Returns:
            Device aggregate
        """
        return Device(
            id=model.id,
            device_id=model.device_id,
            name=model.name,
            mqtt_broker=model.mqtt_broker,
            mqtt_topic=model.mqtt_topic,
            protocol=BrokerProtocol.parse(model.protocol),
            username=model.username,
            password=model.password,
            status=DeviceStatus(model.status),
            last_seen=model.last_seen,
            is_active=model.is_active
        )
