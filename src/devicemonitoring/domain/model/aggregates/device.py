from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class DeviceStatus(Enum):
    ONLINE = "online"
    WAITING = "waiting"
    OFFLINE = "offline"


class BrokerProtocol(Enum):
    """Transport declared for a device's broker"""
    MQTT = "MQTT"
    MQTTS = "MQTTS"
    WS = "WS"
    WSS = "WSS"

    @property
    def scheme(self) -> str:
        return {
            BrokerProtocol.MQTT: "mqtt",
            BrokerProtocol.MQTTS: "mqtts",
            BrokerProtocol.WS: "ws",
            BrokerProtocol.WSS: "wss",
        }[self]

    @property
    def uses_websockets(self) -> bool:
        return self in (BrokerProtocol.WS, BrokerProtocol.WSS)

    @property
    def uses_tls(self) -> bool:
        return self in (BrokerProtocol.MQTTS, BrokerProtocol.WSS)

    @property
    def initial_protocol_version(self) -> int:
        """
        MQTT protocol level used on the first attempt

        WebSocket brokers get 3.1.1 (level 4), TCP brokers start at 3.1 (level 3).
        """
        return 4 if self.uses_websockets else 3

    @staticmethod
    def parse(value: Optional[str]) -> 'BrokerProtocol':
        if value is None or value == "":
            return BrokerProtocol.MQTT
        try:
            return BrokerProtocol(str(value).upper())
        except ValueError:
            raise ValueError(
                f"protocol must be one of {[p.value for p in BrokerProtocol]}, got {value!r}"
            )


DEFAULT_BROKER_PORT = 1883


@dataclass
class Device:
    """
    Device Aggregate - a registered monitoring target

    The broker address, topic, transport and credentials describe where the
    device publishes; status and last_seen are runtime state owned by the
    connection manager and the lifecycle service.
    """

    device_id: str
    name: str
    mqtt_broker: str
    mqtt_topic: str
    protocol: BrokerProtocol = BrokerProtocol.MQTT
    username: Optional[str] = None
    password: Optional[str] = None
    status: DeviceStatus = DeviceStatus.OFFLINE
    last_seen: Optional[datetime] = None
    is_active: bool = True
    id: Optional[int] = None

    def __post_init__(self):
        """Validations after initialization"""
        if not self.device_id:
            raise ValueError("device_id cannot be empty")

        if not self.name:
            raise ValueError("name cannot be empty")

        if not self.mqtt_broker:
            raise ValueError("mqtt_broker cannot be empty")

        if not self.mqtt_topic:
            raise ValueError("mqtt_topic cannot be empty")

        if not isinstance(self.protocol, BrokerProtocol):
            self.protocol = BrokerProtocol.parse(self.protocol)

        if not isinstance(self.status, DeviceStatus):
            self.status = DeviceStatus(self.status)

    @staticmethod
    def from_registration(payload: dict) -> 'Device':
        """
        Factory method: Creates Device from an administrative registration

        New devices start online with a fresh last_seen, pending their
        first real connection attempt.

        Args:
            payload: camelCase request body (deviceId, name, mqttBroker,
                mqttTopic, protocol, username, password, isActive)

        Returns:
            Device instance

        Raises:
            ValueError: If required fields are missing or invalid
        """
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")

        required_fields = ['deviceId', 'name', 'mqttBroker', 'mqttTopic']
        missing_fields = [f for f in required_fields if not payload.get(f)]

        if missing_fields:
            raise ValueError(f"Missing required fields: {missing_fields}")

        return Device(
            device_id=str(payload['deviceId']).strip(),
            name=str(payload['name']).strip(),
            mqtt_broker=str(payload['mqttBroker']).strip(),
            mqtt_topic=str(payload['mqttTopic']).strip(),
            protocol=BrokerProtocol.parse(payload.get('protocol')),
            username=payload.get('username') or None,
            password=payload.get('password') or None,
            status=DeviceStatus.ONLINE,
            last_seen=datetime.now(),
            is_active=Device.parse_active_flag(payload.get('isActive', True))
        )

    @staticmethod
    def parse_active_flag(value) -> bool:
        """Accept only a JSON boolean for isActive"""
        if not isinstance(value, bool):
            raise ValueError(f"isActive must be a boolean, got {value!r}")
        return value

    def broker_address(self) -> Tuple[str, int]:
        """
        Split the broker address into host and port

        Accepts "host", "host:port" and a leading "scheme://". A missing or
        unparsable port falls back to 1883.

        Returns:
            (host, port) tuple
        """
        address = self.mqtt_broker.strip()
        if "://" in address:
            address = address.split("://", 1)[1]
        address = address.split("/", 1)[0]

        host, separator, port_text = address.rpartition(":")
        if not separator:
            return address, DEFAULT_BROKER_PORT

        try:
            port = int(port_text)
        except ValueError:
            return host, DEFAULT_BROKER_PORT

        if not (0 < port < 65536):
            return host, DEFAULT_BROKER_PORT

        return host, port

    def broker_url(self) -> str:
        """Connection URL built from the address and the declared transport"""
        host, port = self.broker_address()
        return f"{self.protocol.scheme}://{host}:{port}"

    def connection_settings(self) -> tuple:
        """Everything that requires a new broker connection when it changes"""
        return (
            self.mqtt_broker,
            self.mqtt_topic,
            self.protocol,
            self.username,
            self.password,
        )

    def to_dict(self) -> dict:
        """Serialize to the camelCase record used by the API and the dashboard"""
        return {
            'id': self.id,
            'deviceId': self.device_id,
            'name': self.name,
            'mqttBroker': self.mqtt_broker,
            'mqttTopic': self.mqtt_topic,
            'protocol': self.protocol.value,
            'username': self.username,
            'status': self.status.value,
            'lastSeen': self.last_seen.isoformat() if self.last_seen else None,
            'isActive': self.is_active
        }

    def __repr__(self) -> str:
        return (
            f"Device(device_id='{self.device_id}', "
            f"status='{self.status.value}', "
            f"broker='{self.broker_url()}')"
        )
