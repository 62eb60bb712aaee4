import pytest

from src.devicemonitoring.domain.model.aggregates import Device, DeviceStatus, BrokerProtocol
from src.devicemonitoring.domain.model.events import (
    DeviceDeletedEvent,
    DeviceUpdatedEvent,
    SensorDataEvent
)


def _device(**overrides):
    fields = dict(
        device_id="D1",
        name="Device 1",
        mqtt_broker="broker.local",
        mqtt_topic="t/D1",
    )
    fields.update(overrides)
    return Device(**fields)


class TestBrokerAddress:

    def test_default_port(self):
        assert _device().broker_address() == ("broker.local", 1883)

    def test_explicit_port(self):
        assert _device(mqtt_broker="10.0.0.5:8083").broker_address() == ("10.0.0.5", 8083)

    def test_scheme_and_path_are_ignored(self):
        device = _device(mqtt_broker="ws://broker.local:9001/mqtt")
        assert device.broker_address() == ("broker.local", 9001)

    def test_invalid_port_falls_back(self):
        assert _device(mqtt_broker="broker.local:abc").broker_address() == ("broker.local", 1883)

    @pytest.mark.parametrize("protocol, scheme", [
        (BrokerProtocol.MQTT, "mqtt"),
        (BrokerProtocol.MQTTS, "mqtts"),
        (BrokerProtocol.WS, "ws"),
        (BrokerProtocol.WSS, "wss"),
    ])
    def test_broker_url_scheme(self, protocol, scheme):
        device = _device(protocol=protocol)
        assert device.broker_url() == f"{scheme}://broker.local:1883"


class TestProtocol:

    def test_initial_protocol_versions(self):
        assert BrokerProtocol.WS.initial_protocol_version == 4
        assert BrokerProtocol.WSS.initial_protocol_version == 4
        assert BrokerProtocol.MQTT.initial_protocol_version == 3
        assert BrokerProtocol.MQTTS.initial_protocol_version == 3

    def test_transport_flags(self):
        assert BrokerProtocol.WSS.uses_websockets and BrokerProtocol.WSS.uses_tls
        assert not BrokerProtocol.MQTT.uses_websockets and not BrokerProtocol.MQTT.uses_tls

    def test_parse_is_case_insensitive(self):
        assert BrokerProtocol.parse("wss") is BrokerProtocol.WSS

    def test_parse_defaults_to_mqtt(self):
        assert BrokerProtocol.parse(None) is BrokerProtocol.MQTT

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            BrokerProtocol.parse("amqp")


class TestDevice:

    def test_defaults(self):
        device = _device()
        assert device.status is DeviceStatus.OFFLINE
        assert device.last_seen is None
        assert device.is_active

    @pytest.mark.parametrize("field", ["device_id", "name", "mqtt_broker", "mqtt_topic"])
    def test_required_fields(self, field):
        with pytest.raises(ValueError):
            _device(**{field: ""})

    def test_to_dict_never_includes_password(self):
        data = _device(username="user", password="secret").to_dict()
        assert data['username'] == "user"
        assert 'password' not in data
        assert "secret" not in data.values()

    def test_to_dict_is_camel_case(self):
        data = _device(protocol="WS").to_dict()
        assert data['deviceId'] == "D1"
        assert data['mqttBroker'] == "broker.local"
        assert data['mqttTopic'] == "t/D1"
        assert data['protocol'] == "WS"
        assert data['status'] == "offline"
        assert data['isActive'] is True

    def test_connection_settings_track_credentials(self):
        assert _device().connection_settings() != _device(password="x").connection_settings()
        assert _device(name="a").connection_settings() == _device(name="b").connection_settings()


class TestRegistration:

    def test_from_registration_starts_online(self):
        device = Device.from_registration({
            'deviceId': 'D9',
            'name': 'Lobby',
            'mqttBroker': 'broker.local:1883',
            'mqttTopic': 'lobby/alcohol',
            'protocol': 'wss'
        })
        assert device.status is DeviceStatus.ONLINE
        assert device.last_seen is not None
        assert device.protocol is BrokerProtocol.WSS

    def test_missing_fields(self):
        with pytest.raises(ValueError, match="mqttTopic"):
            Device.from_registration({'deviceId': 'D9', 'name': 'x', 'mqttBroker': 'b'})

    def test_body_must_be_object(self):
        with pytest.raises(ValueError):
            Device.from_registration(None)


class TestEnvelopes:

    def test_device_update(self):
        message = DeviceUpdatedEvent(device=_device()).to_message()
        assert message['type'] == "device_update"
        assert message['data']['deviceId'] == "D1"
        assert 'timestamp' in message

    def test_device_deleted(self):
        message = DeviceDeletedEvent(device_id="D1", id=7).to_message()
        assert message['type'] == "device_deleted"
        assert message['deviceId'] == "D1"
        assert message['id'] == 7

    def test_sensor_data(self):
        from datetime import datetime

        recorded_at = datetime(2025, 1, 15, 10, 30)
        message = SensorDataEvent(device_id="D1", value=1.5, recorded_at=recorded_at).to_message()
        assert message['type'] == "sensor_data"
        assert message['deviceId'] == "D1"
        assert message['data']['value'] == 1.5
        assert message['data']['timestamp'] == "2025-01-15T10:30:00"
