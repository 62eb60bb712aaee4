import logging
import ssl
import time
from typing import Optional

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from config.mqtt_config import MqttConfig

logger = logging.getLogger(__name__)

# MQTT protocol levels understood by paho
PROTOCOL_NAMES = {
    mqtt.MQTTv31: "3.1",
    mqtt.MQTTv311: "3.1.1",
    mqtt.MQTTv5: "5.0",
}


def supports_auto_reconnect(protocol_version: int) -> bool:
    """
    Tell whether paho may run its own reconnect loop for this protocol level

    With reconnect_on_failure set, paho answers a 3.1.1 CONNACK refusing the
    protocol level by reconnecting at 3.1, so 3.1.1 sessions are reconnected
    by the caller instead.
    """
    return protocol_version != mqtt.MQTTv311


def build_client_id(device_id: str) -> str:
    """Unique per attempt so a superseded session never kicks out the new one"""
    return f"{MqttConfig.CLIENT_ID_PREFIX}-{device_id}-{int(time.time() * 1000)}"


def create_mqtt_client(
        client_id: str,
        protocol_version: int,
        websockets: bool = False,
        tls: bool = False,
        username: Optional[str] = None,
        password: Optional[str] = None,
        reconnect_on_failure: bool = True
) -> mqtt.Client:
    """
    Build a configured, not yet connected paho client

    Args:
        client_id: MQTT client identifier
        protocol_version: MQTT protocol level (3, 4 or 5)
        websockets: Use the WebSocket transport on MqttConfig.WS_PATH
        tls: Enable TLS (certificates are not verified)
        username: Optional username
        password: Optional password
        reconnect_on_failure: Let the network loop reconnect by itself
            (see supports_auto_reconnect for 3.1.1)

    Returns:
        paho Client with callbacks still unset
    """
    if protocol_version not in PROTOCOL_NAMES:
        raise ValueError(f"Unsupported MQTT protocol version: {protocol_version}")

    client = mqtt.Client(
        callback_api_version=CallbackAPIVersion.VERSION2,
        client_id=client_id,
        # clean_session is a 3.x flag; MQTT 5 uses clean_start on connect
        clean_session=None if protocol_version == mqtt.MQTTv5 else True,
        protocol=protocol_version,
        transport="websockets" if websockets else "tcp",
        reconnect_on_failure=reconnect_on_failure
    )

    client.connect_timeout = MqttConfig.CONNECT_TIMEOUT
    client.reconnect_delay_set(min_delay=1, max_delay=int(max(1, MqttConfig.RECONNECT_DELAY)))

    if websockets:
        client.ws_set_options(path=MqttConfig.WS_PATH)

    if tls:
        # Device brokers commonly run with self-signed certificates
        client.tls_set(cert_reqs=ssl.CERT_NONE)
        client.tls_insecure_set(True)

    if username:
        client.username_pw_set(username, password)

    logger.debug(
        f"MQTT client created: {client_id} "
        f"(MQTT {PROTOCOL_NAMES[protocol_version]}, "
        f"{'websockets' if websockets else 'tcp'}{', tls' if tls else ''})"
    )
    return client
