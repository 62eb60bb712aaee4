import os
from dotenv import load_dotenv

load_dotenv()


class MqttConfig:
    """
    MQTT settings shared by every per-device broker connection

    Broker address, topic and credentials belong to each registered
    device; this class only holds the connection policy.
    """

    # ========================================
    # Client identity
    # ========================================
    CLIENT_ID_PREFIX = os.getenv('MQTT_CLIENT_ID_PREFIX', 'device-monitor')

    # ========================================
    # Broker defaults
    # ========================================
    DEFAULT_PORT = 1883
    WS_PATH = os.getenv('MQTT_WS_PATH', '/mqtt')

    # ========================================
    # QoS Levels
    # ========================================
    QOS_SUBSCRIBE = 1  # At least once

    # ========================================
    # Connection Settings
    # ========================================
    KEEP_ALIVE = int(os.getenv('MQTT_KEEP_ALIVE', 60))  # Seconds
    CONNECT_TIMEOUT = float(os.getenv('MQTT_CONNECT_TIMEOUT', 10))  # Seconds to wait for CONNACK
    RECONNECT_DELAY = float(os.getenv('MQTT_RECONNECT_DELAY', 5))  # Seconds before a retry the manager schedules itself

    # ========================================
    # Protocol fallback
    # ========================================
    FALLBACK_DELAY = float(os.getenv('MQTT_FALLBACK_DELAY', 2))  # Seconds between fallback attempts
    MAX_PROTOCOL_VERSION = int(os.getenv('MQTT_MAX_PROTOCOL_VERSION', 5))
