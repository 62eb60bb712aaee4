from .client_factory import (
    create_mqtt_client,
    build_client_id,
    supports_auto_reconnect,
    PROTOCOL_NAMES
)

__all__ = ['create_mqtt_client', 'build_client_id', 'supports_auto_reconnect', 'PROTOCOL_NAMES']
