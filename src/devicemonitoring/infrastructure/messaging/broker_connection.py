from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Set

import paho.mqtt.client as mqtt

from src.devicemonitoring.domain.model.aggregates import Device

# CONNACK / DISCONNECT reason codes meaning the broker did not understand
# the protocol level we spoke (MQTT 3.x CONNACK rc 1 arrives as 0x84)
PROTOCOL_MISMATCH_CODES = frozenset({0x81, 0x82, 0x84})

# Reason paho reports when it drops the socket itself
UNSPECIFIED_ERROR = 0x80


class ConnectionErrorKind(Enum):
    CONNACK_TIMEOUT = "connack_timeout"
    PROTOCOL_MISMATCH = "protocol_mismatch"
    OTHER = "other"


def classify_reason_code(reason_code) -> ConnectionErrorKind:
    """Map a paho ReasonCode (or plain int) to the error policy it triggers"""
    value = getattr(reason_code, 'value', reason_code)
    if value in PROTOCOL_MISMATCH_CODES:
        return ConnectionErrorKind.PROTOCOL_MISMATCH
    return ConnectionErrorKind.OTHER


def reason_code_value(reason_code) -> int:
    return int(getattr(reason_code, 'value', reason_code) or 0)


def is_silent_protocol_refusal(protocol_version: int, disconnect_flags, reason_code) -> bool:
    """
    Tell whether a disconnect seen before any CONNACK is a refused 3.1.1 CONNECT

    paho never calls on_connect for a 3.1.1 CONNACK carrying rc 1 (or a
    CONNACK shaped for another protocol level). It closes the socket with a
    local protocol error, which reaches on_disconnect as 0x80 without a
    DISCONNECT packet from the broker.
    """
    from_server = getattr(disconnect_flags, 'is_disconnect_packet_from_server', False)
    return (
        protocol_version == mqtt.MQTTv311
        and not from_server
        and reason_code_value(reason_code) == UNSPECIFIED_ERROR
    )


@dataclass(eq=False)
class DeviceConnection:
    """
    In-memory handle for one device's broker connection

    Owned by BrokerConnectionManager; replaced, never reused, when a
    retry or fallback attempt supersedes it. auto_reconnect tells whether
    paho's network loop reconnects the handle by itself or the manager
    has to schedule the next attempt.
    """

    device: Device
    client: Any
    protocol_version: int
    fallback: bool = False
    auto_reconnect: bool = True
    connected: bool = False
    closed: bool = False
    subscribed_topics: Set[str] = field(default_factory=set)
    watchdog: Optional[Any] = None

    @property
    def device_id(self) -> str:
        return self.device.device_id

    def cancel_watchdog(self):
        if self.watchdog is not None:
            self.watchdog.cancel()
            self.watchdog = None

    def __repr__(self) -> str:
        return (
            f"DeviceConnection(device_id='{self.device_id}', "
            f"protocol_version={self.protocol_version}, fallback={self.fallback}, "
            f"connected={self.connected})"
        )
