import logging
import threading
from typing import Callable, Dict, Optional, Set

import paho.mqtt.client as mqtt

from config.mqtt_config import MqttConfig
from src.devicemonitoring.domain.model.aggregates import Device
from src.shared.infrastructure.mqtt import (
    create_mqtt_client,
    build_client_id,
    supports_auto_reconnect,
    PROTOCOL_NAMES
)
from .broker_connection import (
    DeviceConnection,
    ConnectionErrorKind,
    classify_reason_code,
    is_silent_protocol_refusal,
    reason_code_value
)

logger = logging.getLogger(__name__)


class BrokerConnectionManager:
    """
    Keeps one MQTT connection per active device

    Responsibilities:
        - Open a connection for every active device on start()
        - Subscribe to the device topic (QoS 1) once the broker accepts us
        - Hand inbound payloads to the message handler
        - Turn every connection outcome into a device status transition
        - Recover from CONNACK timeouts (fixed delay) and protocol
          mismatches (bounded protocol-version fallback)

    Error policy:
        CONNACK timeout    -> discard, retry after RECONNECT_DELAY with the
                              device's initial protocol version
        Protocol mismatch  -> discard, try version+1, +1 every FALLBACK_DELAY,
                              offline once MAX_PROTOCOL_VERSION is exceeded
        Anything else      -> offline; the paho network loop keeps retrying,
                              or the manager retries after RECONNECT_DELAY
                              for handles paho does not reconnect (3.1.1)
                              (fallback attempts never retry)

    A 3.1.1 broker refusing the protocol level never reaches on_connect
    with paho: the socket drops with 0x80 before any CONNACK, which is
    treated as a protocol mismatch.

    Connection failures are never raised to the caller. Every attempt runs
    on the scheduler, and paho callbacks run on each client's network
    thread, so the registry is guarded by a re-entrant lock. Callbacks from
    a handle that has been replaced or removed are ignored.
    """

    def __init__(
            self,
            device_repository,
            lifecycle_service,
            message_handler,
            scheduler,
            client_factory: Callable = create_mqtt_client
    ):
        """
        Initialize manager with dependencies

        Args:
            device_repository: Source of the active devices on start()
            lifecycle_service: Receives online/waiting/offline transitions
            message_handler: Receives (device, payload) for inbound messages
            scheduler: TaskScheduler running connection attempts and retries
            client_factory: Builds paho clients (replaced in tests)
        """
        self.device_repository = device_repository
        self.lifecycle_service = lifecycle_service
        self.message_handler = message_handler
        self.scheduler = scheduler
        self.client_factory = client_factory

        self._lock = threading.RLock()
        self._connections: Dict[str, DeviceConnection] = {}
        self._pending: Dict[str, object] = {}

        logger.info("Broker Connection Manager initialized")

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def start(self):
        """Open a connection for every active device"""
        try:
            devices = self.device_repository.find_active()
        except Exception as e:
            logger.error(f"Could not load active devices: {e}", exc_info=True)
            return

        logger.info(f"Starting broker connections for {len(devices)} active device(s)")

        for device in devices:
            self.add_device(device)

    def add_device(self, device: Device):
        """
        Open a connection for a device

        Idempotent: a device that already has a handle with the same
        connection settings is left alone; a handle with different
        settings is replaced.
        """
        if not device.is_active:
            logger.debug(f"Device {device.device_id} is inactive, no broker connection")
            self.remove_device(device.device_id)
            return

        with self._lock:
            existing = self._connections.get(device.device_id)

            if existing is not None and \
                    existing.device.connection_settings() == device.connection_settings():
                existing.device = device
                logger.debug(f"Device {device.device_id} already has a broker connection")
                return

            self._cancel_pending(device.device_id)
            stale = self._detach(existing) if existing is not None else None
            conn = self._open(device, device.protocol.initial_protocol_version, fallback=False)

        if stale is not None:
            logger.info(f"Replacing broker connection of {device.device_id} (settings changed)")
            self._close_client(stale)

        if conn is None:
            self.lifecycle_service.mark_offline(device)

    def remove_device(self, device_id: str):
        """Close and forget the connection of a device, if any"""
        with self._lock:
            self._cancel_pending(device_id)
            existing = self._connections.get(device_id)
            stale = self._detach(existing) if existing is not None else None

        if stale is None:
            logger.debug(f"No broker connection to remove for {device_id}")
            return

        self._close_client(stale)
        logger.info(f"Broker connection closed for {device_id}")

    def refresh_device(self, device: Device):
        """Drop any current connection state and start over with fresh settings"""
        self.remove_device(device.device_id)
        self.add_device(device)

    def stop(self):
        """Close every connection and cancel all pending attempts"""
        with self._lock:
            for device_id in list(self._pending):
                self._cancel_pending(device_id)
            stale = [self._detach(conn) for conn in list(self._connections.values())]

        for conn in stale:
            self._close_client(conn)

        logger.info(f"Broker Connection Manager stopped ({len(stale)} connection(s) closed)")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_connected(self, device_id: str) -> bool:
        with self._lock:
            conn = self._connections.get(device_id)
            return conn is not None and conn.connected

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def connected_count(self) -> int:
        with self._lock:
            return sum(1 for conn in self._connections.values() if conn.connected)

    def subscribed_topics(self, device_id: str) -> Set[str]:
        with self._lock:
            conn = self._connections.get(device_id)
            return set(conn.subscribed_topics) if conn is not None else set()

    def protocol_version(self, device_id: str) -> Optional[int]:
        with self._lock:
            conn = self._connections.get(device_id)
            return conn.protocol_version if conn is not None else None

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------

    def _open(self, device: Device, protocol_version: int,
              fallback: bool) -> Optional[DeviceConnection]:
        """Register a new handle and schedule its connect (lock held)"""
        auto_reconnect = not fallback and supports_auto_reconnect(protocol_version)

        try:
            client = self.client_factory(
                client_id=build_client_id(device.device_id),
                protocol_version=protocol_version,
                websockets=device.protocol.uses_websockets,
                tls=device.protocol.uses_tls,
                username=device.username,
                password=device.password,
                reconnect_on_failure=auto_reconnect
            )
        except Exception as e:
            logger.error(f"Could not create MQTT client for {device.device_id}: {e}", exc_info=True)
            return None

        conn = DeviceConnection(
            device=device,
            client=client,
            protocol_version=protocol_version,
            fallback=fallback,
            auto_reconnect=auto_reconnect
        )

        client.user_data_set(conn)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message

        self._connections[device.device_id] = conn
        self.scheduler.schedule(0, lambda: self._connect(conn))

        return conn

    def _connect(self, conn: DeviceConnection):
        """Blocking connect on a scheduler thread"""
        with self._lock:
            if not self._is_current(conn):
                return

        device = conn.device
        host, port = device.broker_address()
        version_name = PROTOCOL_NAMES.get(conn.protocol_version, conn.protocol_version)

        logger.info(
            f"Connecting {device.device_id} to {device.broker_url()} "
            f"(MQTT {version_name}{', fallback attempt' if conn.fallback else ''})"
        )

        try:
            conn.client.connect(host, port, MqttConfig.KEEP_ALIVE)
        except TimeoutError as e:
            logger.warning(f"Connection to {device.broker_url()} timed out for {device.device_id}: {e}")
            self._handle_error(conn, ConnectionErrorKind.CONNACK_TIMEOUT)
            return
        except Exception as e:
            logger.error(f"❌ Could not connect {device.device_id} to {device.broker_url()}: {e}")
            self._handle_error(conn, ConnectionErrorKind.OTHER)

            # Handles paho reconnects stay registered; the network loop retries
            with self._lock:
                if self._is_current(conn):
                    conn.client.loop_start()
            return

        with self._lock:
            current = self._is_current(conn)
            if current:
                conn.client.loop_start()
                conn.watchdog = self.scheduler.schedule(
                    MqttConfig.CONNECT_TIMEOUT,
                    lambda: self._on_connack_timeout(conn)
                )

        if not current:
            # Removed while connect() was blocking
            self._close_client(conn)

    def _on_connack_timeout(self, conn: DeviceConnection):
        with self._lock:
            if not self._is_current(conn) or conn.connected:
                return
            conn.watchdog = None

        logger.warning(
            f"No CONNACK from {conn.device.broker_url()} within "
            f"{MqttConfig.CONNECT_TIMEOUT}s for {conn.device_id}"
        )
        self._handle_error(conn, ConnectionErrorKind.CONNACK_TIMEOUT)

    def _schedule_attempt(self, device: Device, protocol_version: int,
                          fallback: bool, delay: float):
        """Schedule a fresh handle for device after delay (lock held)"""

        def attempt():
            with self._lock:
                if self._pending.get(device.device_id) is not task:
                    return
                del self._pending[device.device_id]
                if device.device_id in self._connections:
                    return
                conn = self._open(device, protocol_version, fallback)

            if conn is None:
                self.lifecycle_service.mark_offline(device)

        task = self.scheduler.schedule(delay, attempt)
        self._pending[device.device_id] = task

    def _handle_error(self, conn: DeviceConnection, kind: ConnectionErrorKind):
        """Apply the error policy to a failed handle"""
        device = conn.device
        next_version = conn.protocol_version + 1
        stale = None

        with self._lock:
            if not self._is_current(conn):
                return

            if conn.fallback:
                stale = self._detach(conn)
                if kind is ConnectionErrorKind.PROTOCOL_MISMATCH and \
                        next_version <= MqttConfig.MAX_PROTOCOL_VERSION:
                    self._schedule_attempt(device, next_version, True, MqttConfig.FALLBACK_DELAY)
                    outcome = 'fallback'
                else:
                    outcome = 'offline'

            elif kind is ConnectionErrorKind.CONNACK_TIMEOUT:
                stale = self._detach(conn)
                self._schedule_attempt(
                    device,
                    device.protocol.initial_protocol_version,
                    False,
                    MqttConfig.RECONNECT_DELAY
                )
                outcome = 'retry'

            elif kind is ConnectionErrorKind.PROTOCOL_MISMATCH:
                stale = self._detach(conn)
                if next_version <= MqttConfig.MAX_PROTOCOL_VERSION:
                    self._schedule_attempt(device, next_version, True, 0)
                    outcome = 'fallback'
                else:
                    outcome = 'offline'

            elif not conn.auto_reconnect:
                stale = self._detach(conn)
                self._schedule_attempt(
                    device, conn.protocol_version, False, MqttConfig.RECONNECT_DELAY
                )
                outcome = 'offline_retry'

            else:
                outcome = 'offline'

        if stale is not None:
            self._close_client(stale)

        if outcome in ('retry', 'offline_retry'):
            logger.info(f"Retrying {device.device_id} in {MqttConfig.RECONNECT_DELAY}s")
            if outcome == 'offline_retry':
                self.lifecycle_service.mark_offline(device)
        elif outcome == 'fallback':
            logger.warning(
                f"Protocol mismatch for {device.device_id} on MQTT "
                f"{PROTOCOL_NAMES.get(conn.protocol_version, conn.protocol_version)}, "
                f"trying protocol version {next_version}"
            )
        else:
            if kind is ConnectionErrorKind.PROTOCOL_MISMATCH:
                logger.error(f"❌ Protocol fallback exhausted for {device.device_id}")
            elif conn.fallback:
                logger.error(f"❌ Protocol fallback attempt failed for {device.device_id}")
            self.lifecycle_service.mark_offline(device)

    # ------------------------------------------------------------------
    # paho callbacks (network loop thread)
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, connect_flags, reason_code, properties):
        """
        Callback when the broker answers our CONNECT

        Failure reason codes (>= 0x80) go through the error policy;
        success subscribes to the device topic.
        """
        conn: DeviceConnection = userdata
        code = reason_code_value(reason_code)
        subscribe_rc = None

        with self._lock:
            if not self._is_current(conn):
                return
            conn.cancel_watchdog()

            if code < 0x80:
                conn.connected = True
                subscribe_rc, _ = client.subscribe(
                    conn.device.mqtt_topic,
                    qos=MqttConfig.QOS_SUBSCRIBE
                )

        if code >= 0x80:
            logger.error(f"❌ Broker refused {conn.device_id}: {reason_code} ({code:#04x})")
            self._handle_error(conn, classify_reason_code(code))
            return

        logger.info(f"✅ {conn.device_id} connected to {conn.device.broker_url()}")

        if subscribe_rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error(
                f"❌ Failed to subscribe {conn.device_id} to {conn.device.mqtt_topic}: "
                f"rc={subscribe_rc}"
            )

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties):
        conn: DeviceConnection = userdata

        with self._lock:
            if not self._is_current(conn):
                return
            refused = [rc for rc in reason_code_list if reason_code_value(rc) >= 0x80]
            if not refused:
                conn.subscribed_topics.add(conn.device.mqtt_topic)

        if refused:
            logger.error(
                f"❌ Subscription to {conn.device.mqtt_topic} refused for "
                f"{conn.device_id}: {refused}"
            )
            return

        if conn.fallback:
            logger.info(
                f"Protocol fallback succeeded for {conn.device_id} with MQTT "
                f"{PROTOCOL_NAMES.get(conn.protocol_version, conn.protocol_version)}"
            )

        logger.info(f"✅ {conn.device_id} subscribed to {conn.device.mqtt_topic}")
        self.lifecycle_service.mark_online(conn.device)

    def _on_message(self, client, userdata, message):
        conn: DeviceConnection = userdata

        with self._lock:
            if not self._is_current(conn):
                return
            device = conn.device

        if not mqtt.topic_matches_sub(device.mqtt_topic, message.topic):
            logger.debug(f"Ignoring message on {message.topic} for {device.device_id}")
            return

        try:
            self.message_handler.handle(device, message.payload)
        except Exception as e:
            logger.error(
                f"Error handling message on {message.topic} for {device.device_id}: {e}",
                exc_info=True
            )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        """
        Callback when the connection drops

        After a successful CONNACK any disconnect puts the device in
        'waiting'. Before it, protocol errors (including a silently refused
        3.1.1 CONNECT) go through the error policy, and so does any drop of
        a handle paho does not reconnect; otherwise the network loop or the
        CONNACK watchdog takes care of the retry.
        """
        conn: DeviceConnection = userdata
        kind = classify_reason_code(reason_code)

        with self._lock:
            if not self._is_current(conn):
                return
            was_connected = conn.connected
            conn.connected = False
            conn.subscribed_topics.clear()

        if not was_connected and \
                is_silent_protocol_refusal(conn.protocol_version, disconnect_flags, reason_code):
            logger.debug(f"{conn.device_id} dropped before CONNACK on MQTT 3.1.1 ({reason_code})")
            kind = ConnectionErrorKind.PROTOCOL_MISMATCH

        if kind is ConnectionErrorKind.PROTOCOL_MISMATCH:
            self._handle_error(conn, kind)
            return

        if not was_connected:
            if not conn.auto_reconnect:
                self._handle_error(conn, ConnectionErrorKind.OTHER)
            return

        logger.warning(f"⚠️  {conn.device_id} disconnected from broker ({reason_code})")
        self.lifecycle_service.mark_waiting(conn.device)

        if not conn.auto_reconnect:
            # Keep the version that worked
            with self._lock:
                if not self._is_current(conn):
                    return
                stale = self._detach(conn)
                self._schedule_attempt(
                    conn.device, conn.protocol_version, False, MqttConfig.RECONNECT_DELAY
                )
            self._close_client(stale)

    # ------------------------------------------------------------------
    # Registry helpers
    # ------------------------------------------------------------------

    def _is_current(self, conn: DeviceConnection) -> bool:
        return not conn.closed and self._connections.get(conn.device_id) is conn

    def _detach(self, conn: DeviceConnection) -> DeviceConnection:
        """Unregister a handle (lock held); the client is closed by the caller"""
        conn.closed = True
        conn.connected = False
        conn.cancel_watchdog()
        conn.subscribed_topics.clear()
        if self._connections.get(conn.device_id) is conn:
            del self._connections[conn.device_id]
        return conn

    def _cancel_pending(self, device_id: str):
        task = self._pending.pop(device_id, None)
        if task is not None:
            task.cancel()

    def _close_client(self, conn: DeviceConnection):
        try:
            conn.client.disconnect()
        except Exception as e:
            logger.warning(f"Error disconnecting client of {conn.device_id}: {e}")

        try:
            conn.client.loop_stop()
        except Exception as e:
            logger.warning(f"Error stopping network loop of {conn.device_id}: {e}")
