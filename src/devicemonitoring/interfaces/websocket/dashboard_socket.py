import logging
from typing import Dict

from flask import request
from flask_socketio import SocketIO

from config.dashboard_config import DashboardConfig
from src.devicemonitoring.infrastructure.messaging import DashboardBroadcaster, DashboardSession

logger = logging.getLogger(__name__)


class SocketIOSession(DashboardSession):
    """DashboardSession backed by one Socket.IO connection (sid)"""

    def __init__(self, socketio: SocketIO, sid: str, namespace: str = '/'):
        self.socketio = socketio
        self.sid = sid
        self.namespace = namespace
        self._open = True

    def is_open(self) -> bool:
        return self._open

    def close(self):
        self._open = False

    def send(self, message: dict):
        self.socketio.emit(
            DashboardConfig.MESSAGE_EVENT,
            message,
            to=self.sid,
            namespace=self.namespace
        )

    def __repr__(self) -> str:
        return f"SocketIOSession(sid='{self.sid}', open={self._open})"


class DashboardSocketController:
    """
    Socket.IO Controller for the live dashboard channel

    Events (server -> client), all under the 'message' event:
    - devices_list   once, right after connect
    - device_update / device_deleted / sensor_data afterwards
    """

    def __init__(self, socketio: SocketIO, broadcaster: DashboardBroadcaster,
                 namespace: str = '/'):
        """
        Initialize controller with dependencies

        Args:
            socketio: Flask-SocketIO server
            broadcaster: Fan-out the sessions are registered with
            namespace: Socket.IO namespace
        """
        self.socketio = socketio
        self.broadcaster = broadcaster
        self.namespace = namespace
        self._sessions: Dict[str, SocketIOSession] = {}
        self._register_handlers()

    def _register_handlers(self):
        """Register Socket.IO event handlers"""
        self.socketio.on_event('connect', self.handle_connect, namespace=self.namespace)
        self.socketio.on_event('disconnect', self.handle_disconnect, namespace=self.namespace)

    def handle_connect(self, auth=None):
        sid = request.sid
        session = SocketIOSession(self.socketio, sid, self.namespace)
        self._sessions[sid] = session

        logger.info(f"Dashboard client connected: {sid}")
        self.broadcaster.register_session(session)

    def handle_disconnect(self, *args):
        sid = request.sid
        session = self._sessions.pop(sid, None)

        if session is None:
            return

        session.close()
        self.broadcaster.unregister_session(session)
        logger.info(f"Dashboard client disconnected: {sid}")
