import json
import logging
import threading

import simple_websocket

from src.devicemonitoring.infrastructure.messaging import DashboardBroadcaster, DashboardSession

logger = logging.getLogger(__name__)


class WebSocketSession(DashboardSession):
    """DashboardSession backed by one plain WebSocket; envelopes go out as JSON text frames"""

    def __init__(self, ws: simple_websocket.Server, peer: str = "unknown"):
        self.ws = ws
        self.peer = peer
        self._send_lock = threading.Lock()

    def is_open(self) -> bool:
        return self.ws.connected

    def send(self, message: dict):
        frame = json.dumps(message)
        with self._send_lock:
            self.ws.send(frame)

    def __repr__(self) -> str:
        return f"WebSocketSession(peer='{self.peer}', open={self.is_open()})"


class DashboardWebSocketMiddleware:
    """
    WSGI middleware serving the plain WebSocket dashboard channel

    A WebSocket upgrade on `path` is accepted with simple-websocket and
    registered with the broadcaster for as long as the client stays
    connected. Every other request goes to the wrapped application.
    Frames sent by the client are ignored.
    """

    def __init__(self, wsgi_app, broadcaster: DashboardBroadcaster, path: str):
        self.wsgi_app = wsgi_app
        self.broadcaster = broadcaster
        self.path = path

    def __call__(self, environ, start_response):
        if environ.get('PATH_INFO') != self.path or \
                environ.get('HTTP_UPGRADE', '').lower() != 'websocket':
            return self.wsgi_app(environ, start_response)

        peer = f"{environ.get('REMOTE_ADDR', '?')}:{environ.get('REMOTE_PORT', '?')}"

        try:
            ws = simple_websocket.Server.accept(environ)
        except (RuntimeError, simple_websocket.ConnectionError) as e:
            logger.warning(f"Rejected dashboard WebSocket from {peer}: {e}")
            start_response('400 Bad Request', [('Content-Type', 'text/plain')])
            return [b'WebSocket upgrade failed']

        self._serve(WebSocketSession(ws, peer))

        # The server must not write an HTTP response on the upgraded socket
        if ws.mode == 'gunicorn':
            raise StopIteration()
        if ws.mode == 'werkzeug':
            raise ConnectionError()
        return []

    def _serve(self, session: WebSocketSession):
        """Keep the session registered until the client goes away (blocking)"""
        logger.info(f"Dashboard WebSocket connected: {session.peer}")
        self.broadcaster.register_session(session)

        try:
            while True:
                data = session.ws.receive()
                logger.debug(f"Ignoring frame from dashboard {session.peer}: {str(data)[:100]!r}")
        except simple_websocket.ConnectionClosed as e:
            logger.info(f"Dashboard WebSocket disconnected: {session.peer} ({e.reason})")
        finally:
            self.broadcaster.unregister_session(session)
