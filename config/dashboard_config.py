import os

from dotenv import load_dotenv

load_dotenv()


class DashboardConfig:
    """
    Settings of the real-time dashboard channels

    WS_PATH serves a plain WebSocket sending every envelope as a JSON text
    frame. SOCKETIO_PATH serves the same envelopes over Socket.IO.
    """

    WS_PATH = os.getenv('DASHBOARD_WS_PATH', '/ws')
    SOCKETIO_PATH = os.getenv('DASHBOARD_SOCKETIO_PATH', '/socket.io')
    CORS_ORIGINS = os.getenv('DASHBOARD_CORS_ORIGINS', '*')

    # Every Socket.IO envelope is emitted under this single event name
    MESSAGE_EVENT = 'message'
