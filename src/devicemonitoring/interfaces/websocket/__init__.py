from .dashboard_socket import SocketIOSession, DashboardSocketController
from .plain_socket import WebSocketSession, DashboardWebSocketMiddleware

__all__ = [
    'SocketIOSession',
    'DashboardSocketController',
    'WebSocketSession',
    'DashboardWebSocketMiddleware'
]
