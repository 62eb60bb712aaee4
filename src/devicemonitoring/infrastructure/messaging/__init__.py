from .broker_connection import DeviceConnection, ConnectionErrorKind
from .broker_connection_manager import BrokerConnectionManager
from .dashboard_session import DashboardSession
from .dashboard_broadcaster import DashboardBroadcaster

__all__ = [
    'DeviceConnection',
    'ConnectionErrorKind',
    'BrokerConnectionManager',
    'DashboardSession',
    'DashboardBroadcaster'
]
