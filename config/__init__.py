from .mqtt_config import MqttConfig
from .database_config import DatabaseConfig
from .app_config import AppConfig
from .dashboard_config import DashboardConfig
from .retention_config import RetentionConfig

__all__ = ['MqttConfig', 'DatabaseConfig', 'AppConfig', 'DashboardConfig', 'RetentionConfig']
