import logging
import os

from dotenv import load_dotenv

load_dotenv()

_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}


class AppConfig:
    """
    Main application configuration

    Consolidates the HTTP server and logging settings of the service
    """

    # Flask configuration
    FLASK_HOST = os.getenv('FLASK_HOST', '0.0.0.0')
    FLASK_PORT = int(os.getenv('FLASK_PORT', 5000))
    FLASK_DEBUG = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    # Logging configuration
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', './logs/device_monitoring.log')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
    LOG_MAX_BYTES = int(os.getenv('LOG_MAX_BYTES', 10 * 1024 * 1024))  # 10MB
    LOG_BACKUP_COUNT = int(os.getenv('LOG_BACKUP_COUNT', 5))

    # paho, peewee, engineio and socketio
    LIBRARY_LOG_LEVEL = os.getenv('LIBRARY_LOG_LEVEL', 'INFO')

    @classmethod
    def get_log_level(cls):
        """Convert string log level to logging constant"""
        return _LEVELS.get(cls.LOG_LEVEL.upper(), logging.INFO)

    @classmethod
    def get_library_log_level(cls):
        return _LEVELS.get(cls.LIBRARY_LOG_LEVEL.upper(), logging.INFO)
