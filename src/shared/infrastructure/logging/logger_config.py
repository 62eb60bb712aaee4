import os
import logging
import logging.handlers
from typing import Optional

from config.app_config import AppConfig

# Third-party loggers that log per packet or per SQL statement at DEBUG
CHATTY_LOGGERS = ('paho', 'peewee', 'engineio', 'socketio')


def setup_logging(level: Optional[int] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for the device monitoring service

    Sets up:
    - Console handler (stdout)
    - Rotating file handler (AppConfig.LOG_MAX_BYTES, AppConfig.LOG_BACKUP_COUNT)
    - CHATTY_LOGGERS capped at AppConfig.LIBRARY_LOG_LEVEL, never below
      the service level

    Calling it again replaces the handlers instead of stacking them.

    Args:
        level: Overrides AppConfig.LOG_LEVEL
        log_file: Overrides AppConfig.LOG_FILE

    Returns:
        The configured root logger
    """
    level = level if level is not None else AppConfig.get_log_level()
    log_file = log_file or AppConfig.LOG_FILE

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        AppConfig.LOG_FORMAT,
        datefmt=AppConfig.LOG_DATE_FORMAT
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=AppConfig.LOG_MAX_BYTES,
            backupCount=AppConfig.LOG_BACKUP_COUNT
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError as e:
        root_logger.warning(f"Could not create file handler for {log_file}: {e}")

    library_level = max(level, AppConfig.get_library_log_level())
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    root_logger.info("=" * 80)
    root_logger.info("Device Monitoring Service Starting")
    root_logger.info(f"Log Level: {logging.getLevelName(level)}")
    root_logger.info(f"Log File: {log_file}")
    root_logger.info(f"Library Log Level: {logging.getLevelName(library_level)} ({', '.join(CHATTY_LOGGERS)})")
    root_logger.info("=" * 80)

    return root_logger
