import logging

import pytest

from config.app_config import AppConfig
from src.shared.infrastructure.logging import setup_logging
from src.shared.infrastructure.logging.logger_config import CHATTY_LOGGERS


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    library_levels = {name: logging.getLogger(name).level for name in CHATTY_LOGGERS}

    yield

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name, library_level in library_levels.items():
        logging.getLogger(name).setLevel(library_level)


class TestSetupLogging:

    def test_writes_to_rotating_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "nested" / "service.log"

        setup_logging(logging.INFO, str(log_file))
        logging.getLogger("devicemonitoring").info("reading stored")

        assert "reading stored" in log_file.read_text()
        assert "Device Monitoring Service Starting" in log_file.read_text()

    def test_repeated_setup_does_not_stack_handlers(self, tmp_path, restore_logging):
        setup_logging(logging.INFO, str(tmp_path / "a.log"))
        root = setup_logging(logging.INFO, str(tmp_path / "b.log"))

        assert len(root.handlers) == 2

    def test_library_loggers_are_capped_in_debug(self, tmp_path, restore_logging, monkeypatch):
        monkeypatch.setattr(AppConfig, 'LIBRARY_LOG_LEVEL', 'WARNING')

        setup_logging(logging.DEBUG, str(tmp_path / "service.log"))

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("paho").level == logging.WARNING
        assert logging.getLogger("peewee").level == logging.WARNING

    def test_library_loggers_never_below_service_level(self, tmp_path, restore_logging):
        setup_logging(logging.ERROR, str(tmp_path / "service.log"))

        assert logging.getLogger("engineio").level == logging.ERROR
