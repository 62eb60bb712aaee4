import os
import tempfile

# Must be set before config/ is imported
_TEST_DIR = tempfile.mkdtemp(prefix="device-monitoring-tests-")
os.environ["DATABASE_PATH"] = os.path.join(_TEST_DIR, "device_monitoring.db")
os.environ["LOG_FILE"] = os.path.join(_TEST_DIR, "device_monitoring.log")
os.environ["RETENTION_ENABLED"] = "false"

import pytest  # noqa: E402

from src.devicemonitoring.domain.model.aggregates import Device, BrokerProtocol  # noqa: E402
from src.devicemonitoring.infrastructure.persistence import (  # noqa: E402
    DeviceModel,
    ReadingModel,
    DeviceRepository,
    ReadingRepository
)
from src.shared.infrastructure.database import database  # noqa: E402
from tests.fakes import ManualScheduler, FakeClientFactory, FakeSession  # noqa: E402


@pytest.fixture(autouse=True)
def clean_tables():
    database.create_tables([DeviceModel, ReadingModel], safe=True)
    ReadingModel.delete().execute()
    DeviceModel.delete().execute()
    yield


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def client_factory():
    return FakeClientFactory()


@pytest.fixture
def device_repository():
    return DeviceRepository()


@pytest.fixture
def reading_repository():
    return ReadingRepository()


@pytest.fixture
def container(client_factory, scheduler):
    from src.container import Container

    container = Container(client_factory=client_factory, scheduler=scheduler)
    yield container
    container.connection_manager.stop()


@pytest.fixture
def session(container, scheduler):
    """Dashboard session registered after its initial snapshot was delivered"""
    session = FakeSession()
    container.broadcaster.register_session(session)
    scheduler.advance(0)
    session.messages.clear()
    return session


@pytest.fixture
def make_device(device_repository):
    def _make(device_id="D1", protocol=BrokerProtocol.MQTT, is_active=True,
              broker="broker.local:1883", topic=None, **kwargs):
        return device_repository.create(Device(
            device_id=device_id,
            name=kwargs.pop('name', f"Device {device_id}"),
            mqtt_broker=broker,
            mqtt_topic=topic or f"t/{device_id}",
            protocol=protocol,
            is_active=is_active,
            **kwargs
        ))

    return _make
