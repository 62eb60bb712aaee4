from datetime import datetime, timedelta

import pytest
from peewee import IntegrityError

from src.devicemonitoring.domain.model.aggregates import BrokerProtocol, DeviceStatus, Reading


def _reading(device_id, value, timestamp):
    return Reading.record(device_id, value, str(value), timestamp)


class TestDeviceRepository:

    def test_create_and_find(self, device_repository, make_device):
        created = make_device("D1", protocol=BrokerProtocol.WSS, username="user", password="pw")

        found = device_repository.find_by_device_id("D1")

        assert found.id == created.id
        assert found.protocol is BrokerProtocol.WSS
        assert found.username == "user"
        assert found.password == "pw"
        assert found.status is DeviceStatus.OFFLINE
        assert device_repository.find_by_id(created.id).device_id == "D1"

    def test_device_id_is_unique(self, make_device):
        make_device("D1")

        with pytest.raises(IntegrityError):
            make_device("D1")

    def test_missing_lookups(self, device_repository):
        assert device_repository.find_by_id(1234) is None
        assert device_repository.find_by_device_id("ghost") is None

    def test_find_active(self, device_repository, make_device):
        make_device("D1")
        make_device("D2", is_active=False)

        assert [d.device_id for d in device_repository.find_active()] == ["D1"]
        assert device_repository.count() == 2

    def test_update_status(self, device_repository, make_device):
        device = make_device("D1")
        now = datetime(2025, 5, 5, 10, 0, 0)

        updated = device_repository.update_status(device.id, DeviceStatus.WAITING, now)

        assert updated.status is DeviceStatus.WAITING
        assert updated.last_seen == now

    def test_update_unknown_field(self, device_repository, make_device):
        device = make_device("D1")

        with pytest.raises(ValueError):
            device_repository.update(device.id, {'created_at': datetime.now()})

    def test_update_missing_device(self, device_repository):
        assert device_repository.update(999, {'name': "x"}) is None

    def test_count_by_status(self, device_repository, make_device):
        make_device("D1", status=DeviceStatus.ONLINE)
        make_device("D2", status=DeviceStatus.ONLINE)
        make_device("D3", status=DeviceStatus.WAITING)

        assert device_repository.count_by_status() == {'online': 2, 'waiting': 1, 'offline': 0}

    def test_delete(self, device_repository, make_device):
        device = make_device("D1")

        assert device_repository.delete(device.id) is True
        assert device_repository.delete(device.id) is False


class TestReadingRepository:

    def test_find_by_device_is_newest_first(self, reading_repository):
        base = datetime(2025, 1, 1)
        for minute in range(5):
            reading_repository.save(_reading("D1", minute, base + timedelta(minutes=minute)))
        reading_repository.save(_reading("D2", 99, base))

        readings = reading_repository.find_by_device("D1", limit=3)

        assert [r.value for r in readings] == [4, 3, 2]
        assert reading_repository.find_latest("D1").value == 4
        assert reading_repository.find_latest("D3") is None

    def test_filtered_paging(self, reading_repository):
        base = datetime(2025, 1, 1)
        for day in range(10):
            reading_repository.save(_reading("D1", day, base + timedelta(days=day)))

        start = base + timedelta(days=2)
        end = base + timedelta(days=6)

        assert reading_repository.count_filtered("D1", start, end) == 5
        page = reading_repository.find_filtered("D1", start, end, offset=2, limit=2)
        assert [r.value for r in page] == [4, 3]

    def test_delete_older_than(self, reading_repository):
        now = datetime.now()
        reading_repository.save(_reading("D1", 1, now - timedelta(days=5)))
        reading_repository.save(_reading("D1", 2, now - timedelta(days=3)))
        reading_repository.save(_reading("D1", 3, now))

        deleted = reading_repository.delete_older_than(now - timedelta(days=2))

        assert deleted == 2
        assert [r.value for r in reading_repository.find_by_device("D1")] == [3]

    def test_delete_all(self, reading_repository):
        reading_repository.save(_reading("D1", 1, datetime.now()))
        reading_repository.save(_reading("D2", 2, datetime.now()))

        assert reading_repository.delete_all() == 2
        assert reading_repository.count() == 0
