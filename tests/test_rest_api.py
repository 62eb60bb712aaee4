from datetime import datetime, timedelta

import pytest

from app import create_app
from src.devicemonitoring.domain.model.aggregates import DeviceStatus, Reading


@pytest.fixture
def client(container):
    app, _ = create_app(container)
    app.config['TESTING'] = True
    return app.test_client()


def _register(client, device_id="D1", **overrides):
    payload = {
        'deviceId': device_id,
        'name': f"Breathalyzer {device_id}",
        'mqttBroker': "broker.local:1883",
        'mqttTopic': f"sensors/{device_id}",
    }
    payload.update(overrides)
    return client.post('/api/devices', json=payload)


class TestDeviceEndpoints:

    def test_register_and_list(self, client):
        response = _register(client, password="secret")

        assert response.status_code == 201
        body = response.get_json()
        assert body['deviceId'] == "D1"
        assert body['status'] == "online"
        assert body['protocol'] == "MQTT"
        assert 'password' not in body

        listed = client.get('/api/devices').get_json()
        assert [d['deviceId'] for d in listed] == ["D1"]
        assert 'password' not in listed[0]

    def test_register_requires_json(self, client):
        response = client.post('/api/devices', data="deviceId=D1")

        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_register_missing_fields(self, client):
        response = client.post('/api/devices', json={'deviceId': "D1"})

        assert response.status_code == 400
        assert "Missing required fields" in response.get_json()['error']

    def test_register_duplicate(self, client):
        _register(client)

        response = _register(client)

        assert response.status_code == 400
        assert "already exists" in response.get_json()['error']

    def test_get_one(self, client):
        created = _register(client).get_json()

        assert client.get(f"/api/devices/{created['id']}").get_json()['deviceId'] == "D1"
        assert client.get('/api/devices/999').status_code == 404

    def test_update(self, client, container):
        created = _register(client).get_json()
        container.device_repository.update_status(created['id'], DeviceStatus.OFFLINE, None)

        response = client.put(f"/api/devices/{created['id']}", json={'name': "Renamed"})

        assert response.status_code == 200
        body = response.get_json()
        assert body['name'] == "Renamed"
        assert body['status'] == "online"

    def test_update_unknown(self, client):
        response = client.put('/api/devices/999', json={'name': "x"})

        assert response.status_code == 404
        assert response.get_json() == {'error': "Device not found: 999"}

    def test_update_invalid_protocol(self, client):
        created = _register(client).get_json()

        response = client.put(f"/api/devices/{created['id']}", json={'protocol': "smoke"})

        assert response.status_code == 400

    def test_non_boolean_active_flag(self, client):
        assert _register(client, isActive="false").status_code == 400

        created = _register(client).get_json()
        response = client.put(f"/api/devices/{created['id']}", json={'isActive': "false"})

        assert response.status_code == 400
        assert "isActive" in response.get_json()['error']
        assert client.get(f"/api/devices/{created['id']}").get_json()['isActive'] is True

    def test_delete(self, client, container, scheduler):
        created = _register(client).get_json()

        response = client.delete(f"/api/devices/{created['id']}")

        assert response.status_code == 200
        assert response.get_json() == {
            'message': "Device deleted",
            'id': created['id'],
            'deviceId': "D1"
        }

        scheduler.advance(0)
        assert container.device_repository.count() == 0
        assert client.delete(f"/api/devices/{created['id']}").status_code == 404


class TestReadingEndpoints:

    def test_push_reading(self, client, make_device):
        make_device("D1")

        response = client.post('/api/devices/D1/data', json={'value': 0.42})

        assert response.status_code == 201
        body = response.get_json()
        assert body['message'] == "Data received successfully"
        assert body['data']['deviceId'] == "D1"
        assert body['data']['value'] == 0.42

    def test_push_accepts_alcohol_level_and_timestamp(self, client, make_device):
        make_device("D1")

        response = client.post('/api/devices/D1/data', json={
            'alcohol_level': 7,
            'timestamp': "2025-01-15T10:30:00"
        })

        assert response.status_code == 201
        assert response.get_json()['data']['timestamp'] == "2025-01-15T10:30:00"

    @pytest.mark.parametrize("payload", [
        {},
        {'value': "abc"},
        {'value': True},
        {'value': 1, 'timestamp': "yesterday"},
    ])
    def test_push_invalid(self, client, make_device, payload):
        make_device("D1")

        response = client.post('/api/devices/D1/data', json=payload)

        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_push_unknown_device(self, client):
        response = client.post('/api/devices/ghost/data', json={'value': 1})

        assert response.status_code == 404

    def test_recent_and_latest(self, client, make_device, reading_repository):
        make_device("D1")
        base = datetime(2025, 1, 1)
        for minute in range(3):
            reading_repository.save(
                Reading.record("D1", minute, str(minute), base + timedelta(minutes=minute))
            )

        recent = client.get('/api/devices/D1/data?limit=2').get_json()
        assert [r['value'] for r in recent] == [2, 1]

        latest = client.get('/api/devices/D1/data/latest').get_json()
        assert latest['value'] == 2
        assert latest['rawData'] == "2"

    def test_latest_without_data(self, client, make_device):
        make_device("D1")

        response = client.get('/api/devices/D1/data/latest')

        assert response.status_code == 404
        assert response.get_json() == {'error': "No data found"}

    def test_invalid_limit(self, client):
        assert client.get('/api/devices/D1/data?limit=abc').status_code == 400
        assert client.get('/api/devices/D1/data?limit=0').status_code == 400

    def test_history_paging(self, client, make_device, reading_repository):
        make_device("D1")
        base = datetime(2025, 1, 1)
        for day in range(5):
            reading_repository.save(Reading.record("D1", day, str(day), base + timedelta(days=day)))

        response = client.get(
            '/api/history/devices/D1?page=2&limit=2'
            '&startDate=2025-01-01T00:00:00&endDate=2025-01-04T00:00:00'
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body['pagination'] == {'page': 2, 'limit': 2, 'total': 4, 'pages': 2}
        assert [r['value'] for r in body['data']] == [1, 0]
        assert body['device']['deviceId'] == "D1"

    def test_history_unknown_device(self, client):
        assert client.get('/api/history/devices/ghost').status_code == 404

    def test_history_bad_dates(self, client, make_device):
        make_device("D1")

        assert client.get('/api/history/devices/D1?startDate=nope').status_code == 400
        assert client.get(
            '/api/history/devices/D1?startDate=2025-02-01&endDate=2025-01-01'
        ).status_code == 400

    def test_dashboard_stats(self, client, make_device, reading_repository):
        make_device("D1", status=DeviceStatus.ONLINE)
        make_device("D2", status=DeviceStatus.WAITING)
        make_device("D3")
        reading_repository.save(Reading.record("D1", 1, "1"))

        assert client.get('/api/dashboard/stats').get_json() == {
            'totalDevices': 3,
            'onlineDevices': 1,
            'waitingDevices': 1,
            'offlineDevices': 1,
            'totalMessages': 1
        }


class TestCleanupEndpoints:

    def test_status(self, client):
        body = client.get('/api/cleanup/status').get_json()

        assert body['isRunning'] is False
        assert body['olderThanDays'] == 2
        assert body['intervalDays'] == 2
        assert body['lastCleanup'] is None
        assert body['nextCleanup'] is None

    def test_run_with_override(self, client, reading_repository):
        now = datetime.now()
        reading_repository.save(Reading.record("D1", 1, "1", now - timedelta(days=10)))
        reading_repository.save(Reading.record("D1", 2, "2", now - timedelta(days=3)))

        response = client.post('/api/cleanup/run', json={'olderThanDays': 7})

        assert response.status_code == 200
        assert response.get_json() == {'message': "Cleanup completed", 'deletedCount': 1}

    def test_run_with_default_window(self, client, reading_repository):
        reading_repository.save(Reading.record("D1", 1, "1", datetime.now() - timedelta(days=3)))

        response = client.post('/api/cleanup/run')

        assert response.get_json()['deletedCount'] == 1

    @pytest.mark.parametrize("value", ["7", 1.5, -1])
    def test_run_rejects_bad_window(self, client, value):
        response = client.post('/api/cleanup/run', json={'olderThanDays': value})

        assert response.status_code == 400

    def test_clear_all(self, client, reading_repository):
        reading_repository.save(Reading.record("D1", 1, "1"))
        reading_repository.save(Reading.record("D2", 2, "2"))

        response = client.post('/api/cleanup/clear-all')

        assert response.get_json() == {'message': "All readings deleted", 'deletedCount': 2}
        assert reading_repository.count() == 0


class TestHealth:

    def test_healthy_without_devices(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == "healthy"

    def test_degraded_when_no_broker_is_connected(self, client, container, make_device):
        container.connection_manager.add_device(make_device("D1"))

        response = client.get('/health')

        assert response.status_code == 503
        assert response.get_json()['status'] == "degraded"

    def test_healthy_once_connected(self, client, container, make_device, client_factory, scheduler):
        container.connection_manager.add_device(make_device("D1"))
        scheduler.advance(0)
        client_factory.latest.accept()

        assert client.get('/health').status_code == 200

    def test_info(self, client, make_device):
        make_device("D1")

        body = client.get('/info').get_json()

        assert body['name'] == "Device Monitoring Service"
        assert body['database']['devices_count'] == 1
        assert body['workers']['retention_worker']['running'] is False
