import json
import threading
import time

import pytest
import simple_websocket
from werkzeug.serving import make_server

from app import create_app


def _wait_for(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return condition()


@pytest.fixture
def server_url(container):
    app, _ = create_app(container)
    server = make_server("127.0.0.1", 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"ws://127.0.0.1:{server.server_port}"

    server.shutdown()
    thread.join(timeout=5)


@pytest.fixture
def connect(server_url, container, scheduler):
    """Open a plain WebSocket and return it with its devices_list already read"""
    clients = []

    def _connect():
        ws = simple_websocket.Client.connect(f"{server_url}/ws")
        clients.append(ws)
        expected = len(clients)
        assert _wait_for(lambda: container.broadcaster.session_count() == expected)

        # The snapshot task is queued right after the session is registered
        frame = None
        deadline = time.monotonic() + 5
        while frame is None and time.monotonic() < deadline:
            scheduler.advance(0)
            frame = ws.receive(timeout=0.1)
        assert frame is not None
        return ws, json.loads(frame)

    yield _connect

    for ws in clients:
        if ws.connected:
            ws.close()


class TestPlainWebSocket:

    def test_connect_receives_snapshot_as_json_text(self, connect, make_device):
        make_device("D1")

        _, snapshot = connect()

        assert snapshot['type'] == "devices_list"
        assert [d['deviceId'] for d in snapshot['data']] == ["D1"]

    def test_live_updates_reach_every_client(self, connect, container, make_device):
        first, _ = connect()
        second, _ = connect()

        make_device("D1")
        container.ingestion_service.ingest("D1", 3)

        for ws in (first, second):
            frames = [json.loads(ws.receive(timeout=5)) for _ in range(2)]
            assert [f['type'] for f in frames] == ["sensor_data", "device_update"]
            assert frames[0]['deviceId'] == "D1"
            assert frames[0]['data']['value'] == 3

    def test_client_frames_are_ignored(self, connect, container):
        ws, _ = connect()

        ws.send("hello")
        ws.send(b"\x00\x01")

        assert _wait_for(lambda: container.broadcaster.session_count() == 1)
        assert ws.connected

    def test_close_unregisters(self, connect, container):
        ws, _ = connect()

        ws.close()

        assert _wait_for(lambda: container.broadcaster.session_count() == 0)

    def test_plain_http_on_the_path_is_not_upgraded(self, container):
        app, _ = create_app(container)

        response = app.test_client().get('/ws')

        assert response.status_code == 404
        assert container.broadcaster.session_count() == 0
