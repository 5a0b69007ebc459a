import pytest
from fastapi.testclient import TestClient

from voice_assessment import main

from fakes import FakeAnalyzer, FakeSynthesizer, FakeTranscriber, fast_settings


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "settings", fast_settings())
    monkeypatch.setattr(main, "GroqTranscriber", lambda settings: FakeTranscriber())
    monkeypatch.setattr(main, "SentimentClient", lambda settings: FakeAnalyzer())
    monkeypatch.setattr(main, "GoogleTTSClient", lambda settings: FakeSynthesizer())
    with TestClient(main.app) as test_client:
        yield test_client


def receive_until(websocket, message_type, limit=20):
    received = []
    for _ in range(limit):
        message = websocket.receive_json()
        received.append(message)
        if message["type"] == message_type:
            return received
    raise AssertionError(f"no {message_type} in {[m['type'] for m in received]}")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["version"] == main.VERSION
    assert "en" in body["languages"]
    assert body["active_sessions"] == 0


def test_session_ready_and_ping(client):
    with client.websocket_connect("/ws/assessment") as websocket:
        ready = websocket.receive_json()
        assert ready["type"] == "session_ready"
        assert ready["data"]["session_id"]

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong", "data": {}}

        websocket.send_json({"type": "disconnect"})


def test_denied_microphone_ends_session(client):
    with client.websocket_connect("/ws/assessment?language=es") as websocket:
        websocket.receive_json()
        websocket.send_json({"type": "start"})

        messages = receive_until(websocket, "agent_audio")
        greeting = next(m for m in messages if m["type"] == "transcript_message")
        assert greeting["data"]["role"] == "agent"
        assert greeting["data"]["content"].startswith("Hola")
        assert {"type": "state_change", "data": {"from": "idle", "to": "speaking"}} in messages

        websocket.send_json({"type": "playback_complete"})
        receive_until(websocket, "capture_start")

        websocket.send_json({"type": "capture_error", "data": {"message": "Permission denied"}})
        messages = receive_until(websocket, "error")
        assert messages[-1]["data"] == {
            "code": "CAPTURE_ERROR",
            "message": "Permission denied",
            "recoverable": False,
        }
        assert {"type": "state_change", "data": {"from": "listening", "to": "idle"}} in messages

        websocket.send_json({"type": "disconnect"})
