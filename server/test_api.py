"""
Test suite for the HTTP endpoints and the WebSocket entry point.

Run with: pytest test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

import config
import main
from room import Room


class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "room", Room())
    with TestClient(main.app) as test_client:
        yield test_client


# =============================================================================
# Login
# =============================================================================

class TestLogin:

    def test_allowed_name_logs_in(self, client):
        response = client.post("/api/login", json={"username": "alice", "password": "roy"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["username"] == "alice"

    def test_password_case_insensitive(self, client):
        response = client.post("/api/login", json={"username": "alice", "password": "GaaL"})
        assert response.status_code == 200

    def test_unknown_name_rejected(self, client):
        response = client.post("/api/login", json={"username": "alice", "password": "mallory"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid player name"}

    def test_empty_username_rejected(self, client):
        response = client.post("/api/login", json={"username": "", "password": "roy"})
        assert response.status_code == 401

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/login", json={})
        assert response.status_code == 401


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready_reports_table(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        table = response.json()["checks"]["table"]
        assert table == {"status": "ok", "phase": "waiting", "seats": 0, "connected": 0}


# =============================================================================
# WebSocket
# =============================================================================

class TestWebSocket:

    def test_join_receives_roster(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "join", "username": "roy"})
            assert ws.receive_json() == {
                "type": "player_roster_updated",
                "players": [{"username": "roy", "connected": True}],
            }

    def test_malformed_frames_keep_socket_open(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json(["join"])
            ws.send_json({"type": "shuffle"})
            ws.send_json({"type": "join", "username": "lomba"})
            message = ws.receive_json()
            assert message["type"] == "player_roster_updated"
            assert message["players"] == [{"username": "lomba", "connected": True}]

    def test_binary_frame_ignored(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"\x00\x01")
            ws.send_json({"type": "join", "username": "gaal"})
            message = ws.receive_json()
            assert message["players"] == [{"username": "gaal", "connected": True}]


class TestDisconnect:

    @pytest.mark.asyncio
    async def test_lobby_disconnect_frees_seat_and_updates_roster(self, monkeypatch):
        room = Room()
        monkeypatch.setattr(main, "room", room)
        leaving, staying = MockWebSocket(), MockWebSocket()
        room.join("roy", leaving)
        room.join("lomba", staying)

        await main.handle_disconnect(leaving)

        assert [s.username for s in room.seats] == ["lomba"]
        assert staying.messages == [{
            "type": "player_roster_updated",
            "players": [{"username": "lomba", "connected": True}],
        }]

    @pytest.mark.asyncio
    async def test_unknown_socket_disconnect_is_noop(self, monkeypatch):
        room = Room()
        monkeypatch.setattr(main, "room", room)
        await main.handle_disconnect(MockWebSocket())
        assert room.seats == []


# =============================================================================
# Config reload
# =============================================================================

class TestConfigReload:

    def test_login_reads_reloaded_allow_list(self, client, monkeypatch):
        monkeypatch.setenv("ALLOWED_PLAYERS", "ada,grace")
        config.reload_config()
        try:
            ok = client.post("/api/login", json={"username": "alice", "password": "Ada"})
            old = client.post("/api/login", json={"username": "alice", "password": "roy"})
        finally:
            monkeypatch.delenv("ALLOWED_PLAYERS")
            config.reload_config()
        assert ok.status_code == 200
        assert old.status_code == 401
