"""
tests/test_api.py

REST and WebSocket surface over FastAPI's TestClient. Runs execute in the
background against the fake site.
"""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient
from fastapi import WebSocketDisconnect

from conftest import BASE_URL, FakeProbeSet

from cachescout.api.main import create_app


@pytest.fixture
def created_probes() -> list[FakeProbeSet]:
    return []


@pytest.fixture
def client(created_probes):
    def factory() -> FakeProbeSet:
        probes = FakeProbeSet()
        created_probes.append(probes)
        return probes

    with TestClient(create_app(probe_factory=factory)) as test_client:
        yield test_client


def _start(client: TestClient, **body) -> dict:
    response = client.post("/api/runs", json={"url": BASE_URL, **body})
    assert response.status_code == 201, response.text
    return response.json()


def _wait_until_done(client: TestClient, run_id: str) -> dict:
    for _ in range(250):
        status = client.get(f"/api/runs/{run_id}").json()
        if not status["running"]:
            return status
        time.sleep(0.02)
    raise AssertionError(f"Run {run_id} did not finish")


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


class TestRuns:
    def test_start_and_complete(self, client: TestClient, created_probes) -> None:
        started = _start(client, max_pages=5)

        assert started["base_url"] == BASE_URL
        assert started["running"] is True

        status = _wait_until_done(client, started["run_id"])

        assert status["phase"] == "stopped"
        assert status["pages_analyzed"] == 4
        assert status["error"] is None
        assert created_probes[0].closed

    def test_summary(self, client: TestClient) -> None:
        run_id = _start(client)["run_id"]
        _wait_until_done(client, run_id)

        summary = client.get(f"/api/runs/{run_id}/summary").json()

        assert summary["pages_analyzed"] == 4
        assert summary["cache_working"] is True
        assert summary["experiment_results"]["passed"] >= 0

    def test_memory(self, client: TestClient) -> None:
        run_id = _start(client, max_depth=0, experiment_mode=False)["run_id"]
        _wait_until_done(client, run_id)

        memory = client.get(f"/api/runs/{run_id}/memory").json()

        assert memory["analyzed"] == [BASE_URL]
        assert memory["experiments"] == []
        assert memory["snapshots"] == 0
        assert memory["recon"]["dns"]["addresses"] == ["203.0.113.10"]

    def test_events(self, client: TestClient) -> None:
        run_id = _start(client, max_depth=0)["run_id"]
        _wait_until_done(client, run_id)

        events = client.get(f"/api/runs/{run_id}/events", params={"limit": 3}).json()

        assert len(events) == 3
        assert events[-1]["event"] == "run_completed"
        assert all(e["run_id"] == run_id for e in events)

    def test_stop_running_monitor(self, client: TestClient) -> None:
        run_id = _start(client, max_depth=0, monitor_mode=True, monitor_interval_ms=60_000)["run_id"]

        stopped = client.post(f"/api/runs/{run_id}/stop")

        assert stopped.status_code == 200
        assert stopped.json()["stop_requested"] is True
        assert _wait_until_done(client, run_id)["phase"] == "stopped"

    def test_stop_finished_run(self, client: TestClient) -> None:
        run_id = _start(client, max_depth=0)["run_id"]
        _wait_until_done(client, run_id)

        response = client.post(f"/api/runs/{run_id}/stop")

        assert response.status_code == 400
        assert response.json()["detail"] == "Run is not running"

    def test_invalid_config(self, client: TestClient) -> None:
        response = client.post("/api/runs", json={"url": "ftp://example.com"})

        assert response.status_code == 400
        assert "Invalid configuration" in response.json()["detail"]

    def test_invalid_limit(self, client: TestClient) -> None:
        response = client.post("/api/runs", json={"url": BASE_URL, "max_pages": 0})
        assert response.status_code == 400

    @pytest.mark.parametrize("suffix", ["", "/summary", "/memory", "/events"])
    def test_unknown_run(self, client: TestClient, suffix: str) -> None:
        response = client.get(f"/api/runs/missing{suffix}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Run not found"


class TestInfo:
    def test_root(self, client: TestClient) -> None:
        body = client.get("/").json()
        assert body["name"] == "CacheScout"
        assert "monitoring" in body["phases"]

    def test_health(self, client: TestClient) -> None:
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["active_runs"] == 0


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class TestWebSocket:
    def test_replays_history(self, client: TestClient) -> None:
        run_id = _start(client, max_depth=0, experiment_mode=False)["run_id"]
        _wait_until_done(client, run_id)

        received: list[str] = []
        with client.websocket_connect(f"/ws/{run_id}") as ws:
            assert ws.receive_json()["event"] == "connected"
            while not received or received[-1] != "run_completed":
                received.append(ws.receive_json()["event"])

        assert received[0] == "run_started"
        assert "page_analyzed" in received

    def test_ping(self, client: TestClient) -> None:
        run_id = _start(client, max_depth=0, experiment_mode=False)["run_id"]
        _wait_until_done(client, run_id)

        with client.websocket_connect(f"/ws/{run_id}") as ws:
            message = ws.receive_json()
            while message.get("event") != "run_completed":
                message = ws.receive_json()
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_unknown_run_closed(self, client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws/missing") as ws:
                ws.receive_json()

        assert exc_info.value.code == 4404
