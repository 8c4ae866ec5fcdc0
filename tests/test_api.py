import pytest
from fastapi.testclient import TestClient

from conftest import make_orchestrator, make_settings
from triage.api.main import create_app


@pytest.fixture
def client():
    app = create_app(orchestrator=make_orchestrator(), settings=make_settings())
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "phrasing": False}


def test_turn_returns_verdict(client):
    res = client.post("/api/calls/+27-555-0100/turns",
                      json={"text": "Someone is drowning, not moving, at Camps Bay"})
    assert res.status_code == 200
    body = res.json()
    assert body["should_dispatch"] is True
    assert body["escalation_level"] == "dispatched"
    assert body["category"] == "CRITICAL"
    assert "camps bay" in body["dispatch_summary"]


def test_session_lookup_and_reset(client):
    assert client.get("/api/calls/caller-1").status_code == 404

    client.post("/api/calls/caller-1/turns", json={"text": "help, shark attack at clifton"})
    res = client.get("/api/calls/caller-1")
    assert res.status_code == 200
    session = res.json()
    assert session["caller_id"] == "caller-1"
    assert session["critical_info"]["location"] == "clifton"
    assert session["escalation"]["level"] == "pending"

    assert client.delete("/api/calls/caller-1").status_code == 200
    assert client.delete("/api/calls/caller-1").status_code == 404
    assert client.get("/api/calls/caller-1").status_code == 404


def test_empty_turn_body(client):
    res = client.post("/api/calls/caller-2/turns", json={})
    assert res.status_code == 200
    assert res.json()["should_dispatch"] is False


def test_cleanup_endpoint(client):
    client.post("/api/calls/caller-3/turns", json={"text": "hello"})
    res = client.post("/api/calls/cleanup")
    assert res.status_code == 200
    assert res.json() == {"removed": 0}
