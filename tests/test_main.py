from fastapi.testclient import TestClient

from potato_timer.main import app

client = TestClient(app)


def test_ping():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_protected_route_needs_token():
    r = client.get("/api/goals/my")
    assert r.status_code == 401
