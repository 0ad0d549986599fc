"""
Tests for the health check and the envelope around unknown routes.
"""

from datetime import datetime
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from app.main import create_app
from app.schemas import HealthEnvelope

def test_health_is_healthy(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "200"
    assert body["message"] == "OK"
    assert body["data"]["status"] == "healthy"
    # Parses as 'YYYY-MM-DD HH:MM:SS'
    datetime.strptime(body["data"]["time"], "%Y-%m-%d %H:%M:%S")

def test_health_ignores_storage_state(settings, tmp_path):
    """Storage that can't be opened doesn't affect the health check."""
    broken = create_engine(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'users.db'}")
    app = create_app(settings, engine=broken)
    with TestClient(app) as c:
        assert c.get("/health").status_code == 200

        resp = c.get("/users")
        assert resp.status_code == 500
        assert resp.json() == {"data": None, "status": "500", "message": "Storage unavailable"}
    broken.dispose()

def test_unknown_route_is_enveloped(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.json() == {"data": None, "status": "404", "message": "Not Found"}

def test_unhandled_error_is_enveloped(settings, engine):
    app = create_app(settings, engine=engine)

    @app.get("/explode")
    def explode():
        raise RuntimeError("secret internals")

    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.get("/explode")
    assert resp.status_code == 500
    assert resp.json() == {"data": None, "status": "500", "message": "Internal server error"}

def test_invalid_response_is_enveloped(settings, engine):
    app = create_app(settings, engine=engine)

    @app.get("/malformed", response_model=HealthEnvelope)
    def malformed():
        return {"data": {"status": "healthy"}, "status": "200", "message": "OK"}

    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.get("/malformed")
    assert resp.status_code == 500
    assert resp.json()["message"] == "Internal server error"
