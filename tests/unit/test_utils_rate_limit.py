import pytest
from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient

from boutique.utils.rate_limit import client_key, optional_rate_limit, rate_limit_health_info


def _make_app():
    app = FastAPI()

    @app.post("/limited", dependencies=[Depends(optional_rate_limit(times=2, seconds=60))])
    def limited():
        return {"ok": True}

    @app.get("/info")
    def info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_local_fallback_returns_429(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app())
    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 200
    r = client.post("/limited")
    assert r.status_code == 429
    assert "Trop de requêtes" in r.json()["detail"]


def test_limits_are_per_token(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app())
    for _ in range(2):
        client.post("/limited", headers={"Authorization": "Bearer a"})
    assert client.post("/limited", headers={"Authorization": "Bearer a"}).status_code == 429
    assert client.post("/limited", headers={"Authorization": "Bearer b"}).status_code == 200


def test_disabled_limiter_lets_requests_through(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app()
    app.state.rate_limit_enabled = False
    client = TestClient(app)
    for _ in range(5):
        assert client.post("/limited").status_code == 200


def test_client_key_hashes_token():
    req = Request({
        "type": "http", "method": "POST", "path": "/api/v1/checkout",
        "headers": [(b"authorization", b"Bearer secret-token")],
        "client": ("1.2.3.4", 1234),
    })
    key = client_key(req)
    assert key.startswith("user:")
    assert "secret-token" not in key
    assert key.endswith(":/api/v1/checkout")


def test_health_info(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    app = _make_app()
    app.state.rate_limit_enabled = True
    data = TestClient(app).get("/info").json()
    assert data["enabled"] is True
    assert data["backend"] in ("memory", "redis")
