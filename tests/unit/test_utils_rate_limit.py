from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient

from storefront.config import SESSION_COOKIE_NAME
from storefront.utils.rate_limit import optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.get("/limitedA", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_a():
        return {"ok": True}

    @app.get("/limitedB", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_b():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=2, seconds=60))
    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 429


def test_rate_limit_is_per_path_and_session(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=1, seconds=60))
    client.cookies.set(SESSION_COOKIE_NAME, "session-a")
    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 429
    assert client.get("/limitedB").status_code == 200

    client.cookies.set(SESSION_COOKIE_NAME, "session-b")
    assert client.get("/limitedA").status_code == 200


def test_rate_limit_disabled_without_flag(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    client = TestClient(_make_app(times=1, seconds=60))
    for _ in range(3):
        assert client.get("/limitedA").status_code == 200


def test_health_info_reports_disabled(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app()
    app.state.rate_limit_enabled = False
    info = TestClient(app).get("/rl_info").json()
    assert info["enabled"] is False
