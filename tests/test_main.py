"""Tests for the FastAPI debugging gateway."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ho_sdk import main
from ho_sdk.main import app, load_config_from_env
from ho_sdk.signature import generate_signature

from .conftest import APP_SECRET, IV, FakeResponse


ENV = {
    "HO_APP_ID": "id1",
    "HO_APP_SECRET": APP_SECRET,
    "HO_IV": IV,
    "HO_BASE_URL": "https://x",
    "HO_CONTENT": "/p",
}


@pytest.fixture
def http():
    with TestClient(app) as test_client:
        yield test_client
    app.state.client = None


@pytest.fixture
def configured(monkeypatch):
    for name, value in ENV.items():
        monkeypatch.setenv(name, value)


@pytest.fixture
def unconfigured(monkeypatch):
    for name in ENV:
        monkeypatch.delenv(name, raising=False)


def test_load_config_from_env(configured):
    config = load_config_from_env()
    assert config.app_id == "id1"
    assert config.content == "/p"


def test_load_config_missing_variable(configured, monkeypatch):
    monkeypatch.delenv("HO_IV")
    assert load_config_from_env() is None


def test_root_reports_configuration(configured, http):
    response = http.get("/")
    assert response.status_code == 200
    assert response.json()["configured"] is True


def test_unconfigured_gateway_returns_503(unconfigured, http):
    assert http.get("/").json()["configured"] is False
    response = http.post("/api/decrypt", json={"data": "00"})
    assert response.status_code == 503


def test_invalid_env_config_leaves_gateway_unconfigured(configured, monkeypatch):
    monkeypatch.setenv("HO_IV", "too short")
    with TestClient(app) as test_client:
        assert test_client.get("/").json()["configured"] is False
    app.state.client = None


def test_msec_returns_millis(http):
    timestamp = http.get("/msec").json()["timestamp"]
    assert isinstance(timestamp, int)
    assert timestamp > 1_600_000_000_000


def test_generate_signature_is_reproducible(configured, http):
    payload = {
        "uri": "/v1/ping",
        "body": {"b": 2, "a": 1},
        "nonce": "fixed-nonce",
        "timestamp": 1700000000000,
    }
    first = http.post("/api/generate-signature", json=payload).json()
    second = http.post("/api/generate-signature", json=payload).json()

    assert first == second
    assert first["body_string"] == '{"a":1,"b":2}'
    assert first["signature"] == generate_signature(
        "id1", "fixed-nonce", 1700000000000, "/v1/ping", '{"a":1,"b":2}', APP_SECRET
    )
    assert first["headers"]["HO-TIMESTAMP"] == "1700000000000"


def test_sign_string_preview_hides_secret(configured, http):
    response = http.get(
        "/api/sign-string",
        params={"uri": "/v1/ping", "nonce": "n", "timestamp": 5},
    )
    preview = response.json()["sign_string_preview"]
    assert preview == "id1n5/v1/ping...secret..."
    assert APP_SECRET not in preview


def test_decrypt_route(configured, http, encrypt):
    response = http.post("/api/decrypt", json={"data": encrypt("pong")})
    assert response.status_code == 200
    assert response.json() == {"plaintext": "pong"}


def test_decrypt_route_rejects_bad_hex(configured, http):
    response = http.post("/api/decrypt", json={"data": "zz"})
    assert response.status_code == 400


def test_send_route_proxies_call(configured, http, fake_http, encrypt):
    recorder = fake_http(FakeResponse(payload={"data": encrypt("pong")}))

    response = http.post("/api/send", json={"method": "GET", "uri": "/v1/ping"})

    assert response.status_code == 200
    assert response.json() == {"data": "pong"}
    assert recorder.last_call["url"] == "https://x/p/v1/ping"


def test_send_route_maps_upstream_failure(configured, http, fake_http):
    fake_http(FakeResponse(status_code=403, payload={}))

    response = http.post("/api/send", json={"uri": "/v1/ping"})

    assert response.status_code == main.UPSTREAM_STATUS[main.ApiClientErrorKind.TRANSPORT]
    assert "403" in response.json()["detail"]


def test_decrypt_route_hides_failure_kind(configured, http, cipher):
    corrupted = bytearray(cipher.encrypt(b"0123456789abcdef"))
    corrupted[15] ^= 0x01
    bad_padding = http.post("/api/decrypt", json={"data": bytes(corrupted).hex()})
    bad_utf8 = http.post("/api/decrypt", json={"data": cipher.encrypt(b"\xc3\x28").hex()})

    assert bad_padding.status_code == bad_utf8.status_code == 400
    assert bad_padding.json() == bad_utf8.json() == {"detail": main.DECRYPT_FAILED_DETAIL}


def test_cors_allows_only_local_origins(http):
    local = http.get("/", headers={"Origin": "http://localhost:3000"})
    remote = http.get("/", headers={"Origin": "https://evil.example"})

    assert local.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert "access-control-allow-credentials" not in local.headers
    assert "access-control-allow-origin" not in remote.headers
