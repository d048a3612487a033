"""Shared fixtures: client config and a recording stand-in for the HTTP session."""

from __future__ import annotations

import json

import pytest

from ho_sdk import api_client
from ho_sdk.api_client import ApiClientConfig, SignedApiClient
from ho_sdk.crypto_utils import build_cipher_context, encrypt_to_hex


APP_SECRET = "0123456789abcdef0123456789abcdef"
IV = "fedcba9876543210"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self._text = text

    def json(self):
        if self._text is not None:
            return json.loads(self._text)
        return self._payload


class FakeSession:
    def __init__(self, factory: "RecordingSessionFactory") -> None:
        self.factory = factory

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.factory.closed += 1
        return False

    async def request(self, method, url, headers=None, data=None):
        self.factory.calls.append({
            "method": method,
            "url": url,
            "headers": headers,
            "data": data,
        })
        if self.factory.error is not None:
            raise self.factory.error
        return self.factory.response


class RecordingSessionFactory:
    """Replaces AsyncSession; every call opens a new FakeSession."""

    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or FakeResponse(payload={})
        self.error = error
        self.calls = []
        self.timeouts = []
        self.closed = 0

    def __call__(self, timeout=None):
        self.timeouts.append(timeout)
        return FakeSession(self)

    @property
    def last_call(self):
        return self.calls[-1]


@pytest.fixture
def config() -> ApiClientConfig:
    return ApiClientConfig(
        app_id="id1",
        app_secret=APP_SECRET,
        iv=IV,
        base_url="https://x",
        content="/p",
    )


@pytest.fixture
def client(config) -> SignedApiClient:
    return SignedApiClient(config)


@pytest.fixture
def encrypt():
    ctx = build_cipher_context(APP_SECRET, IV)
    return lambda text: encrypt_to_hex(ctx, text)


@pytest.fixture
def cipher():
    return build_cipher_context(APP_SECRET, IV)


@pytest.fixture
def fake_http(monkeypatch):
    """Install a RecordingSessionFactory in place of curl_cffi's AsyncSession."""

    def install(response: FakeResponse | None = None, error: Exception | None = None) -> RecordingSessionFactory:
        factory = RecordingSessionFactory(response=response, error=error)
        monkeypatch.setattr(api_client, "AsyncSession", factory)
        return factory

    return install
