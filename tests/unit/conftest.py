import pytest
import requests_mock

from domostream.core.auth import StaticTokenProvider
from domostream.core.const import TOKEN_URL
from tests.unit.helpers.domo_api import (
    EXECUTIONS_URL,
    FakeStreamTransport,
    execution_payload,
)


@pytest.fixture
def fake_transport() -> FakeStreamTransport:
    return FakeStreamTransport()


@pytest.fixture
def token_provider() -> StaticTokenProvider:
    return StaticTokenProvider("test_token")


@pytest.fixture(autouse=True)
def clean_domo_env(monkeypatch):
    """Keep DOMO_* variables from the host environment out of tests."""
    for name in (
        "DOMO_STREAM_ID",
        "DOMO_CLIENT_ID",
        "DOMO_CLIENT_SECRET",
        "DOMO_ACCESS_TOKEN",
        "DOMO_BUFFER_SIZE",
        "DOMO_API_URL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_domo_api():
    """Mock the token endpoint and the stream execution endpoints."""
    with requests_mock.Mocker() as m:
        m.post(
            TOKEN_URL,
            json={
                "access_token": "test_token",
                "token_type": "bearer",
                "expires_in": 3599,
            },
        )
        m.post(EXECUTIONS_URL, json=execution_payload(42))
        m.put(requests_mock.ANY, json=execution_payload(42))
        m.get(f"{EXECUTIONS_URL}/42", json=execution_payload(42))
        m.get(
            EXECUTIONS_URL,
            json=[execution_payload(41, "SUCCESS"), execution_payload(42)],
        )
        yield m
