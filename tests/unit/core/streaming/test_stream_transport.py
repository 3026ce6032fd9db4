import pytest
import requests
import requests_mock

from domostream.core.exceptions import DomoHTTPError, TransportError
from domostream.core.streaming.transport import StreamTransport
from tests.unit.helpers.domo_api import EXECUTIONS_URL, STREAM_ID, execution_payload


class CountingTokenProvider:
    def __init__(self):
        self.calls = 0

    def get_token(self) -> str:
        self.calls += 1
        return f"token-{self.calls}"

    def get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.get_token()}"}


@pytest.fixture
def transport(token_provider):
    return StreamTransport(token_provider)


def test_create_execution(transport, mock_domo_api):
    execution = transport.create_execution(STREAM_ID)

    assert execution.id == 42
    assert execution.current_state == "ACTIVE"
    request = mock_domo_api.last_request
    assert request.method == "POST"
    assert request.url == EXECUTIONS_URL
    assert request.headers["Authorization"] == "Bearer test_token"
    assert request.headers["Content-Type"] == "application/json"


def test_upload_part_sends_csv_body(transport, mock_domo_api):
    execution = transport.upload_part(STREAM_ID, 42, 3, b"a,1\nb,2\n")

    assert execution.id == 42
    request = mock_domo_api.last_request
    assert request.method == "PUT"
    assert request.url == f"{EXECUTIONS_URL}/42/part/3"
    assert request.headers["Content-Type"] == "text/csv"
    assert request.headers["Authorization"] == "Bearer test_token"
    assert request.body == b"a,1\nb,2\n"


def test_commit_and_abort_urls(transport, mock_domo_api):
    transport.commit_execution(STREAM_ID, 42)
    assert mock_domo_api.last_request.url == f"{EXECUTIONS_URL}/42/commit"
    assert mock_domo_api.last_request.method == "PUT"

    transport.abort_execution(STREAM_ID, 42)
    assert mock_domo_api.last_request.url == f"{EXECUTIONS_URL}/42/abort"
    assert mock_domo_api.last_request.method == "PUT"


def test_get_execution(transport, mock_domo_api):
    execution = transport.get_execution(STREAM_ID, 42)

    assert execution.id == 42
    assert execution.started_at == "2024-01-01T00:00:00Z"


def test_list_executions_passes_paging(transport, mock_domo_api):
    executions = transport.list_executions(STREAM_ID, limit=10, offset=20)

    assert [e.id for e in executions] == [41, 42]
    assert executions[0].current_state == "SUCCESS"
    assert mock_domo_api.last_request.qs == {"limit": ["10"], "offset": ["20"]}


def test_token_is_requested_for_every_call(mock_domo_api):
    provider = CountingTokenProvider()
    transport = StreamTransport(provider)

    transport.create_execution(STREAM_ID)
    transport.upload_part(STREAM_ID, 42, 0, b"x\n")
    transport.commit_execution(STREAM_ID, 42)

    assert provider.calls == 3
    auth_headers = [r.headers["Authorization"] for r in mock_domo_api.request_history]
    assert auth_headers == ["Bearer token-1", "Bearer token-2", "Bearer token-3"]


def test_error_status_raises_domo_http_error(transport):
    with requests_mock.Mocker() as m:
        m.put(
            f"{EXECUTIONS_URL}/42/commit",
            status_code=400,
            json={"status": 400, "message": "Execution is not active"},
        )
        with pytest.raises(DomoHTTPError) as exc_info:
            transport.commit_execution(STREAM_ID, 42)

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Execution is not active"
    assert "HTTP 400" in str(exc_info.value)


def test_error_status_with_text_body(transport):
    with requests_mock.Mocker() as m:
        m.post(EXECUTIONS_URL, status_code=503, text="Service Unavailable")
        with pytest.raises(DomoHTTPError) as exc_info:
            transport.create_execution(STREAM_ID)

    assert exc_info.value.status_code == 503
    assert exc_info.value.detail == "Service Unavailable"


def test_connection_error_raises_transport_error(transport):
    with requests_mock.Mocker() as m:
        m.post(EXECUTIONS_URL, exc=requests.exceptions.ConnectTimeout)
        with pytest.raises(TransportError) as exc_info:
            transport.create_execution(STREAM_ID)

    assert not isinstance(exc_info.value, DomoHTTPError)
    assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectTimeout)


def test_invalid_json_raises_transport_error(transport):
    with requests_mock.Mocker() as m:
        m.post(EXECUTIONS_URL, text="not json")
        with pytest.raises(TransportError):
            transport.create_execution(STREAM_ID)


def test_unexpected_payload_raises_transport_error(transport):
    with requests_mock.Mocker() as m:
        m.post(EXECUTIONS_URL, json={"currentState": "ACTIVE"})
        with pytest.raises(TransportError):
            transport.create_execution(STREAM_ID)


def test_api_url_trailing_slash_is_ignored(token_provider):
    transport = StreamTransport(token_provider, api_url="https://example.domo.test/")
    with requests_mock.Mocker() as m:
        m.post(
            f"https://example.domo.test/v1/streams/{STREAM_ID}/executions",
            json=execution_payload(7),
        )
        assert transport.create_execution(STREAM_ID).id == 7
