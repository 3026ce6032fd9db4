"""HTTP transport for the Domo stream execution endpoints.

Each method performs exactly one request and returns the parsed
``StreamExecution`` descriptor. A fresh bearer token is requested from the
token provider before every call.
"""

import logging
from typing import Any

import requests
from pydantic import ValidationError

from domostream.core.auth import TokenProvider
from domostream.core.const import API_URL, DEFAULT_REQUEST_TIMEOUT
from domostream.core.exceptions import DomoHTTPError, TransportError
from domostream.core.streaming.models import StreamExecution
from domostream.core.utils.http_errors import extract_error_detail

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv"


class StreamTransport:
    """Issues stream execution requests against the Domo API."""

    def __init__(
        self,
        token_provider: TokenProvider,
        api_url: str = API_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """Initialize the transport.

        Args:
            token_provider: Source of bearer tokens.
            api_url: Base URL of the Domo API.
            timeout: Timeout in seconds applied to every request.
            session: Optional requests session to reuse.
        """
        self.token_provider = token_provider
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _executions_url(self, stream_id: int) -> str:
        return f"{self.api_url}/v1/streams/{stream_id}/executions"

    def _request(
        self,
        method: str,
        url: str,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send an authorized request and decode its JSON body.

        Raises:
            DomoHTTPError: If the API answers with a non-success status.
            TransportError: If the request fails or the body is not JSON.
        """
        request_headers = self.token_provider.get_headers()
        if headers:
            request_headers.update(headers)
        try:
            response = self._session.request(
                method,
                url,
                data=data,
                headers=request_headers,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        logger.debug("%s %s response: status=%d", method, url, response.status_code)
        if not response.ok:
            raise DomoHTTPError(response.status_code, extract_error_detail(response))
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{method} {url} returned invalid JSON") from e

    def _execution(self, payload: Any) -> StreamExecution:
        try:
            return StreamExecution.model_validate(payload)
        except ValidationError as e:
            raise TransportError(f"Unexpected stream execution payload: {e}") from e

    def create_execution(self, stream_id: int) -> StreamExecution:
        """Create a new execution on a stream.

        Creating an execution aborts any other execution active on the stream.
        """
        payload = self._request(
            "POST",
            self._executions_url(stream_id),
            headers={"Content-Type": "application/json"},
        )
        return self._execution(payload)

    def upload_part(
        self, stream_id: int, execution_id: int, part: int, data: bytes
    ) -> StreamExecution:
        """Upload one CSV data part to an execution.

        Parts may be uploaded simultaneously and in any order.

        Args:
            stream_id: Stream the execution belongs to.
            execution_id: Execution to add the part to.
            part: Data part number.
            data: Headerless CSV bytes.
        """
        url = f"{self._executions_url(stream_id)}/{execution_id}/part/{part}"
        payload = self._request(
            "PUT", url, data=data, headers={"Content-Type": CSV_CONTENT_TYPE}
        )
        return self._execution(payload)

    def commit_execution(self, stream_id: int, execution_id: int) -> StreamExecution:
        """Commit an execution, making its data parts visible in the dataset."""
        url = f"{self._executions_url(stream_id)}/{execution_id}/commit"
        return self._execution(self._request("PUT", url))

    def abort_execution(self, stream_id: int, execution_id: int) -> StreamExecution:
        """Abort an execution, discarding its data parts."""
        url = f"{self._executions_url(stream_id)}/{execution_id}/abort"
        return self._execution(self._request("PUT", url))

    def get_execution(self, stream_id: int, execution_id: int) -> StreamExecution:
        """Fetch details of one execution."""
        url = f"{self._executions_url(stream_id)}/{execution_id}"
        return self._execution(self._request("GET", url))

    def list_executions(
        self, stream_id: int, limit: int = 50, offset: int = 0
    ) -> list[StreamExecution]:
        """List executions of a stream.

        Args:
            stream_id: Stream to list executions for.
            limit: Maximum number of executions to return.
            offset: Offset of the first execution returned.
        """
        payload = self._request(
            "GET",
            self._executions_url(stream_id),
            params={"limit": limit, "offset": offset},
        )
        if not isinstance(payload, list):
            raise TransportError("Expected a list of stream executions")
        return [self._execution(item) for item in payload]

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()
